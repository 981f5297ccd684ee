# src/whisper_echo/api/endpoints/whisperwall.py
"""WhisperWall endpoints. No authentication; callers are identified by session."""

from fastapi import APIRouter, Query, status

from whisper_echo.core.settings import settings
from whisper_echo.db.time import utcnow
from whisper_echo.schemas.common import Pagination, ReactionCounts
from whisper_echo.schemas.reaction import ReactionCreate, ReactionResponse
from whisper_echo.schemas.whisper import (
    ChainInfo,
    ConfessionCreate,
    ConfessionRoomInfo,
    ConfessionRoomResponse,
    MoodEntry,
    MoodHeatmapResponse,
    WhisperChainCreate,
    WhisperChainResponse,
    WhisperCommentCreate,
    WhisperCommentResponse,
    WhisperCreate,
    WhisperListResponse,
    WhisperResponse,
)
from whisper_echo.services import whispers as whisper_service

from ..dependencies import SessionDep, WhisperSessionDep

router = APIRouter(prefix="/whisperwall", tags=["whisperwall"])


@router.post("/", response_model=WhisperResponse, status_code=status.HTTP_201_CREATED)
async def create_whisper(whisper_data: WhisperCreate, db: SessionDep) -> WhisperResponse:
    whisper = whisper_service.create_whisper(
        db,
        text=whisper_data.text,
        media=[item.model_dump() for item in whisper_data.media],
        category=whisper_data.category,
        tags=whisper_data.tags,
    )
    return WhisperResponse.build(whisper)


@router.get("/", response_model=WhisperListResponse)
async def list_whispers(
    db: SessionDep,
    session_id: WhisperSessionDep,
    filter: str = Query("recent", description="recent, trending or popular"),
    category: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
) -> WhisperListResponse:
    """List live whispers; expired or hidden posts never appear."""
    whispers, total = whisper_service.list_whispers(
        db,
        order=filter,
        category=category,
        page=page,
        limit=limit,
    )
    mine = whisper_service.session_reactions(db, [whisper.id for whisper in whispers], session_id)
    return WhisperListResponse(
        posts=[WhisperResponse.build(whisper, mine.get(whisper.id)) for whisper in whispers],
        pagination=Pagination(page=page, limit=limit, total=total, has_more=page * limit < total),
    )


@router.post("/whisper-chain", response_model=WhisperChainResponse, status_code=status.HTTP_201_CREATED)
async def create_whisper_chain(chain_data: WhisperChainCreate, db: SessionDep) -> WhisperChainResponse:
    whisper = whisper_service.create_whisper_chain(
        db,
        chain_data.message,
        is_forwarding=chain_data.is_forwarding,
        chain_id=chain_data.original_chain_id,
        original_message=chain_data.original_message,
        hop_count=chain_data.hop_count,
    )
    return WhisperChainResponse(
        post=WhisperResponse.build(whisper),
        chain_info=ChainInfo(
            chain_id=whisper.chain_id,
            hop_count=whisper.hop_count,
            is_new_chain=not chain_data.is_forwarding,
        ),
    )


@router.post("/confession-room", response_model=WhisperResponse, status_code=status.HTTP_201_CREATED)
async def create_confession(confession: ConfessionCreate, db: SessionDep) -> WhisperResponse:
    whisper = whisper_service.create_confession(db, confession.content, confession.room_id, confession.theme)
    return WhisperResponse.build(whisper)


@router.get("/confession-room/{room_id}", response_model=ConfessionRoomResponse)
async def get_confession_room(room_id: str, db: SessionDep, session_id: WhisperSessionDep) -> ConfessionRoomResponse:
    posts, active_until = whisper_service.list_confession_room(db, room_id)
    mine = whisper_service.session_reactions(db, [post.id for post in posts], session_id)
    return ConfessionRoomResponse(
        posts=[WhisperResponse.build(post, mine.get(post.id)) for post in posts],
        room_info=ConfessionRoomInfo(id=room_id, active_until=active_until, message_count=len(posts)),
    )


@router.get("/random-confession", response_model=WhisperResponse)
async def random_confession(db: SessionDep) -> WhisperResponse:
    return WhisperResponse.build(whisper_service.random_confession(db))


@router.get("/mood-heatmap", response_model=MoodHeatmapResponse)
async def mood_heatmap(db: SessionDep) -> MoodHeatmapResponse:
    now = utcnow()
    return MoodHeatmapResponse(
        heatmap=[MoodEntry(**entry) for entry in whisper_service.mood_heatmap(db, now)],
        timestamp=now,
    )


@router.get("/{post_id}", response_model=WhisperResponse)
async def get_whisper(post_id: int, db: SessionDep, session_id: WhisperSessionDep) -> WhisperResponse:
    whisper = whisper_service.get_whisper(db, post_id)
    mine = whisper_service.session_reactions(db, [whisper.id], session_id)
    return WhisperResponse.build(whisper, mine.get(whisper.id))


@router.post("/{post_id}/react", response_model=ReactionResponse)
async def react_to_whisper(
    post_id: int,
    reaction_data: ReactionCreate,
    db: SessionDep,
    session_id: WhisperSessionDep,
) -> ReactionResponse:
    whisper = whisper_service.add_whisper_reaction(db, post_id, session_id, reaction_data.reaction_type)
    return ReactionResponse(reactions=ReactionCounts.of(whisper), user_reaction=reaction_data.reaction_type)


@router.delete("/{post_id}/react", response_model=ReactionResponse)
async def remove_whisper_reaction(post_id: int, db: SessionDep, session_id: WhisperSessionDep) -> ReactionResponse:
    whisper = whisper_service.remove_whisper_reaction(db, post_id, session_id)
    return ReactionResponse(reactions=ReactionCounts.of(whisper), user_reaction=None)


@router.post(
    "/{post_id}/comments",
    response_model=WhisperCommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_whisper_comment(
    post_id: int,
    comment_data: WhisperCommentCreate,
    db: SessionDep,
    session_id: WhisperSessionDep,
) -> WhisperCommentResponse:
    comment = whisper_service.add_whisper_comment(db, post_id, session_id, comment_data.content)
    return WhisperCommentResponse.model_validate(comment)


@router.get("/{post_id}/comments", response_model=list[WhisperCommentResponse])
async def list_whisper_comments(post_id: int, db: SessionDep) -> list[WhisperCommentResponse]:
    return [
        WhisperCommentResponse.model_validate(comment)
        for comment in whisper_service.list_whisper_comments(db, post_id)
    ]

# src/whisper_echo/api/endpoints/reactions.py
"""Reaction endpoints for posts and post comments."""

from fastapi import APIRouter, Query

from whisper_echo.core.settings import settings
from whisper_echo.schemas.common import Pagination, ReactionCounts
from whisper_echo.schemas.post import PostResponse
from whisper_echo.schemas.reaction import (
    CommentReactionResponse,
    ReactionCreate,
    ReactionResponse,
    ReactionTotal,
    Reactor,
    ReactorEntry,
    ReactorsResponse,
    TrendingResponse,
)
from whisper_echo.services import reactions as reaction_service
from whisper_echo.services.notifications import push_notifications
from whisper_echo.services.posts import authors_by_id

from ..dependencies import CurrentUserDep, OptionalUserDep, RealtimeDep, SessionDep

router = APIRouter(prefix="/reactions", tags=["reactions"])


@router.get("/trending", response_model=TrendingResponse)
async def trending(
    db: SessionDep,
    viewer: OptionalUserDep,
    timeframe: str = Query("24h", description="1h, 24h or 7d"),
    limit: int = Query(10, ge=1, le=settings.max_page_size),
) -> TrendingResponse:
    """Top posts by trending score within a window plus reaction totals."""
    data = reaction_service.trending_reactions(db, timeframe=timeframe, limit=limit)
    posts = data["posts"]
    viewer_id = viewer.id if viewer else None
    authors = authors_by_id(db, posts)
    mine = reaction_service.viewer_reactions(db, [post.id for post in posts], viewer_id)
    return TrendingResponse(
        posts=[
            PostResponse.build(
                post,
                author=authors.get(post.author_id),
                user_reaction=mine.get(post.id),
                viewer_id=viewer_id,
            )
            for post in posts
        ],
        reactions=[ReactionTotal(**item) for item in data["reactions"]],
        timeframe=data["timeframe"],
        generated_at=data["generated_at"],
    )


@router.post("/{post_id}", response_model=ReactionResponse)
async def add_reaction(
    post_id: int,
    reaction_data: ReactionCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    hub: RealtimeDep,
) -> ReactionResponse:
    """Add or switch the caller's reaction on a post."""
    outcome = reaction_service.add_reaction(db, post_id, current_user, reaction_data.reaction_type)
    await push_notifications(hub, db, outcome.notifications)
    return ReactionResponse(reactions=ReactionCounts(**outcome.counts), user_reaction=outcome.user_reaction)


@router.delete("/{post_id}", response_model=ReactionResponse)
async def remove_reaction(post_id: int, current_user: CurrentUserDep, db: SessionDep) -> ReactionResponse:
    outcome = reaction_service.remove_reaction(db, post_id, current_user)
    return ReactionResponse(reactions=ReactionCounts(**outcome.counts), user_reaction=None)


@router.get("/{post_id}/users/{reaction_type}", response_model=ReactorsResponse)
async def list_reactors(
    post_id: int,
    reaction_type: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
) -> ReactorsResponse:
    """Paginated list of users who reacted with a given type."""
    rows, total = reaction_service.list_reactors(db, post_id, reaction_type, page=page, limit=limit)
    return ReactorsResponse(
        reactions=[
            ReactorEntry(
                user=Reactor(id=user.id, username=user.username, avatar=user.avatar, karma_score=user.karma_score),
                reacted_at=reacted_at,
            )
            for user, reacted_at in rows
        ],
        pagination=Pagination(page=page, limit=limit, total=total, has_more=page * limit < total),
    )


@router.post("/comments/{post_id}/{comment_id}", response_model=CommentReactionResponse)
async def react_to_comment(
    post_id: int,
    comment_id: int,
    reaction_data: ReactionCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CommentReactionResponse:
    counts, user_reaction = reaction_service.add_comment_reaction(
        db, post_id, comment_id, current_user, reaction_data.reaction_type
    )
    return CommentReactionResponse(reactions=counts, user_reaction=user_reaction)


@router.delete("/comments/{post_id}/{comment_id}", response_model=CommentReactionResponse)
async def remove_comment_reaction(
    post_id: int,
    comment_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CommentReactionResponse:
    counts = reaction_service.remove_comment_reaction(db, post_id, comment_id, current_user)
    return CommentReactionResponse(reactions=counts, user_reaction=None)

# src/whisper_echo/api/endpoints/chat.py
"""Direct chat endpoints. Every mutation is pushed to the peer's room."""

from fastapi import APIRouter, Query, status

from whisper_echo.core.settings import settings
from whisper_echo.schemas.chat import (
    ConversationListResponse,
    ConversationResponse,
    MessageCreate,
    MessageEdit,
    MessageResponse,
    MessagesResponse,
)
from whisper_echo.schemas.common import MarkReadResponse, Pagination, UserSummary
from whisper_echo.schemas.reaction import ReactionCreate
from whisper_echo.services import chat as chat_service
from whisper_echo.services.chat import MessageView
from whisper_echo.services.notifications import push_notifications
from whisper_echo.services.realtime import (
    CHAT_MESSAGE_DELETED,
    CHAT_MESSAGE_REACTED,
    CHAT_MESSAGE_UPDATED,
    CHAT_NEW_MESSAGE,
    RealtimeHub,
)

from ..dependencies import CurrentUserDep, RealtimeDep, SessionDep

router = APIRouter(prefix="/chat", tags=["chat"])


def _to_response(view: MessageView) -> MessageResponse:
    return MessageResponse.model_validate(view.as_dict())


async def _push(hub: RealtimeHub, peer_id: int, event: str, response: MessageResponse) -> None:
    await hub.emit_to_user(peer_id, event, response.model_dump(mode="json"))


@router.get("/conversations", response_model=ConversationListResponse)
async def list_conversations(current_user: CurrentUserDep, db: SessionDep) -> ConversationListResponse:
    """Caller's conversations, most recently active first."""
    summaries = chat_service.list_conversations(db, current_user)
    return ConversationListResponse(
        conversations=[
            ConversationResponse(
                id=summary.conversation.id,
                peer=UserSummary.model_validate(summary.peer),
                last_message_at=summary.conversation.last_message_at,
                last_message=_to_response(summary.last_message) if summary.last_message else None,
                unread_count=summary.unread_count,
            )
            for summary in summaries
        ]
    )


@router.get("/messages/{peer_id}", response_model=MessagesResponse)
async def get_messages(
    peer_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.chat_page_size, ge=1, le=settings.max_page_size),
) -> MessagesResponse:
    """One page of the thread counted back from the newest, returned oldest first."""
    message_page = chat_service.get_messages(db, current_user, peer_id, page=page, limit=limit)
    return MessagesResponse(
        messages=[_to_response(view) for view in message_page.messages],
        pagination=Pagination(page=page, limit=limit, has_more=message_page.has_more),
    )


@router.post("/messages/{peer_id}", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    peer_id: int,
    message_data: MessageCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    hub: RealtimeDep,
) -> MessageResponse:
    view, notification = chat_service.send_message(
        db,
        current_user,
        peer_id,
        text=message_data.text,
        media=[item.model_dump() for item in message_data.media],
    )
    response = _to_response(view)
    await _push(hub, peer_id, CHAT_NEW_MESSAGE, response)
    await push_notifications(hub, db, [notification])
    return response


@router.patch("/messages/{peer_id}/{message_id}", response_model=MessageResponse)
async def edit_message(
    peer_id: int,
    message_id: int,
    edit: MessageEdit,
    current_user: CurrentUserDep,
    db: SessionDep,
    hub: RealtimeDep,
) -> MessageResponse:
    """Edit an own message; refused once the peer has read it."""
    response = _to_response(chat_service.edit_message(db, current_user, peer_id, message_id, edit.text))
    await _push(hub, peer_id, CHAT_MESSAGE_UPDATED, response)
    return response


@router.delete("/messages/{peer_id}/{message_id}", response_model=MessageResponse)
async def delete_message(
    peer_id: int,
    message_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    hub: RealtimeDep,
) -> MessageResponse:
    response = _to_response(chat_service.delete_message(db, current_user, peer_id, message_id))
    await _push(hub, peer_id, CHAT_MESSAGE_DELETED, response)
    return response


@router.post("/read/{peer_id}", response_model=MarkReadResponse)
async def mark_read(peer_id: int, current_user: CurrentUserDep, db: SessionDep) -> MarkReadResponse:
    return MarkReadResponse(updated=chat_service.mark_read(db, current_user, peer_id))


@router.post("/messages/{peer_id}/{message_id}/react", response_model=MessageResponse)
async def react_to_message(
    peer_id: int,
    message_id: int,
    reaction_data: ReactionCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    hub: RealtimeDep,
) -> MessageResponse:
    view = chat_service.react_to_message(db, current_user, peer_id, message_id, reaction_data.reaction_type)
    response = _to_response(view)
    await _push(hub, peer_id, CHAT_MESSAGE_REACTED, response)
    return response


@router.delete("/messages/{peer_id}/{message_id}/react", response_model=MessageResponse)
async def remove_message_reaction(
    peer_id: int,
    message_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    hub: RealtimeDep,
) -> MessageResponse:
    response = _to_response(chat_service.remove_message_reaction(db, current_user, peer_id, message_id))
    await _push(hub, peer_id, CHAT_MESSAGE_REACTED, response)
    return response

"""Direct chat between two users with read receipts.

A conversation is stored once per unordered pair as (low id, high id). The
read-by set of a message only ever grows; the sender is in it from the start.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import and_, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from whisper_echo.core.settings import settings
from whisper_echo.db.time import utcnow
from whisper_echo.models import ChatMessage, Conversation, MessageReaction, MessageRead, Notification, User
from whisper_echo.models.reaction import REACTION_TYPES
from whisper_echo.services import notifications
from whisper_echo.services.errors import Forbidden, NotFound, ValidationFailed
from whisper_echo.services.posts import validate_media

logger = logging.getLogger(__name__)

MAX_MESSAGE_TEXT = 5000


@dataclass
class MessageView:
    """A message with its read-by set and reactions resolved."""

    message: ChatMessage
    read_by: list[int] = field(default_factory=list)
    reactions: dict[int, str] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        message = self.message
        return {
            "id": message.id,
            "conversation_id": message.conversation_id,
            "sender_id": message.sender_id,
            "text": "" if message.deleted else message.text,
            "media": [] if message.deleted else list(message.media or []),
            "read_by": sorted(self.read_by),
            "reactions": [
                {"user_id": user_id, "type": kind} for user_id, kind in sorted(self.reactions.items())
            ],
            "created_at": message.created_at.isoformat() if message.created_at else None,
            "edited_at": message.edited_at.isoformat() if message.edited_at else None,
            "deleted": message.deleted,
            "deleted_at": message.deleted_at.isoformat() if message.deleted_at else None,
        }


@dataclass
class ConversationSummary:
    conversation: Conversation
    peer: User
    last_message: MessageView | None
    unread_count: int


@dataclass
class MessagePage:
    messages: list[MessageView]
    page: int
    limit: int
    has_more: bool


def canonical_pair(user_a: int, user_b: int) -> tuple[int, int]:
    return (user_a, user_b) if user_a < user_b else (user_b, user_a)


def _get_peer(db: Session, peer_id: int) -> User:
    peer = db.get(User, peer_id)
    if peer is None:
        raise NotFound("User not found")
    return peer


def find_between(db: Session, user_a: int, user_b: int) -> Conversation | None:
    low, high = canonical_pair(user_a, user_b)
    return (
        db.query(Conversation)
        .filter(Conversation.user_low_id == low, Conversation.user_high_id == high)
        .first()
    )


def get_or_create_between(db: Session, user_a: int, user_b: int) -> Conversation:
    """Return the single conversation for the pair, creating it when absent.

    Raises:
        ValidationFailed: If both ids are the same user.
        NotFound: If either user does not exist.
    """
    if user_a == user_b:
        raise ValidationFailed("Cannot start a conversation with yourself")
    _get_peer(db, user_a)
    _get_peer(db, user_b)

    conversation = find_between(db, user_a, user_b)
    if conversation is not None:
        return conversation

    low, high = canonical_pair(user_a, user_b)
    conversation = Conversation(user_low_id=low, user_high_id=high)
    db.add(conversation)
    try:
        db.commit()
    except IntegrityError:
        # Created concurrently by the other participant.
        db.rollback()
        conversation = find_between(db, user_a, user_b)
        if conversation is None:
            raise
        return conversation
    db.refresh(conversation)
    return conversation


def _views(db: Session, messages: list[ChatMessage]) -> list[MessageView]:
    if not messages:
        return []
    ids = [message.id for message in messages]
    readers: dict[int, list[int]] = {message_id: [] for message_id in ids}
    for message_id, user_id in db.execute(
        select(MessageRead.message_id, MessageRead.user_id).where(MessageRead.message_id.in_(ids))
    ).all():
        readers[message_id].append(user_id)
    reactions: dict[int, dict[int, str]] = {message_id: {} for message_id in ids}
    for message_id, user_id, kind in db.execute(
        select(MessageReaction.message_id, MessageReaction.user_id, MessageReaction.reaction_type)
        .where(MessageReaction.message_id.in_(ids))
    ).all():
        reactions[message_id][user_id] = kind
    return [
        MessageView(message=message, read_by=readers[message.id], reactions=reactions[message.id])
        for message in messages
    ]


def message_view(db: Session, message: ChatMessage) -> MessageView:
    return _views(db, [message])[0]


def _unread_clause(conversation_id: int, reader_id: int):
    already_read = select(MessageRead.message_id).where(MessageRead.user_id == reader_id)
    return and_(
        ChatMessage.conversation_id == conversation_id,
        ChatMessage.sender_id != reader_id,
        ChatMessage.deleted.is_(False),
        ChatMessage.id.not_in(already_read),
    )


def unread_count(db: Session, conversation_id: int, reader_id: int) -> int:
    stmt = select(func.count()).select_from(ChatMessage).where(_unread_clause(conversation_id, reader_id))
    return int(db.scalar(stmt) or 0)


def list_conversations(db: Session, user: User, limit: int | None = None) -> list[ConversationSummary]:
    """Return the user's conversations, most recently active first."""
    limit = limit or settings.conversation_list_limit
    conversations = (
        db.query(Conversation)
        .filter((Conversation.user_low_id == user.id) | (Conversation.user_high_id == user.id))
        .order_by(desc(Conversation.last_message_at), desc(Conversation.id))
        .limit(limit)
        .all()
    )

    summaries: list[ConversationSummary] = []
    for conversation in conversations:
        peer = db.get(User, conversation.peer_of(user.id))
        if peer is None:
            continue
        last = (
            db.query(ChatMessage)
            .filter(ChatMessage.conversation_id == conversation.id)
            .order_by(desc(ChatMessage.id))
            .first()
        )
        summaries.append(
            ConversationSummary(
                conversation=conversation,
                peer=peer,
                last_message=message_view(db, last) if last is not None else None,
                unread_count=unread_count(db, conversation.id, user.id),
            )
        )
    return summaries


def get_messages(db: Session, user: User, peer_id: int, page: int = 1, limit: int | None = None) -> MessagePage:
    """Return one page of the thread.

    Pages are counted back from the newest message; each page is returned
    oldest first. ``has_more`` is true while older messages remain.
    """
    limit = limit or settings.chat_page_size
    _get_peer(db, peer_id)
    conversation = get_or_create_between(db, user.id, peer_id)

    offset = (page - 1) * limit
    newest_first = (
        db.query(ChatMessage)
        .filter(ChatMessage.conversation_id == conversation.id)
        .order_by(desc(ChatMessage.id))
        .offset(offset)
        .limit(limit)
        .all()
    )
    total = (
        db.query(func.count(ChatMessage.id))
        .filter(ChatMessage.conversation_id == conversation.id)
        .scalar()
    ) or 0
    newest_first.reverse()
    return MessagePage(
        messages=_views(db, newest_first),
        page=page,
        limit=limit,
        has_more=offset + limit < total,
    )


def send_message(
    db: Session,
    sender: User,
    peer_id: int,
    text: str = "",
    media: list[dict[str, Any]] | None = None,
    now: datetime | None = None,
) -> tuple[MessageView, Notification | None]:
    now = now or utcnow()
    text = (text or "").strip()
    media_items = validate_media(media)
    if not text and not media_items:
        raise ValidationFailed("Message must have text or media")
    if len(text) > MAX_MESSAGE_TEXT:
        raise ValidationFailed(f"Message cannot exceed {MAX_MESSAGE_TEXT} characters")

    peer = _get_peer(db, peer_id)
    conversation = get_or_create_between(db, sender.id, peer.id)

    message = ChatMessage(
        conversation_id=conversation.id,
        sender_id=sender.id,
        text=text,
        media=media_items,
        created_at=now,
    )
    db.add(message)
    db.flush()
    db.add(MessageRead(message_id=message.id, user_id=sender.id, read_at=now))
    conversation.last_message_at = now

    notification = notifications.notify(
        db,
        recipient=peer,
        actor=sender,
        notification_type="message",
        message_id=message.id,
        excerpt=text or None,
    )
    db.commit()
    db.refresh(message)
    return message_view(db, message), notification


def mark_read(db: Session, user: User, peer_id: int, now: datetime | None = None) -> int:
    """Add ``user`` to the read-by set of every unread peer message.

    Returns the number of messages newly marked; a repeat call returns 0.
    """
    now = now or utcnow()
    _get_peer(db, peer_id)
    conversation = find_between(db, user.id, peer_id)
    if conversation is None:
        return 0

    unread_ids = unread_message_ids(db, conversation.id, user.id)
    try:
        _add_receipts(db, unread_ids, user.id, now)
    except IntegrityError:
        # A concurrent call marked some of them first; only count the rest.
        logger.info("Concurrent read receipts in conversation %s; recounting", conversation.id)
        unread_ids = unread_message_ids(db, conversation.id, user.id)
        _add_receipts(db, unread_ids, user.id, now)
    if unread_ids:
        db.commit()
    return len(unread_ids)


def unread_message_ids(db: Session, conversation_id: int, reader_id: int) -> list[int]:
    return list(db.scalars(select(ChatMessage.id).where(_unread_clause(conversation_id, reader_id))))


def _add_receipts(db: Session, message_ids: list[int], reader_id: int, read_at: datetime) -> None:
    if not message_ids:
        return
    with db.begin_nested():
        db.add_all(
            [MessageRead(message_id=message_id, user_id=reader_id, read_at=read_at) for message_id in message_ids]
        )


def _get_message(db: Session, user: User, peer_id: int, message_id: int) -> tuple[Conversation, ChatMessage]:
    _get_peer(db, peer_id)
    conversation = find_between(db, user.id, peer_id)
    if conversation is None:
        raise NotFound("Conversation not found")
    message = (
        db.query(ChatMessage)
        .filter(ChatMessage.id == message_id, ChatMessage.conversation_id == conversation.id)
        .first()
    )
    if message is None:
        raise NotFound("Message not found")
    return conversation, message


def edit_message(
    db: Session,
    user: User,
    peer_id: int,
    message_id: int,
    text: str,
    now: datetime | None = None,
) -> MessageView:
    """Edit the sender's own message while nobody else has read it."""
    _, message = _get_message(db, user, peer_id, message_id)
    if message.sender_id != user.id:
        raise Forbidden("Not authorized to edit this message")
    if message.deleted:
        raise ValidationFailed("Message has been deleted")

    text = (text or "").strip()
    if not text:
        raise ValidationFailed("Message text is required")
    if len(text) > MAX_MESSAGE_TEXT:
        raise ValidationFailed(f"Message cannot exceed {MAX_MESSAGE_TEXT} characters")

    seen_by_others = db.scalar(
        select(func.count()).select_from(MessageRead).where(
            MessageRead.message_id == message.id,
            MessageRead.user_id != user.id,
        )
    )
    if seen_by_others:
        raise Forbidden("Message has already been read and can no longer be edited")

    message.text = text
    message.edited_at = now or utcnow()
    db.commit()
    db.refresh(message)
    return message_view(db, message)


def delete_message(db: Session, user: User, peer_id: int, message_id: int, now: datetime | None = None) -> MessageView:
    """Soft-delete the sender's own message."""
    _, message = _get_message(db, user, peer_id, message_id)
    if message.sender_id != user.id:
        raise Forbidden("Not authorized to delete this message")
    if message.deleted:
        raise ValidationFailed("Message already deleted")
    message.deleted = True
    message.deleted_at = now or utcnow()
    db.commit()
    db.refresh(message)
    return message_view(db, message)


def react_to_message(db: Session, user: User, peer_id: int, message_id: int, reaction_type: str) -> MessageView:
    if reaction_type not in REACTION_TYPES:
        raise ValidationFailed("Invalid reaction type")
    _, message = _get_message(db, user, peer_id, message_id)
    if message.deleted:
        raise ValidationFailed("Cannot react to a deleted message")

    existing = db.get(MessageReaction, (message.id, user.id))
    if existing is None:
        db.add(MessageReaction(message_id=message.id, user_id=user.id, reaction_type=reaction_type))
    elif existing.reaction_type != reaction_type:
        existing.reaction_type = reaction_type
        existing.created_at = utcnow()
    db.commit()
    return message_view(db, message)


def remove_message_reaction(db: Session, user: User, peer_id: int, message_id: int) -> MessageView:
    _, message = _get_message(db, user, peer_id, message_id)
    existing = db.get(MessageReaction, (message.id, user.id))
    if existing is not None:
        db.delete(existing)
        db.commit()
    return message_view(db, message)

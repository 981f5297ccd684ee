"""Notification creation, listing and push."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy import desc, func, select, update
from sqlalchemy.orm import Session

from whisper_echo.core.settings import settings
from whisper_echo.models import Notification, User
from whisper_echo.models.notification import NOTIFICATION_TYPES
from whisper_echo.services.realtime import NOTIFICATION_NEW, RealtimeHub

logger = logging.getLogger(__name__)

# Which user preference gates each notification type; None means always on.
_SETTING_FOR_TYPE: dict[str, str | None] = {
    "reaction": "notify_reactions",
    "comment": "notify_comments",
    "reply": "notify_comments",
    "track": "notify_followers",
    "mention": "notify_comments",
    "message": "notify_messages",
}

EXCERPT_LENGTH = 100


def wants(recipient: User, notification_type: str) -> bool:
    """Return whether ``recipient`` accepts notifications of this type."""
    setting = _SETTING_FOR_TYPE.get(notification_type)
    if setting is None:
        return True
    return bool(getattr(recipient, setting, True))


def notify(
    db: Session,
    *,
    recipient: User,
    actor: User,
    notification_type: str,
    post_id: int | None = None,
    comment_id: int | None = None,
    message_id: int | None = None,
    reaction_type: str | None = None,
    excerpt: str | None = None,
    anonymous: bool = False,
) -> Notification | None:
    """Stage a notification in the caller's transaction.

    Nothing is created when the actor is the recipient or the recipient has
    switched the category off. With ``anonymous`` the row does not record who
    the actor was. The caller commits.
    """
    if notification_type not in NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification type: {notification_type}")
    if recipient.id == actor.id or not wants(recipient, notification_type):
        return None

    notification = Notification(
        user_id=recipient.id,
        actor_id=None if anonymous else actor.id,
        type=notification_type,
        post_id=post_id,
        comment_id=comment_id,
        message_id=message_id,
        reaction_type=reaction_type,
        excerpt=excerpt[:EXCERPT_LENGTH] if excerpt else None,
        read=False,
    )
    db.add(notification)
    return notification


def unread_count(db: Session, user_id: int) -> int:
    stmt = select(func.count()).select_from(Notification).where(
        Notification.user_id == user_id,
        Notification.read.is_(False),
    )
    return int(db.scalar(stmt) or 0)


def list_notifications(
    db: Session,
    user_id: int,
    limit: int | None = None,
) -> tuple[list[Notification], int]:
    """Return the latest notifications for a user and their unread count."""
    limit = limit or settings.notification_list_limit
    stmt = (
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(desc(Notification.created_at), desc(Notification.id))
        .limit(limit)
    )
    items = list(db.scalars(stmt))
    return items, unread_count(db, user_id)


def mark_notifications_read(
    db: Session,
    user_id: int,
    notification_ids: Iterable[int] | None = None,
) -> int:
    """Mark all (or the given) unread notifications read; return rows changed."""
    stmt = (
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True)
    )
    if notification_ids is not None:
        ids = list(notification_ids)
        if not ids:
            return 0
        stmt = stmt.where(Notification.id.in_(ids))
    result = db.execute(stmt.execution_options(synchronize_session=False))
    db.commit()
    return int(result.rowcount or 0)


def serialize_notification(notification: Notification, actor: User | None) -> dict[str, Any]:
    return {
        "id": notification.id,
        "type": notification.type,
        "post_id": notification.post_id,
        "comment_id": notification.comment_id,
        "message_id": notification.message_id,
        "reaction_type": notification.reaction_type,
        "excerpt": notification.excerpt,
        "read": notification.read,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
        "actor": {
            "id": actor.id,
            "username": actor.username,
            "avatar": actor.avatar,
        } if actor is not None else None,
    }


async def push_notifications(
    hub: RealtimeHub,
    db: Session,
    notifications: Sequence[Notification | None],
) -> None:
    """Emit ``notification:new`` for committed notifications.

    Delivery is best effort; the rows are already persisted.
    """
    for notification in notifications:
        if notification is None:
            continue
        try:
            actor = db.get(User, notification.actor_id) if notification.actor_id is not None else None
            payload = serialize_notification(notification, actor)
            payload["unread_count"] = unread_count(db, notification.user_id)
        except Exception as exc:  # noqa: BLE001 - push delivery is best effort
            logger.warning("Could not build push for notification %s: %s", notification.id, exc)
            continue
        await hub.emit_to_user(notification.user_id, NOTIFICATION_NEW, payload)

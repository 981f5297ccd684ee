# src/whisper_echo/schemas/notification.py
"""Notification Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel

from .common import UserSummary


class NotificationResponse(BaseModel):
    id: int
    type: str
    actor: UserSummary | None
    post_id: int | None = None
    comment_id: int | None = None
    message_id: int | None = None
    reaction_type: str | None = None
    excerpt: str | None = None
    read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int


class NotificationMarkRead(BaseModel):
    """Mark the given notifications read, or all of them when ``ids`` is omitted."""

    ids: list[int] | None = None

# src/whisper_echo/schemas/chat.py
"""Chat-related Pydantic schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .common import MediaItem, Pagination, UserSummary


class MessageCreate(BaseModel):
    """Schema for sending a chat message; text or media is required."""

    text: str = Field("", max_length=5000)
    media: list[MediaItem] = Field(default_factory=list)


class MessageEdit(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)


class MessageReactionEntry(BaseModel):
    user_id: int
    type: str


class MessageResponse(BaseModel):
    """Schema for a chat message. Deleted messages keep their slot but lose content."""

    id: int
    conversation_id: int
    sender_id: int
    text: str
    media: list[dict[str, Any]]
    read_by: list[int]
    reactions: list[MessageReactionEntry]
    created_at: datetime
    edited_at: datetime | None = None
    deleted: bool = False
    deleted_at: datetime | None = None


class ConversationResponse(BaseModel):
    id: int
    peer: UserSummary
    last_message_at: datetime
    last_message: MessageResponse | None
    unread_count: int


class ConversationListResponse(BaseModel):
    conversations: list[ConversationResponse]


class MessagesResponse(BaseModel):
    messages: list[MessageResponse]
    pagination: Pagination

# src/whisper_echo/schemas/whisper.py
"""WhisperWall Pydantic schemas."""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from whisper_echo.models import WhisperPost

from .common import MediaItem, Pagination, ReactionCounts


class WhisperCreate(BaseModel):
    """Schema for posting an anonymous whisper."""

    text: str = Field("", max_length=2000)
    media: list[MediaItem] = Field(default_factory=list)
    category: str
    tags: list[str] = Field(default_factory=list, max_length=10)


class WhisperResponse(BaseModel):
    """Schema for a whisper post. No user identity is ever included."""

    id: int
    random_username: str
    text: str
    media: list[dict[str, Any]]
    category: str
    tags: list[str]
    reactions: ReactionCounts
    comment_count: int
    trending_score: float
    expires_at: datetime
    created_at: datetime
    is_chain_message: bool = False
    chain_id: str | None = None
    original_message: str | None = None
    hop_count: int = 0
    confession_room_id: str | None = None
    confession_theme: str | None = None
    user_reaction: str | None = None
    user_has_reacted: bool = False
    is_whisper_wall: bool = True

    @classmethod
    def build(cls, whisper: WhisperPost, user_reaction: str | None = None) -> "WhisperResponse":
        return cls(
            id=whisper.id,
            random_username=whisper.random_username,
            text=whisper.text,
            media=list(whisper.media or []),
            category=whisper.category,
            tags=list(whisper.tags or []),
            reactions=ReactionCounts.of(whisper),
            comment_count=whisper.comment_count or 0,
            trending_score=whisper.trending_score or 0.0,
            expires_at=whisper.expires_at,
            created_at=whisper.created_at,
            is_chain_message=whisper.is_chain_message,
            chain_id=whisper.chain_id,
            original_message=whisper.original_message,
            hop_count=whisper.hop_count or 0,
            confession_room_id=whisper.confession_room_id,
            confession_theme=whisper.confession_theme,
            user_reaction=user_reaction,
            user_has_reacted=user_reaction is not None,
        )


class WhisperListResponse(BaseModel):
    posts: list[WhisperResponse]
    pagination: Pagination


class WhisperCommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=500)


class WhisperCommentResponse(BaseModel):
    id: int
    whisper_id: int
    random_username: str
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WhisperChainCreate(BaseModel):
    """Start a chain, or forward one when ``is_forwarding`` is set."""

    message: str = Field(..., min_length=1, max_length=500)
    is_forwarding: bool = Field(False, validation_alias=AliasChoices("is_forwarding", "isForwarding"))
    original_chain_id: str | None = Field(
        None,
        validation_alias=AliasChoices("original_chain_id", "originalChainId"),
    )
    original_message: str | None = Field(
        None,
        validation_alias=AliasChoices("original_message", "originalMessage"),
    )
    hop_count: int = Field(0, ge=0, validation_alias=AliasChoices("hop_count", "hopCount"))


class ChainInfo(BaseModel):
    chain_id: str
    hop_count: int
    is_new_chain: bool


class WhisperChainResponse(BaseModel):
    post: WhisperResponse
    chain_info: ChainInfo


class ConfessionCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=500)
    room_id: str = Field(..., min_length=1, max_length=64, validation_alias=AliasChoices("room_id", "roomId"))
    theme: str | None = Field(None, max_length=64)


class ConfessionRoomInfo(BaseModel):
    id: str
    active_until: datetime | None
    message_count: int


class ConfessionRoomResponse(BaseModel):
    posts: list[WhisperResponse]
    room_info: ConfessionRoomInfo


class MoodEntry(BaseModel):
    category: str
    emotion: str
    intensity: float
    count: int
    total_reactions: int
    avg_reactions: float


class MoodHeatmapResponse(BaseModel):
    heatmap: list[MoodEntry]
    timestamp: datetime
    period: str = "24h"

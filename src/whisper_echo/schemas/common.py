"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from whisper_echo.models.reaction import ReactionCountsMixin


class Pagination(BaseModel):
    """Offset pagination block returned by list endpoints."""

    page: int
    limit: int
    total: int | None = None
    has_more: bool


class MediaItem(BaseModel):
    """Descriptor for an uploaded media file; storage happens elsewhere."""

    url: str = Field(..., min_length=1)
    type: Literal["image", "video", "audio"]
    filename: str | None = None
    original_name: str | None = None
    size: int | None = Field(None, ge=0)


class ReactionCounts(BaseModel):
    """Per-type reaction counters plus their total."""

    funny: int = 0
    rage: int = 0
    shock: int = 0
    relatable: int = 0
    love: int = 0
    thinking: int = 0
    total: int = 0

    @classmethod
    def of(cls, target: ReactionCountsMixin) -> ReactionCounts:
        return cls(**target.reaction_counts())


class UserSummary(BaseModel):
    """Minimal public view of a user."""

    id: int
    username: str
    avatar: str | None = None

    model_config = ConfigDict(from_attributes=True)


class StatusResponse(BaseModel):
    status: str = "success"
    message: str | None = None


class MarkReadResponse(BaseModel):
    """Number of items newly marked read."""

    updated: int

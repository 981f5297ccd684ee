# src/whisper_echo/schemas/reaction.py
"""Reaction-related Pydantic schemas."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field

from .common import Pagination, ReactionCounts, UserSummary
from .post import PostResponse


class ReactionCreate(BaseModel):
    """Schema for reacting to a post, comment, whisper or chat message.

    The type is checked by the service so unknown values are rejected without
    touching the ledger.
    """

    reaction_type: str = Field(
        ...,
        validation_alias=AliasChoices("reaction_type", "reactionType"),
        description="funny, rage, shock, relatable, love or thinking",
    )


class ReactionResponse(BaseModel):
    """Updated counters and the caller's reaction after a ledger change."""

    reactions: ReactionCounts
    user_reaction: str | None


class CommentReactionResponse(BaseModel):
    reactions: dict[str, int]
    user_reaction: str | None


class Reactor(UserSummary):
    karma_score: int = 0


class ReactorEntry(BaseModel):
    user: Reactor
    reacted_at: datetime


class ReactorsResponse(BaseModel):
    reactions: list[ReactorEntry]
    pagination: Pagination


class ReactionTotal(BaseModel):
    type: str
    total: int


class TrendingResponse(BaseModel):
    posts: list[PostResponse]
    reactions: list[ReactionTotal]
    timeframe: str
    generated_at: datetime

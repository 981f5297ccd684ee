# src/whisper_echo/schemas/post.py
"""Post-related Pydantic schemas."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from whisper_echo.models import Comment, Post, User

from .common import MediaItem, Pagination, ReactionCounts, UserSummary


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    text: str = Field("", max_length=2000, description="Post body; optional when media is attached")
    media: list[MediaItem] = Field(default_factory=list)
    category: str = Field(..., description="One of the fixed topic categories")
    tags: list[str] = Field(default_factory=list, max_length=10)
    visibility: Literal["normal", "disguise"] = "normal"
    disguise_avatar: str | None = None
    vanish_enabled: bool = False
    vanish_duration: Literal["1hour", "1day", "1week"] | None = None


class PostUpdate(BaseModel):
    """Schema for editing an owned post. Omitted fields are left unchanged."""

    text: str | None = Field(None, max_length=2000)
    category: str | None = None
    tags: list[str] | None = Field(None, max_length=10)
    visibility: Literal["normal", "disguise"] | None = None
    disguise_avatar: str | None = None


class PostResponse(BaseModel):
    """Schema for post information returned by the API."""

    id: int
    author: UserSummary | None
    text: str
    media: list[dict[str, Any]]
    category: str
    tags: list[str]
    visibility: str
    disguise_avatar: str | None
    vanish_enabled: bool
    vanish_at: datetime | None
    reactions: ReactionCounts
    comment_count: int
    trending_score: float
    created_at: datetime
    updated_at: datetime | None
    user_reaction: str | None = None
    user_has_reacted: bool = False
    is_outside_preferences: bool = False
    is_whisper_wall: bool = False

    @classmethod
    def build(
        cls,
        post: Post,
        *,
        author: User | None,
        user_reaction: str | None = None,
        viewer_id: int | None = None,
        is_outside_preferences: bool = False,
    ) -> "PostResponse":
        # Disguised posts only reveal their author to the author.
        show_author = post.visibility != "disguise" or viewer_id == post.author_id
        return cls(
            id=post.id,
            author=UserSummary.model_validate(author) if author is not None and show_author else None,
            text=post.text,
            media=list(post.media or []),
            category=post.category,
            tags=list(post.tags or []),
            visibility=post.visibility,
            disguise_avatar=post.disguise_avatar,
            vanish_enabled=post.vanish_enabled,
            vanish_at=post.vanish_at,
            reactions=ReactionCounts.of(post),
            comment_count=post.comment_count or 0,
            trending_score=post.trending_score or 0.0,
            created_at=post.created_at,
            updated_at=post.updated_at,
            user_reaction=user_reaction,
            user_has_reacted=user_reaction is not None,
            is_outside_preferences=is_outside_preferences,
        )


class PostListResponse(BaseModel):
    posts: list[PostResponse]
    pagination: Pagination


class CommentCreate(BaseModel):
    """Schema for commenting on a post."""

    content: str = Field(..., min_length=1, max_length=500)
    is_anonymous: bool = False


class CommentResponse(BaseModel):
    """Schema for a post comment. Anonymous comments hide their author."""

    id: int
    post_id: int
    parent_id: int | None = None
    author: UserSummary | None
    content: str
    is_anonymous: bool
    reply_count: int = 0
    reactions: dict[str, int] = Field(default_factory=lambda: {"funny": 0, "love": 0})
    created_at: datetime

    @classmethod
    def build(
        cls,
        comment: Comment,
        author: User | None,
        reactions: dict[str, int] | None = None,
        reply_count: int = 0,
    ) -> "CommentResponse":
        return cls(
            id=comment.id,
            post_id=comment.post_id,
            parent_id=comment.parent_id,
            author=(
                UserSummary.model_validate(author)
                if author is not None and not comment.is_anonymous
                else None
            ),
            content=comment.content,
            is_anonymous=comment.is_anonymous,
            reply_count=reply_count,
            reactions=reactions or {"funny": 0, "love": 0},
            created_at=comment.created_at,
        )


class HiddenPostResponse(BaseModel):
    """Whether a post is now hidden for the caller."""

    post_id: int
    hidden: bool

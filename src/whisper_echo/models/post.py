"""SQLAlchemy models for posts and their comments."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from whisper_echo.db.session import Base
from whisper_echo.db.time import UTCDateTime, utcnow
from whisper_echo.models.reaction import ReactionCountsMixin

POST_CATEGORIES: tuple[str, ...] = (
    "Gaming", "Education", "Beauty", "Fitness", "Music", "Technology",
    "Art", "Food", "Travel", "Sports", "Movies", "Books", "Fashion",
    "Photography", "Comedy", "Science", "Politics", "Business",
)
VISIBILITY_MODES: tuple[str, ...] = ("normal", "disguise")
MEDIA_TYPES: tuple[str, ...] = ("image", "video", "audio")

# Vanish window lengths in seconds.
VANISH_DURATIONS: dict[str, int] = {
    "1hour": 60 * 60,
    "1day": 24 * 60 * 60,
    "1week": 7 * 24 * 60 * 60,
}


class Post(ReactionCountsMixin, Base):
    """Authored post with denormalized reaction counters and trending score."""

    __tablename__ = "post"
    __table_args__ = (
        Index("ix_post_author_created", "author_id", "created_at"),
        Index("ix_post_category_created", "category", "created_at"),
        Index("ix_post_trending_score", "trending_score"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
    )

    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Ordered list of {url, type, filename, original_name, size}.
    media: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    visibility: Mapped[str] = mapped_column(String(16), nullable=False, default="normal")
    disguise_avatar: Mapped[str | None] = mapped_column(Text, nullable=True)

    vanish_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    vanish_duration: Mapped[str | None] = mapped_column(String(8), nullable=True)
    vanish_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True, index=True)

    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    trending_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    trending_calculated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )


class Comment(Base):
    """Comment appended to a post. Comments are never removed individually.

    Replies are comments whose ``parent_id`` names a top-level comment on the
    same post; they do not count towards the post's ``comment_count``.
    """

    __tablename__ = "comment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
    )
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("comment.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    content: Mapped[str] = mapped_column(String(500), nullable=False)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class HiddenPost(Base):
    """A post one user has hidden from their own feed and explore listings."""

    __tablename__ = "hidden_post"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

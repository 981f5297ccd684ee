"""SQLAlchemy models for user accounts and the echo (follow) graph."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import JSON, Boolean, Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from whisper_echo.db.session import Base
from whisper_echo.db.time import UTCDateTime, utcnow


class User(Base):
    """Registered account with derived karma, follow and streak counters."""

    __tablename__ = "user_account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(254), unique=True, nullable=True)
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    # Subset of POST_CATEGORIES used to widen the home feed.
    preferences: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # Only ever moved by reaction weight deltas.
    karma_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    posts_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    followers_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    following_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_post_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    notify_reactions: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notify_comments: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notify_followers: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notify_messages: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # Listed by the discover endpoint.
    allow_discovery: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class Follow(Base):
    """Directed echo edge: ``follower_id`` echoes ``followee_id``."""

    __tablename__ = "follow"

    follower_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    followee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

"""SQLAlchemy models for anonymous, time-limited WhisperWall posts."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from whisper_echo.db.session import Base
from whisper_echo.db.time import UTCDateTime, utcnow
from whisper_echo.models.post import POST_CATEGORIES
from whisper_echo.models.reaction import ReactionCountsMixin

WHISPER_CATEGORIES: tuple[str, ...] = POST_CATEGORIES + ("Vent", "Confession", "Advice", "Random")


class WhisperPost(ReactionCountsMixin, Base):
    """Anonymous post identified only by a generated name; expires at ``expires_at``.

    Expired rows are excluded at query time; deletion is left to the reaper.
    """

    __tablename__ = "whisper_post"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    random_username: Mapped[str] = mapped_column(String(40), nullable=False)

    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    media: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    trending_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    trending_calculated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)

    # Whisper chains: forwarded copies share chain_id; hop_count is bounded.
    is_chain_message: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    chain_id: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    original_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    hop_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    confession_room_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    confession_theme: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class WhisperReaction(Base):
    """Session-keyed reaction on a whisper post; no user identity is stored."""

    __tablename__ = "whisper_reaction"

    whisper_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("whisper_post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    session_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    reaction_type: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class WhisperComment(Base):
    """Anonymous comment on a whisper post."""

    __tablename__ = "whisper_comment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    whisper_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("whisper_post.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    random_username: Mapped[str] = mapped_column(String(40), nullable=False)
    content: Mapped[str] = mapped_column(String(500), nullable=False)
    session_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

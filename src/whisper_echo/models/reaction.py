"""Reaction ledgers for posts and comments.

One row per (target, user). The composite primary key is what guarantees a
user holds at most one reaction type on a target at any time.
"""

from datetime import datetime

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from whisper_echo.db.session import Base
from whisper_echo.db.time import UTCDateTime, utcnow

REACTION_TYPES: tuple[str, ...] = ("funny", "rage", "shock", "relatable", "love", "thinking")
COMMENT_REACTION_TYPES: tuple[str, ...] = ("funny", "love")


class PostReaction(Base):
    """Per-user reaction on a post."""

    __tablename__ = "post_reaction"

    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    reaction_type: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class CommentReaction(Base):
    """Per-user reaction on a post comment, restricted to COMMENT_REACTION_TYPES."""

    __tablename__ = "comment_reaction"

    comment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("comment.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    reaction_type: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class ReactionCountsMixin:
    """Denormalized per-type counters kept in step with a reaction ledger."""

    funny_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    shock_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    relatable_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    love_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    thinking_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reaction_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def reaction_counts(self) -> dict[str, int]:
        """Return the counters keyed by reaction type plus ``total``."""
        counts = {kind: int(getattr(self, f"{kind}_count") or 0) for kind in REACTION_TYPES}
        counts["total"] = int(self.reaction_total or 0)
        return counts

    def set_reaction_counts(self, counts: dict[str, int]) -> None:
        """Overwrite every counter from a type -> count mapping."""
        total = 0
        for kind in REACTION_TYPES:
            value = int(counts.get(kind, 0))
            setattr(self, f"{kind}_count", value)
            total += value
        self.reaction_total = total

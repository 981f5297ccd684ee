"""Notification rows delivered to a user's bell and realtime room."""

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from whisper_echo.db.session import Base
from whisper_echo.db.time import UTCDateTime, utcnow

NOTIFICATION_TYPES: tuple[str, ...] = ("reaction", "comment", "reply", "track", "mention", "message")


class Notification(Base):
    """Event addressed to ``user_id`` and caused by ``actor_id``.

    ``actor_id`` is empty when the actor stays anonymous, such as the author
    of an anonymous comment.
    """

    __tablename__ = "notification"
    __table_args__ = (Index("ix_notification_user_created", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
    )
    actor_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=True,
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    # Plain references; the post or message may be gone by the time it is read.
    post_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    comment_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    message_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reaction_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    excerpt: Mapped[str | None] = mapped_column(String(140), nullable=True)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

"""Query-time visibility predicates shared by every read path.

Hidden posts, vanished posts and expired whispers are never deleted on read;
they are filtered out here instead.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from whisper_echo.db.time import utcnow
from whisper_echo.models import HiddenPost, Post, WhisperPost
from whisper_echo.services.errors import NotFound


def visible_post_clause(now: datetime | None = None) -> ColumnElement[bool]:
    """Not hidden, and either not in vanish mode or not yet vanished."""
    now = now or utcnow()
    return and_(
        Post.is_hidden.is_(False),
        or_(
            Post.vanish_enabled.is_(False),
            Post.vanish_at.is_(None),
            Post.vanish_at > now,
        ),
    )


def not_hidden_by_clause(viewer_id: int) -> ColumnElement[bool]:
    """Exclude posts the viewer has hidden for themselves."""
    hidden = select(HiddenPost.post_id).where(HiddenPost.user_id == viewer_id)
    return Post.id.not_in(hidden)


def visible_whisper_clause(now: datetime | None = None) -> ColumnElement[bool]:
    """Not hidden and not yet expired."""
    now = now or utcnow()
    return and_(WhisperPost.is_hidden.is_(False), WhisperPost.expires_at > now)


def get_visible_post(db: Session, post_id: int, now: datetime | None = None) -> Post:
    post = (
        db.query(Post)
        .filter(Post.id == post_id, visible_post_clause(now))
        .first()
    )
    if post is None:
        raise NotFound("Post not found")
    return post


def get_visible_whisper(db: Session, whisper_id: int, now: datetime | None = None) -> WhisperPost:
    whisper = (
        db.query(WhisperPost)
        .filter(WhisperPost.id == whisper_id, visible_whisper_clause(now))
        .first()
    )
    if whisper is None:
        raise NotFound("Whisper post not found")
    return whisper

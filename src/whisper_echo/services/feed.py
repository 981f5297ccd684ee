"""Home feed composition.

Regular posts come from the viewer, the people they echo and the categories
they prefer, minus the posts the viewer has hidden. When that yields an
empty page the feed falls back to every visible post by recency. The first
page also mixes in a small sample of live whisper posts.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import desc, or_
from sqlalchemy.orm import Session

from whisper_echo.core.settings import settings
from whisper_echo.db.time import utcnow
from whisper_echo.models import Follow, Post, User, WhisperPost
from whisper_echo.services.posts import authors_by_id
from whisper_echo.services.reactions import viewer_reactions
from whisper_echo.services.visibility import not_hidden_by_clause, visible_post_clause, visible_whisper_clause


@dataclass
class FeedEntry:
    """One feed slot: a regular post or a whisper post, with viewer state."""

    item: Post | WhisperPost
    user_reaction: str | None = None
    is_outside_preferences: bool = False
    author: User | None = None

    @property
    def is_whisper(self) -> bool:
        return isinstance(self.item, WhisperPost)

    @property
    def created_at(self) -> datetime:
        return self.item.created_at


@dataclass
class FeedPage:
    entries: list[FeedEntry] = field(default_factory=list)
    page: int = 1
    limit: int = 20
    has_more: bool = False
    used_fallback: bool = False


def followee_ids(db: Session, user_id: int) -> list[int]:
    rows = db.query(Follow.followee_id).filter(Follow.follower_id == user_id).all()
    return [row[0] for row in rows]


def recent_whispers(db: Session, size: int, now: datetime | None = None) -> list[WhisperPost]:
    return (
        db.query(WhisperPost)
        .filter(visible_whisper_clause(now))
        .order_by(desc(WhisperPost.created_at), desc(WhisperPost.id))
        .limit(size)
        .all()
    )


def compose_feed(
    db: Session,
    viewer: User,
    page: int = 1,
    limit: int = 20,
    now: datetime | None = None,
) -> FeedPage:
    """Build one page of the viewer's home feed."""
    now = now or utcnow()
    offset = (page - 1) * limit
    preferences = list(viewer.preferences or [])

    sources = [Post.author_id.in_([viewer.id, *followee_ids(db, viewer.id)])]
    if preferences:
        sources.append(Post.category.in_(preferences))

    def _page(*criteria) -> list[Post]:
        return (
            db.query(Post)
            .filter(visible_post_clause(now), not_hidden_by_clause(viewer.id), *criteria)
            .order_by(desc(Post.created_at), desc(Post.id))
            .offset(offset)
            .limit(limit)
            .all()
        )

    posts = _page(or_(*sources))
    used_fallback = False
    if not posts:
        posts = _page()
        used_fallback = True

    reactions = viewer_reactions(db, [post.id for post in posts], viewer.id)
    authors = authors_by_id(db, posts)
    entries = [
        FeedEntry(
            item=post,
            user_reaction=reactions.get(post.id),
            is_outside_preferences=bool(
                preferences
                and post.category not in preferences
                and post.author_id != viewer.id
            ),
            author=authors.get(post.author_id),
        )
        for post in posts
    ]
    has_more = len(posts) == limit

    if page == 1 and settings.feed_whisper_sample_size > 0:
        entries.extend(
            FeedEntry(item=whisper)
            for whisper in recent_whispers(db, settings.feed_whisper_sample_size, now)
        )
        entries.sort(key=lambda entry: entry.created_at, reverse=True)
        if len(entries) > limit:
            entries = entries[:limit]
            has_more = True

    return FeedPage(
        entries=entries,
        page=page,
        limit=limit,
        has_more=has_more,
        used_fallback=used_fallback,
    )

"""Reaction ledger for posts and post comments.

A user holds at most one reaction per post; the ledger row is keyed by
(post, user), so switching type rewrites that row instead of appending.
Ledger, denormalized counts, the author's karma and the author's notification
are written in one transaction.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from whisper_echo.db.time import utcnow
from whisper_echo.models import Comment, CommentReaction, Notification, Post, PostReaction, User
from whisper_echo.models.reaction import COMMENT_REACTION_TYPES, REACTION_TYPES
from whisper_echo.services import notifications
from whisper_echo.services.errors import NotFound, ValidationFailed
from whisper_echo.services.karma import apply_karma, karma_weight
from whisper_echo.services.trending import refresh_trending
from whisper_echo.services.visibility import get_visible_post, visible_post_clause

logger = logging.getLogger(__name__)

TRENDING_WINDOWS: dict[str, timedelta] = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
}


@dataclass
class ReactionOutcome:
    """Result of a ledger mutation."""

    post: Post
    user_reaction: str | None
    previous: str | None
    karma_delta: int = 0
    notifications: list[Notification | None] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.user_reaction != self.previous

    @property
    def counts(self) -> dict[str, int]:
        return self.post.reaction_counts()


def validate_reaction_type(reaction_type: str, allowed: tuple[str, ...] = REACTION_TYPES) -> str:
    if reaction_type not in allowed:
        raise ValidationFailed("Invalid reaction type")
    return reaction_type


def recount_post(db: Session, post: Post) -> dict[str, int]:
    """Recompute the post's per-type counters from its ledger."""
    rows = db.execute(
        select(PostReaction.reaction_type, func.count())
        .where(PostReaction.post_id == post.id)
        .group_by(PostReaction.reaction_type)
    ).all()
    post.set_reaction_counts({kind: int(total) for kind, total in rows})
    return post.reaction_counts()


def ledger_entry(db: Session, post_id: int, user_id: int) -> PostReaction | None:
    return db.get(PostReaction, (post_id, user_id))


def current_reaction(db: Session, post_id: int, user_id: int) -> str | None:
    """Return the user's reaction type on a post, or None."""
    entry = ledger_entry(db, post_id, user_id)
    return entry.reaction_type if entry is not None else None


def _claim_entry(db: Session, post_id: int, user_id: int, reaction_type: str) -> PostReaction | None:
    """Insert a fresh ledger row inside a savepoint.

    Returns None when the insert lands, or the stored row when a concurrent
    request from the same user inserted it first.
    """
    try:
        with db.begin_nested():
            db.add(PostReaction(post_id=post_id, user_id=user_id, reaction_type=reaction_type))
    except IntegrityError:
        logger.info("Concurrent reaction by user %s on post %s; using stored row", user_id, post_id)
        entry = db.get(PostReaction, (post_id, user_id))
        if entry is None:
            raise
        return entry
    return None


def viewer_reactions(db: Session, post_ids: list[int], user_id: int | None) -> dict[int, str]:
    """Batch lookup of the viewer's reaction on each of ``post_ids``."""
    if user_id is None or not post_ids:
        return {}
    rows = db.execute(
        select(PostReaction.post_id, PostReaction.reaction_type).where(
            PostReaction.user_id == user_id,
            PostReaction.post_id.in_(post_ids),
        )
    ).all()
    return {post_id: kind for post_id, kind in rows}


def add_reaction(db: Session, post_id: int, user: User, reaction_type: str) -> ReactionOutcome:
    """Set ``user``'s reaction on a post to ``reaction_type``.

    Re-adding the same type changes nothing. Switching type moves the
    author's karma by the difference between the two weights. Self-reactions
    never move karma.

    Raises:
        ValidationFailed: If ``reaction_type`` is not a known type.
        NotFound: If the post does not exist or is not visible.
    """
    validate_reaction_type(reaction_type)
    post = get_visible_post(db, post_id)

    existing = ledger_entry(db, post.id, user.id)
    if existing is None:
        existing = _claim_entry(db, post.id, user.id, reaction_type)
        inserted = existing is None
    else:
        inserted = False
    previous = None if existing is None else existing.reaction_type
    if previous == reaction_type:
        return ReactionOutcome(post=post, user_reaction=reaction_type, previous=previous)

    delta = karma_weight(reaction_type)
    if not inserted:
        delta -= karma_weight(previous)
        existing.reaction_type = reaction_type
        existing.created_at = utcnow()
        db.flush()

    recount_post(db, post)
    refresh_trending(post)

    outcome = ReactionOutcome(post=post, user_reaction=reaction_type, previous=previous)
    author = db.get(User, post.author_id)
    if author is not None and author.id != user.id:
        apply_karma(author, delta)
        outcome.karma_delta = delta
        outcome.notifications.append(
            notifications.notify(
                db,
                recipient=author,
                actor=user,
                notification_type="reaction",
                post_id=post.id,
                reaction_type=reaction_type,
            )
        )

    db.commit()
    logger.debug("User %s reacted %s on post %s (karma %+d)", user.id, reaction_type, post.id, delta)
    return outcome


def remove_reaction(db: Session, post_id: int, user: User) -> ReactionOutcome:
    """Remove ``user``'s reaction on a post if present. Idempotent."""
    post = get_visible_post(db, post_id)
    existing = ledger_entry(db, post.id, user.id)
    if existing is None:
        return ReactionOutcome(post=post, user_reaction=None, previous=None)

    previous = existing.reaction_type
    db.delete(existing)
    db.flush()

    recount_post(db, post)
    refresh_trending(post)

    outcome = ReactionOutcome(post=post, user_reaction=None, previous=previous)
    author = db.get(User, post.author_id)
    if author is not None and author.id != user.id:
        delta = -karma_weight(previous)
        apply_karma(author, delta)
        outcome.karma_delta = delta

    db.commit()
    return outcome


def list_reactors(
    db: Session,
    post_id: int,
    reaction_type: str,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[tuple[User, datetime]], int]:
    """Return one page of users who reacted with ``reaction_type``, oldest first."""
    validate_reaction_type(reaction_type)
    post = get_visible_post(db, post_id)

    base = select(PostReaction).where(
        PostReaction.post_id == post.id,
        PostReaction.reaction_type == reaction_type,
    )
    total = int(db.scalar(select(func.count()).select_from(base.subquery())) or 0)
    rows = db.execute(
        select(User, PostReaction.created_at)
        .join(PostReaction, PostReaction.user_id == User.id)
        .where(PostReaction.post_id == post.id, PostReaction.reaction_type == reaction_type)
        .order_by(PostReaction.created_at, User.id)
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return [(user, reacted_at) for user, reacted_at in rows], total


def _get_comment(db: Session, post_id: int, comment_id: int) -> Comment:
    get_visible_post(db, post_id)
    comment = (
        db.query(Comment)
        .filter(Comment.id == comment_id, Comment.post_id == post_id)
        .first()
    )
    if comment is None:
        raise NotFound("Comment not found")
    return comment


def comment_reaction_counts(db: Session, comment_id: int) -> dict[str, int]:
    rows = db.execute(
        select(CommentReaction.reaction_type, func.count())
        .where(CommentReaction.comment_id == comment_id)
        .group_by(CommentReaction.reaction_type)
    ).all()
    counts = {kind: 0 for kind in COMMENT_REACTION_TYPES}
    counts.update({kind: int(total) for kind, total in rows})
    return counts


def comment_reaction_counts_for(db: Session, comment_ids: list[int]) -> dict[int, dict[str, int]]:
    """Batch version of ``comment_reaction_counts``."""
    counts = {comment_id: {kind: 0 for kind in COMMENT_REACTION_TYPES} for comment_id in comment_ids}
    if not comment_ids:
        return counts
    rows = db.execute(
        select(CommentReaction.comment_id, CommentReaction.reaction_type, func.count())
        .where(CommentReaction.comment_id.in_(comment_ids))
        .group_by(CommentReaction.comment_id, CommentReaction.reaction_type)
    ).all()
    for comment_id, kind, total in rows:
        counts[comment_id][kind] = int(total)
    return counts


def add_comment_reaction(
    db: Session,
    post_id: int,
    comment_id: int,
    user: User,
    reaction_type: str,
) -> tuple[dict[str, int], str]:
    """Set the user's reaction on a comment. Comment reactions carry no karma."""
    validate_reaction_type(reaction_type, COMMENT_REACTION_TYPES)
    comment = _get_comment(db, post_id, comment_id)

    existing = db.get(CommentReaction, (comment.id, user.id))
    if existing is None:
        db.add(CommentReaction(comment_id=comment.id, user_id=user.id, reaction_type=reaction_type))
    elif existing.reaction_type != reaction_type:
        existing.reaction_type = reaction_type
        existing.created_at = utcnow()
    db.commit()
    return comment_reaction_counts(db, comment.id), reaction_type


def remove_comment_reaction(
    db: Session,
    post_id: int,
    comment_id: int,
    user: User,
) -> dict[str, int]:
    comment = _get_comment(db, post_id, comment_id)
    existing = db.get(CommentReaction, (comment.id, user.id))
    if existing is not None:
        db.delete(existing)
        db.commit()
    return comment_reaction_counts(db, comment.id)


def trending_reactions(
    db: Session,
    timeframe: str = "24h",
    limit: int = 10,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Top posts by trending score in a window, plus per-type reaction totals."""
    window = TRENDING_WINDOWS.get(timeframe)
    if window is None:
        raise ValidationFailed("Invalid timeframe")
    now = now or utcnow()
    since = now - window

    posts = (
        db.query(Post)
        .filter(Post.created_at >= since, visible_post_clause(now))
        .order_by(desc(Post.trending_score), desc(Post.created_at))
        .limit(limit)
        .all()
    )

    sums = db.execute(
        select(*[func.coalesce(func.sum(getattr(Post, f"{kind}_count")), 0) for kind in REACTION_TYPES])
        .where(Post.created_at >= since, visible_post_clause(now))
    ).one()
    totals = sorted(
        ({"type": kind, "total": int(total)} for kind, total in zip(REACTION_TYPES, sums)),
        key=lambda item: item["total"],
        reverse=True,
    )
    return {"posts": posts, "reactions": totals, "timeframe": timeframe, "generated_at": now}

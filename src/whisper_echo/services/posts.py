"""Post lifecycle, comments and replies, per-user hiding and the explore listing."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, desc, func, select
from sqlalchemy.orm import Session

from whisper_echo.db.time import utcnow
from whisper_echo.models import Comment, CommentReaction, HiddenPost, Notification, Post, PostReaction, User
from whisper_echo.models.post import MEDIA_TYPES, POST_CATEGORIES, VANISH_DURATIONS, VISIBILITY_MODES
from whisper_echo.services import notifications
from whisper_echo.services.errors import Forbidden, NotFound, ValidationFailed
from whisper_echo.services.karma import record_post_for_streak
from whisper_echo.services.trending import refresh_trending
from whisper_echo.services.visibility import get_visible_post, not_hidden_by_clause, visible_post_clause

logger = logging.getLogger(__name__)

MAX_POST_TEXT = 2000
MAX_COMMENT_TEXT = 500
EDITABLE_FIELDS = ("text", "category", "tags", "visibility", "disguise_avatar")
EXPLORE_FILTERS = ("trending", "recent", "popular")


def validate_media(media: Sequence[dict[str, Any]] | None) -> list[dict[str, Any]]:
    items: list[dict[str, Any]] = []
    for entry in media or ():
        if not entry.get("url"):
            raise ValidationFailed("Media entries require a url")
        if entry.get("type") not in MEDIA_TYPES:
            raise ValidationFailed("Invalid media type")
        items.append(dict(entry))
    return items


def _validate_content(text: str, media: list[dict[str, Any]]) -> str:
    text = (text or "").strip()
    if not text and not media:
        raise ValidationFailed("Post must have text or media")
    if len(text) > MAX_POST_TEXT:
        raise ValidationFailed(f"Post text cannot exceed {MAX_POST_TEXT} characters")
    return text


def _validate_category(category: str) -> str:
    if category not in POST_CATEGORIES:
        raise ValidationFailed("Invalid category")
    return category


def _validate_visibility(visibility: str) -> str:
    if visibility not in VISIBILITY_MODES:
        raise ValidationFailed("Invalid visibility mode")
    return visibility


def create_post(
    db: Session,
    author: User,
    *,
    text: str = "",
    media: Sequence[dict[str, Any]] | None = None,
    category: str,
    tags: Sequence[str] | None = None,
    visibility: str = "normal",
    disguise_avatar: str | None = None,
    vanish_enabled: bool = False,
    vanish_duration: str | None = None,
    now: datetime | None = None,
) -> Post:
    """Create a post, bump the author's post count and advance their streak."""
    now = now or utcnow()
    media_items = validate_media(media)
    text = _validate_content(text, media_items)
    _validate_category(category)
    _validate_visibility(visibility)

    vanish_at = None
    if vanish_enabled:
        if vanish_duration not in VANISH_DURATIONS:
            raise ValidationFailed("Invalid vanish duration")
        vanish_at = now + timedelta(seconds=VANISH_DURATIONS[vanish_duration])

    post = Post(
        author_id=author.id,
        text=text,
        media=media_items,
        category=category,
        tags=[tag.strip() for tag in tags or () if tag and tag.strip()],
        visibility=visibility,
        disguise_avatar=disguise_avatar if visibility == "disguise" else None,
        vanish_enabled=vanish_enabled,
        vanish_duration=vanish_duration if vanish_enabled else None,
        vanish_at=vanish_at,
        created_at=now,
        updated_at=now,
    )
    post.set_reaction_counts({})
    db.add(post)

    author.posts_count = (author.posts_count or 0) + 1
    record_post_for_streak(author, now)

    db.commit()
    db.refresh(post)
    logger.info("User %s created post %s in %s", author.id, post.id, category)
    return post


def get_post(db: Session, post_id: int) -> Post:
    return get_visible_post(db, post_id)


def _get_owned_post(db: Session, post_id: int, user: User, action: str) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise NotFound("Post not found")
    if post.author_id != user.id:
        raise Forbidden(f"Not authorized to {action} this post")
    return post


def update_post(db: Session, post_id: int, user: User, changes: dict[str, Any]) -> Post:
    """Apply owner edits. Only text, category, tags and disguise settings change."""
    post = _get_owned_post(db, post_id, user, "edit")

    for key in EDITABLE_FIELDS:
        if key not in changes or changes[key] is None:
            continue
        value = changes[key]
        if key == "text":
            value = _validate_content(value, post.media)
        elif key == "category":
            _validate_category(value)
        elif key == "visibility":
            _validate_visibility(value)
        elif key == "tags":
            value = [tag.strip() for tag in value if tag and tag.strip()]
        setattr(post, key, value)

    if post.visibility != "disguise":
        post.disguise_avatar = None

    db.commit()
    db.refresh(post)
    return post


def delete_post(db: Session, post_id: int, user: User) -> None:
    """Hard-delete an owned post together with its ledgers and comments."""
    post = _get_owned_post(db, post_id, user, "delete")

    comment_ids = [row[0] for row in db.query(Comment.id).filter(Comment.post_id == post.id).all()]
    if comment_ids:
        db.execute(delete(CommentReaction).where(CommentReaction.comment_id.in_(comment_ids)))
    db.execute(delete(Comment).where(Comment.post_id == post.id))
    db.execute(delete(PostReaction).where(PostReaction.post_id == post.id))
    db.execute(delete(HiddenPost).where(HiddenPost.post_id == post.id))
    db.delete(post)

    user.posts_count = max((user.posts_count or 0) - 1, 0)
    db.commit()
    logger.info("User %s deleted post %s", user.id, post_id)


def _clean_comment(content: str) -> str:
    content = (content or "").strip()
    if not content:
        raise ValidationFailed("Comment content is required")
    if len(content) > MAX_COMMENT_TEXT:
        raise ValidationFailed(f"Comment cannot exceed {MAX_COMMENT_TEXT} characters")
    return content


def add_comment(
    db: Session,
    post_id: int,
    author: User,
    content: str,
    *,
    is_anonymous: bool = False,
) -> tuple[Comment, Notification | None]:
    """Append a comment, recompute trending and notify the post author.

    The notification of an anonymous comment does not name its author.
    """
    content = _clean_comment(content)
    post = get_visible_post(db, post_id)
    comment = Comment(post_id=post.id, author_id=author.id, content=content, is_anonymous=is_anonymous)
    db.add(comment)
    db.flush()

    post.comment_count = (post.comment_count or 0) + 1
    refresh_trending(post)

    notification = None
    post_author = db.get(User, post.author_id)
    if post_author is not None:
        notification = notifications.notify(
            db,
            recipient=post_author,
            actor=author,
            notification_type="comment",
            post_id=post.id,
            comment_id=comment.id,
            excerpt=content,
            anonymous=is_anonymous,
        )

    db.commit()
    db.refresh(comment)
    return comment, notification


def _with_authors(query) -> list[tuple[Comment, User]]:
    rows = (
        query.join(User, User.id == Comment.author_id)
        .order_by(Comment.created_at, Comment.id)
        .all()
    )
    return [(comment, user) for comment, user in rows]


def list_comments(db: Session, post_id: int) -> list[tuple[Comment, User]]:
    """Top-level comments of a visible post, oldest first."""
    post = get_visible_post(db, post_id)
    return _with_authors(
        db.query(Comment, User).filter(Comment.post_id == post.id, Comment.parent_id.is_(None)),
    )


def reply_counts(db: Session, comment_ids: list[int]) -> dict[int, int]:
    if not comment_ids:
        return {}
    rows = db.execute(
        select(Comment.parent_id, func.count())
        .where(Comment.parent_id.in_(comment_ids))
        .group_by(Comment.parent_id)
    ).all()
    return {parent_id: int(total) for parent_id, total in rows}


def _get_top_level_comment(db: Session, post_id: int, comment_id: int) -> Comment:
    comment = (
        db.query(Comment)
        .filter(Comment.id == comment_id, Comment.post_id == post_id, Comment.parent_id.is_(None))
        .first()
    )
    if comment is None:
        raise NotFound("Comment not found")
    return comment


def add_reply(
    db: Session,
    post_id: int,
    comment_id: int,
    author: User,
    content: str,
    *,
    is_anonymous: bool = False,
) -> tuple[Comment, Notification | None]:
    """Reply to a top-level comment and notify the comment's author.

    Replies are one level deep; replying to a reply is a NotFound.
    """
    content = _clean_comment(content)
    post = get_visible_post(db, post_id)
    parent = _get_top_level_comment(db, post.id, comment_id)

    reply = Comment(
        post_id=post.id,
        author_id=author.id,
        parent_id=parent.id,
        content=content,
        is_anonymous=is_anonymous,
    )
    db.add(reply)
    db.flush()

    notification = None
    parent_author = db.get(User, parent.author_id)
    if parent_author is not None:
        notification = notifications.notify(
            db,
            recipient=parent_author,
            actor=author,
            notification_type="reply",
            post_id=post.id,
            comment_id=parent.id,
            excerpt=content,
            anonymous=is_anonymous,
        )

    db.commit()
    db.refresh(reply)
    return reply, notification


def list_replies(db: Session, post_id: int, comment_id: int) -> list[tuple[Comment, User]]:
    post = get_visible_post(db, post_id)
    parent = _get_top_level_comment(db, post.id, comment_id)
    return _with_authors(db.query(Comment, User).filter(Comment.parent_id == parent.id))


def hide_post(db: Session, post_id: int, user: User) -> None:
    """Hide a post from the user's own feed and explore listings."""
    post = db.get(Post, post_id)
    if post is None:
        raise NotFound("Post not found")
    if db.get(HiddenPost, (user.id, post.id)) is not None:
        raise ValidationFailed("Post already hidden")
    db.add(HiddenPost(user_id=user.id, post_id=post.id))
    db.commit()
    logger.debug("User %s hid post %s", user.id, post.id)


def unhide_post(db: Session, post_id: int, user: User) -> None:
    entry = db.get(HiddenPost, (user.id, post_id))
    if entry is None:
        raise ValidationFailed("Post is not hidden")
    db.delete(entry)
    db.commit()


def explore_posts(
    db: Session,
    viewer_id: int | None = None,
    *,
    order: str = "trending",
    category: str | None = None,
    page: int = 1,
    limit: int = 20,
    now: datetime | None = None,
) -> list[Post]:
    """Return one page of every visible post, ranked by ``order``.

    Posts the viewer has hidden are left out.
    """
    if order not in EXPLORE_FILTERS:
        raise ValidationFailed("Invalid filter")
    query = db.query(Post).filter(visible_post_clause(now))
    if category:
        query = query.filter(Post.category == _validate_category(category))
    if viewer_id is not None:
        query = query.filter(not_hidden_by_clause(viewer_id))

    if order == "trending":
        query = query.order_by(desc(Post.trending_score), desc(Post.created_at), desc(Post.id))
    elif order == "popular":
        query = query.order_by(desc(Post.reaction_total), desc(Post.created_at), desc(Post.id))
    else:
        query = query.order_by(desc(Post.created_at), desc(Post.id))

    return query.offset((page - 1) * limit).limit(limit).all()


def list_user_posts(
    db: Session,
    username: str,
    page: int = 1,
    limit: int = 20,
    now: datetime | None = None,
) -> tuple[User, list[Post], int]:
    """Return a user's visible posts, newest first, and their total count."""
    user = db.query(User).filter(User.username == username).first()
    if user is None:
        raise NotFound("User not found")

    query = db.query(Post).filter(Post.author_id == user.id, visible_post_clause(now))
    total = query.count()
    posts = (
        query.order_by(desc(Post.created_at), desc(Post.id))
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return user, posts, total


def authors_by_id(db: Session, posts: Sequence[Post]) -> dict[int, User]:
    ids = {post.author_id for post in posts}
    if not ids:
        return {}
    return {user.id: user for user in db.query(User).filter(User.id.in_(ids)).all()}

"""Profiles and the echo (follow) graph."""
from __future__ import annotations

import random
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from whisper_echo.db.time import utcnow
from whisper_echo.models import Follow, Notification, User
from whisper_echo.models.post import POST_CATEGORIES
from whisper_echo.services import notifications
from whisper_echo.services.errors import NotFound, ValidationFailed

MAX_BIO = 500
NOTIFICATION_SETTINGS = ("notify_reactions", "notify_comments", "notify_followers", "notify_messages")
RECENT_JOIN_WINDOW = timedelta(days=30)


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def get_profile(db: Session, username: str) -> User:
    user = db.query(User).filter(User.username == username).first()
    if user is None:
        raise NotFound("User not found")
    return user


def is_echoing(db: Session, follower_id: int, followee_id: int) -> bool:
    return db.get(Follow, (follower_id, followee_id)) is not None


def update_profile(db: Session, user: User, changes: dict[str, Any]) -> User:
    """Update bio, avatar, category preferences and the notification and discovery switches."""
    if changes.get("bio") is not None:
        bio = changes["bio"].strip()
        if len(bio) > MAX_BIO:
            raise ValidationFailed(f"Bio cannot exceed {MAX_BIO} characters")
        user.bio = bio
    if changes.get("avatar") is not None:
        user.avatar = changes["avatar"]
    if changes.get("preferences") is not None:
        preferences = list(dict.fromkeys(changes["preferences"]))
        unknown = [category for category in preferences if category not in POST_CATEGORIES]
        if unknown:
            raise ValidationFailed(f"Invalid preferences: {', '.join(unknown)}")
        user.preferences = preferences
    for key in NOTIFICATION_SETTINGS:
        if changes.get(key) is not None:
            setattr(user, key, bool(changes[key]))
    if changes.get("allow_discovery") is not None:
        user.allow_discovery = bool(changes["allow_discovery"])

    db.commit()
    db.refresh(user)
    return user


def echo(db: Session, follower: User, followee_id: int) -> tuple[User, Notification | None]:
    """Start echoing (following) another user."""
    if follower.id == followee_id:
        raise ValidationFailed("Cannot echo yourself")
    target = get_user(db, followee_id)
    if is_echoing(db, follower.id, target.id):
        raise ValidationFailed("Already echoing this user")

    db.add(Follow(follower_id=follower.id, followee_id=target.id))
    follower.following_count = (follower.following_count or 0) + 1
    target.followers_count = (target.followers_count or 0) + 1
    notification = notifications.notify(
        db,
        recipient=target,
        actor=follower,
        notification_type="track",
    )
    db.commit()
    db.refresh(target)
    return target, notification


def unecho(db: Session, follower: User, followee_id: int) -> User:
    target = get_user(db, followee_id)
    edge = db.get(Follow, (follower.id, target.id))
    if edge is None:
        raise ValidationFailed("Not echoing this user")

    db.delete(edge)
    follower.following_count = max((follower.following_count or 0) - 1, 0)
    target.followers_count = max((target.followers_count or 0) - 1, 0)
    db.commit()
    db.refresh(target)
    return target


def discover_users(db: Session, viewer: User, limit: int = 10) -> list[User]:
    """Return a random sample of users sharing a preferred category with ``viewer``.

    Users the viewer already echoes and users who opted out of discovery are
    never suggested. A viewer without preferences gets no suggestions.
    """
    preferences = set(viewer.preferences or [])
    if not preferences:
        return []
    echoed = select(Follow.followee_id).where(Follow.follower_id == viewer.id)
    candidates = (
        db.query(User)
        .filter(
            User.id != viewer.id,
            User.id.not_in(echoed),
            User.allow_discovery.is_(True),
        )
        .all()
    )
    # Preferences are a JSON list, so the overlap test runs here.
    matching = [user for user in candidates if preferences.intersection(user.preferences or [])]
    return random.sample(matching, min(limit, len(matching)))


def echo_trail(db: Session, user_id: int) -> list[User]:
    """Users that ``user_id`` echoes, in the order they were echoed."""
    user = get_user(db, user_id)
    return (
        db.query(User)
        .join(Follow, Follow.followee_id == User.id)
        .filter(Follow.follower_id == user.id)
        .order_by(Follow.created_at, User.id)
        .all()
    )


def joined_recently(user: User, now: datetime | None = None) -> bool:
    now = now or utcnow()
    return user.created_at is not None and user.created_at > now - RECENT_JOIN_WINDOW

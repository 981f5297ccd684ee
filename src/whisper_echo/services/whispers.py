"""WhisperWall: anonymous, session-identified, expiring posts.

Every read path applies ``expires_at > now``; expired rows linger until
``purge_expired_whispers`` reaps them.
"""
from __future__ import annotations

import hashlib
import logging
import random
import secrets
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, desc, func, select
from sqlalchemy.orm import Session

from whisper_echo.core.settings import settings
from whisper_echo.db.time import utcnow
from whisper_echo.models import WhisperComment, WhisperPost, WhisperReaction
from whisper_echo.models.whisper import WHISPER_CATEGORIES
from whisper_echo.services.errors import NotFound, ValidationFailed
from whisper_echo.services.posts import MAX_COMMENT_TEXT, MAX_POST_TEXT, validate_media
from whisper_echo.services.reactions import validate_reaction_type
from whisper_echo.services.trending import refresh_trending
from whisper_echo.services.visibility import get_visible_whisper, visible_whisper_clause

logger = logging.getLogger(__name__)

ADJECTIVES = (
    "Blue", "Red", "Green", "Purple", "Golden", "Silver", "Crimson", "Azure",
    "Emerald", "Violet", "Amber", "Coral", "Jade", "Ruby", "Sapphire", "Onyx",
    "Pearl", "Diamond", "Crystal", "Shadow",
)
ANIMALS = (
    "Tiger", "Eagle", "Wolf", "Fox", "Bear", "Lion", "Panther", "Hawk",
    "Raven", "Phoenix", "Dragon", "Falcon", "Lynx", "Leopard", "Jaguar",
    "Cobra", "Viper", "Shark", "Whale", "Dolphin",
)

LIST_FILTERS = ("recent", "trending", "popular")
CHAIN_MESSAGE_MAX = 500
CONFESSION_CATEGORY = "Confession"
CHAIN_CATEGORY = "Random"
HEATMAP_WINDOW = timedelta(hours=24)

MOOD_BY_CATEGORY: dict[str, str] = {
    "Vent": "frustrated",
    "Confession": "secretive",
    "Comedy": "happy",
    "Music": "creative",
    "Gaming": "excited",
    "Advice": "thoughtful",
    "Random": "curious",
}


def generate_random_username(rng: random.Random | None = None) -> str:
    """Return a name like ``AzureFalcon42``."""
    rng = rng or random
    return f"{rng.choice(ADJECTIVES)}{rng.choice(ANIMALS)}{rng.randint(1, 99)}"


def whisper_session_id(header_value: str | None, client_host: str | None, user_agent: str | None) -> str:
    """Derive the anonymous session id for a request.

    An explicit ``X-Whisper-Session`` header wins; otherwise the id is a hash
    of the client address and user agent.
    """
    if header_value and header_value.strip():
        return header_value.strip()[:64]
    raw = f"{client_host or ''}{user_agent or ''}".encode()
    return hashlib.sha256(raw).hexdigest()


def _validate_category(category: str) -> str:
    if category not in WHISPER_CATEGORIES:
        raise ValidationFailed("Invalid category")
    return category


def create_whisper(
    db: Session,
    *,
    text: str = "",
    media: Sequence[dict[str, Any]] | None = None,
    category: str,
    tags: Sequence[str] | None = None,
    now: datetime | None = None,
) -> WhisperPost:
    now = now or utcnow()
    media_items = validate_media(media)
    text = (text or "").strip()
    if not text and not media_items:
        raise ValidationFailed("Whisper must have text or media")
    if len(text) > MAX_POST_TEXT:
        raise ValidationFailed(f"Whisper text cannot exceed {MAX_POST_TEXT} characters")
    _validate_category(category)

    whisper = WhisperPost(
        random_username=generate_random_username(),
        text=text,
        media=media_items,
        category=category,
        tags=[tag.strip() for tag in tags or () if tag and tag.strip()],
        expires_at=now + timedelta(hours=settings.whisper_ttl_hours),
        created_at=now,
    )
    whisper.set_reaction_counts({})
    db.add(whisper)
    db.commit()
    db.refresh(whisper)
    return whisper


def session_reactions(db: Session, whisper_ids: list[int], session_id: str | None) -> dict[int, str]:
    if not session_id or not whisper_ids:
        return {}
    rows = db.execute(
        select(WhisperReaction.whisper_id, WhisperReaction.reaction_type).where(
            WhisperReaction.session_id == session_id,
            WhisperReaction.whisper_id.in_(whisper_ids),
        )
    ).all()
    return {whisper_id: kind for whisper_id, kind in rows}


def list_whispers(
    db: Session,
    *,
    order: str = "recent",
    category: str | None = None,
    page: int = 1,
    limit: int = 20,
    now: datetime | None = None,
) -> tuple[list[WhisperPost], int]:
    """Return live whispers for one page and the total live count."""
    if order not in LIST_FILTERS:
        raise ValidationFailed("Invalid filter")
    query = db.query(WhisperPost).filter(visible_whisper_clause(now))
    if category:
        query = query.filter(WhisperPost.category == _validate_category(category))

    total = query.count()
    if order == "trending":
        query = query.order_by(desc(WhisperPost.trending_score), desc(WhisperPost.created_at))
    elif order == "popular":
        query = query.order_by(desc(WhisperPost.reaction_total), desc(WhisperPost.created_at))
    else:
        query = query.order_by(desc(WhisperPost.created_at), desc(WhisperPost.id))

    return query.offset((page - 1) * limit).limit(limit).all(), total


def get_whisper(db: Session, whisper_id: int, now: datetime | None = None) -> WhisperPost:
    return get_visible_whisper(db, whisper_id, now)


def _recount(db: Session, whisper: WhisperPost) -> None:
    rows = db.execute(
        select(WhisperReaction.reaction_type, func.count())
        .where(WhisperReaction.whisper_id == whisper.id)
        .group_by(WhisperReaction.reaction_type)
    ).all()
    whisper.set_reaction_counts({kind: int(total) for kind, total in rows})
    refresh_trending(whisper)


def add_whisper_reaction(
    db: Session,
    whisper_id: int,
    session_id: str,
    reaction_type: str,
) -> WhisperPost:
    """Set the session's reaction on a whisper. Whisper reactions carry no karma."""
    validate_reaction_type(reaction_type)
    whisper = get_visible_whisper(db, whisper_id)

    existing = db.get(WhisperReaction, (whisper.id, session_id))
    if existing is not None and existing.reaction_type == reaction_type:
        return whisper
    if existing is None:
        db.add(WhisperReaction(whisper_id=whisper.id, session_id=session_id, reaction_type=reaction_type))
    else:
        existing.reaction_type = reaction_type
        existing.created_at = utcnow()
    db.flush()
    _recount(db, whisper)
    db.commit()
    return whisper


def remove_whisper_reaction(db: Session, whisper_id: int, session_id: str) -> WhisperPost:
    whisper = get_visible_whisper(db, whisper_id)
    existing = db.get(WhisperReaction, (whisper.id, session_id))
    if existing is None:
        return whisper
    db.delete(existing)
    db.flush()
    _recount(db, whisper)
    db.commit()
    return whisper


def add_whisper_comment(db: Session, whisper_id: int, session_id: str, content: str) -> WhisperComment:
    content = (content or "").strip()
    if not content:
        raise ValidationFailed("Comment content is required")
    if len(content) > MAX_COMMENT_TEXT:
        raise ValidationFailed(f"Comment cannot exceed {MAX_COMMENT_TEXT} characters")

    whisper = get_visible_whisper(db, whisper_id)
    comment = WhisperComment(
        whisper_id=whisper.id,
        random_username=generate_random_username(),
        content=content,
        session_id=session_id,
    )
    db.add(comment)
    whisper.comment_count = (whisper.comment_count or 0) + 1
    refresh_trending(whisper)
    db.commit()
    db.refresh(comment)
    return comment


def list_whisper_comments(db: Session, whisper_id: int) -> list[WhisperComment]:
    whisper = get_visible_whisper(db, whisper_id)
    return (
        db.query(WhisperComment)
        .filter(WhisperComment.whisper_id == whisper.id)
        .order_by(WhisperComment.created_at, WhisperComment.id)
        .all()
    )


def create_whisper_chain(
    db: Session,
    message: str,
    *,
    is_forwarding: bool = False,
    chain_id: str | None = None,
    original_message: str | None = None,
    hop_count: int = 0,
    now: datetime | None = None,
) -> WhisperPost:
    """Start a new whisper chain or forward an existing one by one hop.

    When the chain already exists its stored hop count and original message
    are used instead of the values supplied by the client.
    """
    now = now or utcnow()
    message = (message or "").strip()
    if not message:
        raise ValidationFailed("Message is required")
    if len(message) > CHAIN_MESSAGE_MAX:
        raise ValidationFailed(f"Message cannot exceed {CHAIN_MESSAGE_MAX} characters")

    if is_forwarding:
        if chain_id:
            stored_hops, stored_original = db.execute(
                select(func.max(WhisperPost.hop_count), func.min(WhisperPost.original_message))
                .where(WhisperPost.chain_id == chain_id)
            ).one()
            if stored_hops is not None:
                hop_count = int(stored_hops)
                original_message = stored_original or original_message
        if hop_count >= settings.whisper_chain_max_hops:
            raise ValidationFailed("Chain has reached maximum hops")
        hop = hop_count + 1
        chain = chain_id or secrets.token_hex(12)
        original = original_message or message
    else:
        hop = 0
        chain = secrets.token_hex(12)
        original = message

    whisper = WhisperPost(
        random_username=generate_random_username(),
        text=message,
        media=[],
        category=CHAIN_CATEGORY,
        tags=[],
        is_chain_message=True,
        chain_id=chain,
        original_message=original,
        hop_count=hop,
        expires_at=now + timedelta(hours=settings.whisper_ttl_hours),
        created_at=now,
    )
    whisper.set_reaction_counts({})
    db.add(whisper)
    db.commit()
    db.refresh(whisper)
    return whisper


def create_confession(
    db: Session,
    content: str,
    room_id: str,
    theme: str | None = None,
    now: datetime | None = None,
) -> WhisperPost:
    """Post into a confession room; the post lives for the room's short TTL."""
    now = now or utcnow()
    content = (content or "").strip()
    room_id = (room_id or "").strip()
    if not content:
        raise ValidationFailed("Content is required")
    if len(content) > MAX_COMMENT_TEXT:
        raise ValidationFailed(f"Confession cannot exceed {MAX_COMMENT_TEXT} characters")
    if not room_id:
        raise ValidationFailed("Room id is required")

    whisper = WhisperPost(
        random_username=generate_random_username(),
        text=content,
        media=[],
        category=CONFESSION_CATEGORY,
        tags=[],
        confession_room_id=room_id,
        confession_theme=(theme or "General").strip() or "General",
        expires_at=now + timedelta(minutes=settings.confession_ttl_minutes),
        created_at=now,
    )
    whisper.set_reaction_counts({})
    db.add(whisper)
    db.commit()
    db.refresh(whisper)
    return whisper


def list_confession_room(
    db: Session,
    room_id: str,
    now: datetime | None = None,
) -> tuple[list[WhisperPost], datetime | None]:
    """Return live posts in a room, newest first, and when the room goes quiet."""
    posts = (
        db.query(WhisperPost)
        .filter(WhisperPost.confession_room_id == room_id, visible_whisper_clause(now))
        .order_by(desc(WhisperPost.created_at), desc(WhisperPost.id))
        .all()
    )
    active_until = max((post.expires_at for post in posts), default=None)
    return posts, active_until


def random_confession(db: Session, now: datetime | None = None) -> WhisperPost:
    confession = (
        db.query(WhisperPost)
        .filter(WhisperPost.category == CONFESSION_CATEGORY, visible_whisper_clause(now))
        .order_by(func.random())
        .first()
    )
    if confession is None:
        raise NotFound("No confessions available")
    return confession


def mood_heatmap(db: Session, now: datetime | None = None) -> list[dict[str, Any]]:
    """Group the last day's live whispers by category and map each to a mood."""
    now = now or utcnow()
    count = func.count(WhisperPost.id)
    rows = db.execute(
        select(
            WhisperPost.category,
            count,
            func.coalesce(func.sum(WhisperPost.reaction_total), 0),
            func.avg(WhisperPost.reaction_total),
        )
        .where(WhisperPost.created_at >= now - HEATMAP_WINDOW, visible_whisper_clause(now))
        .group_by(WhisperPost.category)
        .order_by(desc(count), WhisperPost.category)
    ).all()
    return [
        {
            "category": category,
            "emotion": MOOD_BY_CATEGORY.get(category, "neutral"),
            "intensity": min(int(total) / 10, 1.0),
            "count": int(total),
            "total_reactions": int(reactions or 0),
            "avg_reactions": float(avg or 0.0),
        }
        for category, total, reactions, avg in rows
    ]


def purge_expired_whispers(db: Session, now: datetime | None = None) -> int:
    """Delete expired whispers and their reactions and comments. Returns posts removed."""
    now = now or utcnow()
    expired_ids = select(WhisperPost.id).where(WhisperPost.expires_at <= now)
    db.execute(
        delete(WhisperReaction)
        .where(WhisperReaction.whisper_id.in_(expired_ids))
        .execution_options(synchronize_session=False)
    )
    db.execute(
        delete(WhisperComment)
        .where(WhisperComment.whisper_id.in_(expired_ids))
        .execution_options(synchronize_session=False)
    )
    result = db.execute(
        delete(WhisperPost)
        .where(WhisperPost.expires_at <= now)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    removed = int(result.rowcount or 0)
    if removed:
        logger.info("Purged %d expired whisper posts", removed)
    return removed

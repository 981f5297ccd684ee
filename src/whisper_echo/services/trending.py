"""Time-decayed trending scores for posts and whisper posts."""
from __future__ import annotations

from datetime import datetime

from whisper_echo.db.time import as_utc, utcnow
from whisper_echo.models import Post, WhisperPost

POST_DECAY = 0.9
WHISPER_DECAY = 0.95
REACTION_WEIGHT = 2
COMMENT_WEIGHT = 3


def trending_score(
    reaction_total: int,
    comment_count: int,
    created_at: datetime,
    *,
    decay: float,
    now: datetime | None = None,
) -> float:
    """Return ``(reactions*2 + comments*3) * decay**age_hours``."""
    now = now or utcnow()
    age_hours = max((as_utc(now) - as_utc(created_at)).total_seconds() / 3600.0, 0.0)
    raw = reaction_total * REACTION_WEIGHT + comment_count * COMMENT_WEIGHT
    return raw * (decay ** age_hours)


def refresh_trending(target: Post | WhisperPost, now: datetime | None = None) -> float:
    """Recompute and store the trending score of ``target``."""
    now = now or utcnow()
    decay = WHISPER_DECAY if isinstance(target, WhisperPost) else POST_DECAY
    target.trending_score = trending_score(
        target.reaction_total or 0,
        target.comment_count or 0,
        target.created_at or now,
        decay=decay,
        now=now,
    )
    target.trending_calculated_at = now
    return target.trending_score

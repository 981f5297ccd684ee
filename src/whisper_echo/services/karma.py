"""Karma and posting-streak counters kept on the user row."""
from __future__ import annotations

from datetime import date, datetime

from whisper_echo.db.time import as_utc
from whisper_echo.models import User

KARMA_WEIGHTS: dict[str, int] = {
    "funny": 2,
    "love": 3,
    "relatable": 3,
    "shock": 1,
    "rage": 1,
    "thinking": 2,
}


def karma_weight(reaction_type: str) -> int:
    """Return the karma weight of a reaction type."""
    return KARMA_WEIGHTS[reaction_type]


def apply_karma(user: User, delta: int) -> int:
    """Add ``delta`` to the user's karma and return the new score."""
    user.karma_score = (user.karma_score or 0) + delta
    return user.karma_score


def record_post_for_streak(user: User, posted_at: datetime | date) -> None:
    """Advance the user's posting streak for a post made at ``posted_at``.

    Days are compared as UTC calendar dates. A second post on the same day
    leaves the streak unchanged; a post on the following day extends it; any
    longer gap restarts it at one.
    """
    today = as_utc(posted_at).date() if isinstance(posted_at, datetime) else posted_at
    last = user.last_post_date
    current = user.current_streak or 0

    if last is None:
        current = 1
    else:
        gap = (today - last).days
        if gap == 0:
            current = max(current, 1)
        elif gap == 1:
            current += 1
        elif gap > 1:
            current = 1
        else:
            # Clock went backwards relative to the stored date; keep counters.
            return

    user.current_streak = current
    user.longest_streak = max(user.longest_streak or 0, current)
    user.last_post_date = today

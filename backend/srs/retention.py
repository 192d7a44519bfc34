"""Forgetting-curve retention estimates and empirical review statistics.

The estimate is a ranking proxy, not a fitted model:

    R = exp(-t / S),  S = EF * 1.3^repetitions

It decreases with elapsed time and increases with both ease factor and
repetitions, which is the ordering the due-card priority relies on.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from backend.srs.rating import PASS_THRESHOLD
from backend.srs.sm2 import CardState, ReviewEvent

STABILITY_GROWTH = 1.3
SECONDS_PER_DAY = 86400


def stability(ease_factor: float, repetitions: int) -> float:
    """Return the forgetting-curve stability (in days) for an SM-2 state."""
    return ease_factor * STABILITY_GROWTH**repetitions


def estimate_retention(days_since_review: float, ease_factor: float, repetitions: int) -> float:
    """Estimate the probability of recall after ``days_since_review`` days.

    Negative elapsed times are treated as zero (the card was just reviewed).
    """
    days = max(0.0, days_since_review)
    s = stability(ease_factor, max(0, repetitions))
    if s <= 0:
        return 0.0
    return min(1.0, max(0.0, math.exp(-days / s)))


def days_between(earlier: datetime, later: datetime) -> float:
    return (later - earlier).total_seconds() / SECONDS_PER_DAY


def days_overdue(state: CardState, now: datetime) -> int:
    """Whole days since the card became due (0 for new or not-yet-due cards)."""
    if state.next_review is None:
        return 0
    return max(0, math.floor(days_between(state.next_review, now)))


def elapsed_days(state: CardState, now: datetime) -> float:
    """Days since the card was last seen.

    Uses ``last_reviewed`` when known; otherwise reconstructs it as the
    scheduled interval plus however long the card has been overdue.
    """
    if state.last_reviewed is not None:
        return max(0.0, days_between(state.last_reviewed, now))
    return float(days_overdue(state, now) + state.interval)


def forgetting_risk(state: CardState, now: datetime) -> float:
    """Return 1 - retention; never-reviewed cards carry the maximum risk of 1."""
    if state.is_new and state.next_review is None:
        return 1.0
    retention = estimate_retention(elapsed_days(state, now), state.ease_factor, state.repetitions)
    return 1.0 - retention


@dataclass(frozen=True)
class RetentionStats:
    """Empirical review statistics over a review history."""

    retention_rate: float  # fraction of reviews rated >= 3
    average_rating: float
    total_reviews: int
    successful_reviews: int
    failed_reviews: int
    streak: int  # consecutive trailing successes


def calculate_retention_stats(events: Sequence[ReviewEvent]) -> RetentionStats:
    """Reduce a review history to success rate, average rating and pass streak.

    Events are ordered by timestamp before the trailing streak is counted;
    events sharing a timestamp keep their given order.
    """
    if not events:
        return RetentionStats(
            retention_rate=0.0,
            average_rating=0.0,
            total_reviews=0,
            successful_reviews=0,
            failed_reviews=0,
            streak=0,
        )

    ordered = sorted(events, key=lambda e: e.timestamp)
    successful = sum(1 for e in ordered if e.rating >= PASS_THRESHOLD)
    total = len(ordered)

    streak = 0
    for event in reversed(ordered):
        if event.rating < PASS_THRESHOLD:
            break
        streak += 1

    return RetentionStats(
        retention_rate=successful / total,
        average_rating=sum(int(e.rating) for e in ordered) / total,
        total_reviews=total,
        successful_reviews=successful,
        failed_reviews=total - successful,
        streak=streak,
    )

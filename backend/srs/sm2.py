"""SM-2 (SuperMemo 2) scheduling algorithm.

Key concepts:
- Ease factor (EF): multiplier controlling how fast intervals grow. Never below 1.3.
- Repetitions: consecutive successful recalls since the last failure.
- Interval: days until the next review.
- Rating: 1=Forgot, 2=Hard, 3=Good, 4=Easy, 5=Perfect (< 3 is a failure).

The ease factor is updated on every review, failures included, so it keeps
tracking how difficult the item is for this learner.

All functions here are pure: they take the current time as an argument and
return new values instead of mutating their inputs.
"""

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from backend.srs.rating import ReviewRating, parse_rating

INITIAL_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
INITIAL_INTERVAL = 1
SECOND_INTERVAL = 6


@dataclass(frozen=True)
class CardState:
    """The SM-2 memory state of a card."""

    repetitions: int = 0
    ease_factor: float = INITIAL_EASE_FACTOR
    interval: int = INITIAL_INTERVAL  # days
    last_reviewed: datetime | None = None
    next_review: datetime | None = None  # None means due immediately

    @classmethod
    def new(cls) -> "CardState":
        """Return the state of a freshly authored, never-reviewed card."""
        return cls()

    @property
    def is_new(self) -> bool:
        return self.last_reviewed is None

    def is_due(self, now: datetime) -> bool:
        return self.next_review is None or self.next_review <= now


@dataclass(frozen=True)
class ReviewEvent:
    """An immutable record of one applied review."""

    card_id: int
    rating: ReviewRating
    timestamp: datetime
    resulting_interval: int


@dataclass(frozen=True)
class ReviewResult:
    """The outcome of :func:`apply_review`: the new state plus its log record."""

    previous_state: CardState
    new_state: CardState
    event: ReviewEvent


def update_ease_factor(ease_factor: float, rating: int) -> float:
    """EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored at 1.3."""
    miss = 5 - rating
    return max(MIN_EASE_FACTOR, ease_factor + (0.1 - miss * (0.08 + miss * 0.02)))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def review(state: CardState, rating: int, now: datetime) -> CardState:
    """Apply one review rating to a card state.

    Args:
        state: Current card state.
        rating: Review rating on the 5-point scale.
        now: The time of the review.

    Returns:
        A new CardState; ``state`` is left untouched.

    Raises:
        InvalidRating: If ``rating`` is not an integer in [1, 5].
    """
    rating = parse_rating(rating)
    ease_factor = update_ease_factor(state.ease_factor, rating)

    if rating.is_pass:
        if state.repetitions == 0:
            interval = INITIAL_INTERVAL
        elif state.repetitions == 1:
            interval = SECOND_INTERVAL
        else:
            interval = max(1, _round_half_up(state.interval * ease_factor))
        repetitions = state.repetitions + 1
    else:
        interval = INITIAL_INTERVAL
        repetitions = 0

    return replace(
        state,
        repetitions=repetitions,
        ease_factor=ease_factor,
        interval=interval,
        last_reviewed=now,
        next_review=now + timedelta(days=interval),
    )


def quick_review(rating: int, now: datetime) -> CardState:
    """Schedule a card that has no stored history (quick practice mode).

    Runs the regular SM-2 transition from a fresh state so that practice
    reviews and graded reviews produce the same schedule.
    """
    return review(CardState.new(), rating, now)


def apply_review(card_id: int, state: CardState, rating: int, now: datetime) -> ReviewResult:
    """Review a card and produce the ReviewEvent to append to its history."""
    new_state = review(state, rating, now)
    event = ReviewEvent(
        card_id=card_id,
        rating=parse_rating(rating),
        timestamp=now,
        resulting_interval=new_state.interval,
    )
    return ReviewResult(previous_state=state, new_state=new_state, event=event)

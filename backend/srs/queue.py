"""Due-card selection and review queue management.

Selects the cards that are due, orders them so the cards most likely to be
forgotten come first, and builds session queues that mix new cards into
reviews without overwhelming the learner.
"""

import logging
from collections.abc import Hashable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from backend.config import settings
from backend.srs.errors import MalformedItem
from backend.srs.retention import days_overdue, forgetting_risk
from backend.srs.sm2 import MIN_EASE_FACTOR, CardState

logger = logging.getLogger(__name__)


class SchedulableItem(Protocol):
    """Anything with an identity, a deck and an SM-2 state."""

    id: Any
    deck_id: Any

    @property
    def state(self) -> CardState: ...


@dataclass(frozen=True)
class DueItem:
    """A plain item for callers that do not have their own card type."""

    id: Hashable
    deck_id: Hashable
    state: CardState


@dataclass
class DueSelection:
    """Due items in priority order plus the items that had to be skipped."""

    items: list[Any] = field(default_factory=list)
    rejected: list[MalformedItem] = field(default_factory=list)


@dataclass(frozen=True)
class DuePriority:
    """How urgent one due card is."""

    id: Hashable
    days_overdue: int
    priority: float  # 1 - estimated retention


def _checked_state(item: object) -> CardState:
    """Return the item's state or raise MalformedItem if it cannot be scheduled."""
    if getattr(item, "id", None) is None:
        raise MalformedItem(item, "item has no id")
    state = getattr(item, "state", None)
    if not isinstance(state, CardState):
        raise MalformedItem(item, "item has no card state")
    if not isinstance(state.repetitions, int) or state.repetitions < 0:
        raise MalformedItem(item, f"invalid repetitions {state.repetitions!r}")
    if not isinstance(state.ease_factor, int | float) or not state.ease_factor >= MIN_EASE_FACTOR:
        raise MalformedItem(item, f"invalid ease factor {state.ease_factor!r}")
    if not isinstance(state.interval, int) or state.interval < 0:
        raise MalformedItem(item, f"invalid interval {state.interval!r}")
    if state.next_review is not None and not isinstance(state.next_review, datetime):
        raise MalformedItem(item, f"invalid next review {state.next_review!r}")
    if state.last_reviewed is not None and not isinstance(state.last_reviewed, datetime):
        raise MalformedItem(item, f"invalid last reviewed {state.last_reviewed!r}")
    return state


def partition_due(
    items: Iterable[SchedulableItem],
    now: datetime,
    scope: Hashable | None = None,
) -> DueSelection:
    """Select the due items, skipping and reporting malformed ones.

    An item is due when it has no next review date or that date is not after
    ``now``. Due items are ordered by forgetting risk (highest first), then by
    next review date (oldest first, never-scheduled cards before all dated ones).

    Args:
        items: Candidate items; each needs ``id``, ``deck_id`` and ``state``.
        now: Current time.
        scope: If given, only items whose ``deck_id`` equals it are considered.

    Returns:
        A DueSelection. Malformed items never abort the batch.
    """
    selection = DueSelection()
    ranked: list[tuple[float, bool, datetime, Any]] = []

    for item in items:
        if scope is not None and getattr(item, "deck_id", None) != scope:
            continue
        try:
            state = _checked_state(item)
        except MalformedItem as exc:
            logger.warning("Skipping malformed item %r: %s", getattr(item, "id", None), exc.reason)
            selection.rejected.append(exc)
            continue
        if not state.is_due(now):
            continue
        # Undated cards sort first without comparing a placeholder against real dates
        scheduled = state.next_review is not None
        ranked.append((forgetting_risk(state, now), scheduled, state.next_review if scheduled else now, item))

    ranked.sort(key=lambda entry: (-entry[0], entry[1], entry[2]))
    selection.items = [item for *_, item in ranked]
    return selection


def select_due(
    items: Iterable[SchedulableItem],
    now: datetime,
    scope: Hashable | None = None,
) -> list[Any]:
    """Return the due items in priority order. See :func:`partition_due`."""
    return partition_due(items, now, scope).items


def prioritize(items: Iterable[SchedulableItem], now: datetime, scope: Hashable | None = None) -> list[DuePriority]:
    """Return an urgency report for every due item, highest priority first."""
    return [
        DuePriority(
            id=item.id,
            days_overdue=days_overdue(item.state, now),
            priority=forgetting_risk(item.state, now),
        )
        for item in select_due(items, now, scope)
    ]


@dataclass
class QueueConfig:
    """Configuration for queue building."""

    max_reviews: int = settings.max_reviews_per_session
    max_new: int = settings.max_new_cards_per_session
    new_card_ratio: float = settings.new_card_ratio


@dataclass
class ReviewQueue:
    """A prepared queue of cards for a review session."""

    due_cards: list[Any] = field(default_factory=list)
    new_cards: list[Any] = field(default_factory=list)
    total: int = 0

    def interleaved(self) -> list[Any]:
        """Return cards interleaved: mostly reviews with new cards mixed in.

        Strategy: Insert new cards at regular intervals within the review queue
        to maintain engagement without overwhelming with unfamiliar material.
        """
        if not self.new_cards:
            return list(self.due_cards)
        if not self.due_cards:
            return list(self.new_cards)

        result: list[Any] = []
        due = list(self.due_cards)
        new = list(self.new_cards)

        # Insert a new card every N reviews
        interval = max(1, len(due) // (len(new) + 1))
        new_idx = 0

        for i, card in enumerate(due):
            result.append(card)
            if new_idx < len(new) and (i + 1) % interval == 0:
                result.append(new[new_idx])
                new_idx += 1

        # Append any remaining new cards at the end
        result.extend(new[new_idx:])
        return result


def build_queue(
    items: Sequence[SchedulableItem],
    now: datetime,
    scope: Hashable | None = None,
    config: QueueConfig | None = None,
) -> ReviewQueue:
    """Build a session queue from the due items.

    Cards that have been reviewed before are limited to ``max_reviews``; new
    cards get ``new_card_ratio`` slots per review (at least one) capped at
    ``max_new``.
    """
    config = config or QueueConfig()
    due = select_due(items, now, scope)

    reviews = [item for item in due if not item.state.is_new][: config.max_reviews]
    new_card_slots = min(
        config.max_new,
        max(1, int(len(reviews) * config.new_card_ratio)),
    )
    new_cards = [item for item in due if item.state.is_new][:new_card_slots]

    queue = ReviewQueue(
        due_cards=reviews,
        new_cards=new_cards,
        total=len(reviews) + len(new_cards),
    )
    logger.info(
        "Built queue for deck %s: %d due + %d new = %d total",
        scope if scope is not None else "*",
        len(reviews),
        len(new_cards),
        queue.total,
    )
    return queue

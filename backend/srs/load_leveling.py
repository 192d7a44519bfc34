"""Review load leveling and forecasting.

Intervals computed card by card tend to cluster (many cards pass through the
1-day and 6-day rungs together), which makes daily workloads spiky.
``level_load`` pushes reviews off overloaded days onto the next day with
spare capacity, looking at most ``bounded_scan_days`` ahead. Reviews are
only ever moved later, never earlier.
"""

import logging
from collections import Counter
from collections.abc import Hashable, Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from backend.config import settings
from backend.srs.errors import InvalidCapacity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduledItem:
    """An item with a tentative next review time."""

    id: Hashable
    next_review: datetime


def level_load(
    items: Sequence[ScheduledItem],
    max_per_day: int | None = None,
    bounded_scan_days: int | None = None,
) -> dict[Hashable, datetime]:
    """Spread reviews so no day exceeds ``max_per_day`` where possible.

    Items are processed in ascending ``next_review`` order. An item whose day
    is full moves to the first of the following ``bounded_scan_days`` days
    with room, keeping its time of day. If none has room it stays on its
    original day, accepting the overload rather than drifting further.

    Args:
        items: Items with their tentative review times.
        max_per_day: Daily capacity (defaults to ``settings.max_per_day``).
        bounded_scan_days: How many days ahead to look (defaults to
            ``settings.bounded_scan_days``).

    Returns:
        Mapping of item id to its assigned review time.

    Raises:
        InvalidCapacity: If ``max_per_day`` is not positive or
            ``bounded_scan_days`` is negative.
    """
    max_per_day = settings.max_per_day if max_per_day is None else max_per_day
    bounded_scan_days = settings.bounded_scan_days if bounded_scan_days is None else bounded_scan_days
    if max_per_day <= 0:
        raise InvalidCapacity(f"max_per_day must be positive, got {max_per_day}")
    if bounded_scan_days < 0:
        raise InvalidCapacity(f"bounded_scan_days must not be negative, got {bounded_scan_days}")

    schedule: dict[Hashable, datetime] = {}
    daily_load: Counter[date] = Counter()
    moved = 0

    for item in sorted(items, key=lambda i: i.next_review):
        review_time = item.next_review
        day = review_time.date()

        if daily_load[day] >= max_per_day:
            for offset in range(1, bounded_scan_days + 1):
                alternative = day + timedelta(days=offset)
                if daily_load[alternative] < max_per_day:
                    review_time = item.next_review + timedelta(days=offset)
                    day = alternative
                    moved += 1
                    logger.debug("Moved item %r from %s to %s", item.id, item.next_review.date(), day)
                    break

        daily_load[day] += 1
        schedule[item.id] = review_time

    overloaded = sum(1 for count in daily_load.values() if count > max_per_day)
    logger.info(
        "Leveled %d reviews: %d moved, %d day(s) still over %d",
        len(schedule),
        moved,
        overloaded,
        max_per_day,
    )
    return schedule


def forecast_load(
    next_reviews: Iterable[datetime | None],
    today: date,
    days: int | None = None,
) -> list[int]:
    """Count scheduled reviews per day for ``days`` days starting at ``today``.

    Cards with no next review, and cards already overdue, count for today.
    Reviews beyond the horizon are ignored.
    """
    days = settings.forecast_days if days is None else days
    load = [0] * max(0, days)
    if not load:
        return load

    for next_review in next_reviews:
        if next_review is None:
            load[0] += 1
            continue
        offset = (next_review.date() - today).days
        if offset < 0:
            load[0] += 1
        elif offset < days:
            load[offset] += 1
    return load

"""Planning-time jobs that run outside individual reviews."""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from backend.srs.errors import StaleWriteError
from backend.srs.load_leveling import ScheduledItem, forecast_load, level_load
from backend.srs.repository import SqlCardRepository

logger = logging.getLogger(__name__)


@dataclass
class LevelingReport:
    """What a leveling run changed."""

    considered: int = 0
    moved: dict[int, tuple[datetime, datetime]] = field(default_factory=dict)
    skipped: list[int] = field(default_factory=list)  # cards reviewed while leveling


async def level_deck(
    db: AsyncSession,
    deck_id: int,
    now: datetime,
    max_per_day: int | None = None,
    bounded_scan_days: int | None = None,
) -> LevelingReport:
    """Level the upcoming reviews of a deck and persist the shifted dates.

    Only reviews scheduled after ``now`` are considered; cards that are
    already due stay due. A card reviewed concurrently keeps its fresh
    schedule and is reported in ``skipped``.
    """
    repo = SqlCardRepository(db)
    cards = [
        card
        for card in await repo.list_by_deck(deck_id)
        if card.next_review is not None and card.next_review > now
    ]
    states = {card.id: card.state for card in cards}
    schedule = level_load(
        [ScheduledItem(id=card_id, next_review=state.next_review) for card_id, state in states.items()],
        max_per_day=max_per_day,
        bounded_scan_days=bounded_scan_days,
    )

    report = LevelingReport(considered=len(cards))
    for card_id, assigned in schedule.items():
        state = states[card_id]
        if assigned == state.next_review:
            continue
        try:
            await repo.put(card_id, replace(state, next_review=assigned), expected=state)
        except StaleWriteError:
            report.skipped.append(card_id)
            continue
        report.moved[card_id] = (state.next_review, assigned)

    await db.commit()
    logger.info(
        "Leveled deck %d: %d upcoming, %d moved, %d skipped",
        deck_id,
        report.considered,
        len(report.moved),
        len(report.skipped),
    )
    return report


async def deck_forecast(db: AsyncSession, deck_id: int, now: datetime, days: int | None = None) -> list[int]:
    """Return the per-day review load of a deck starting today."""
    cards = await SqlCardRepository(db).list_by_deck(deck_id)
    return forecast_load((card.next_review for card in cards), now.date(), days)

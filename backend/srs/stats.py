"""Deck-level statistics for dashboards and the CLI."""

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import settings
from backend.models.card import Card
from backend.models.review_log import ReviewLog
from backend.srs.load_leveling import forecast_load
from backend.srs.queue import partition_due
from backend.srs.repository import SqlCardRepository
from backend.srs.retention import RetentionStats, calculate_retention_stats, elapsed_days, estimate_retention


@dataclass
class DeckStats:
    total_cards: int
    cards_due: int
    cards_new: int
    cards_mature: int
    average_estimated_retention: float | None
    review_stats: RetentionStats
    forecast: list[int] = field(default_factory=list)


async def collect_deck_stats(
    db: AsyncSession,
    deck_id: int,
    now: datetime,
    forecast_days: int | None = None,
) -> DeckStats:
    """Gather card counts, review history statistics and the load forecast for a deck."""
    cards = await SqlCardRepository(db).list_by_deck(deck_id)

    stmt = (
        select(ReviewLog)
        .join(Card, Card.id == ReviewLog.card_id)
        .where(Card.deck_id == deck_id)
        .order_by(ReviewLog.reviewed_at.asc(), ReviewLog.id.asc())
    )
    logs = (await db.execute(stmt)).scalars().all()

    reviewed = [card.state for card in cards if not card.state.is_new]
    estimates = [
        estimate_retention(elapsed_days(state, now), state.ease_factor, state.repetitions)
        for state in reviewed
    ]

    return DeckStats(
        total_cards=len(cards),
        cards_due=len(partition_due(cards, now).items),
        cards_new=sum(1 for card in cards if card.state.is_new),
        cards_mature=sum(1 for card in cards if card.repetitions >= settings.mature_repetitions),
        average_estimated_retention=sum(estimates) / len(estimates) if estimates else None,
        review_stats=calculate_retention_stats([log.to_event() for log in logs]),
        forecast=forecast_load((card.next_review for card in cards), now.date(), forecast_days),
    )

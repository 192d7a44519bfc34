"""API routes for deck statistics and dashboard data."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deck_router import get_deck_or_404
from backend.api.schemas import DeckStatsResponse
from backend.config import utcnow
from backend.database import get_session
from backend.srs.stats import collect_deck_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("/{deck_id}", response_model=DeckStatsResponse)
async def get_deck_stats(
    deck_id: int,
    db: AsyncSession = Depends(get_session),
) -> DeckStatsResponse:
    """Get overall statistics for a deck."""
    await get_deck_or_404(db, deck_id)
    stats = await collect_deck_stats(db, deck_id, utcnow())
    reviews = stats.review_stats

    return DeckStatsResponse(
        total_cards=stats.total_cards,
        cards_due=stats.cards_due,
        cards_new=stats.cards_new,
        cards_mature=stats.cards_mature,
        average_estimated_retention=(
            round(stats.average_estimated_retention, 3)
            if stats.average_estimated_retention is not None
            else None
        ),
        retention_rate=round(reviews.retention_rate, 3),
        average_rating=round(reviews.average_rating, 3),
        total_reviews=reviews.total_reviews,
        streak=reviews.streak,
        forecast=stats.forecast,
    )

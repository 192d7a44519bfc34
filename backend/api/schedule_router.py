"""API routes for planning-time scheduling jobs."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deck_router import get_deck_or_404
from backend.api.schemas import ForecastResponse, LevelRequest, LevelResponse, MovedReview
from backend.config import utcnow
from backend.database import get_session
from backend.srs.errors import InvalidCapacity
from backend.srs.planning import deck_forecast, level_deck

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/schedule", tags=["schedule"])


@router.post("/{deck_id}/level", response_model=LevelResponse)
async def level_deck_load(
    deck_id: int,
    request: LevelRequest,
    db: AsyncSession = Depends(get_session),
) -> LevelResponse:
    """Spread a deck's upcoming reviews so no day exceeds the daily capacity."""
    await get_deck_or_404(db, deck_id)
    try:
        report = await level_deck(
            db,
            deck_id,
            utcnow(),
            max_per_day=request.max_per_day,
            bounded_scan_days=request.bounded_scan_days,
        )
    except InvalidCapacity as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return LevelResponse(
        considered=report.considered,
        moved=[
            MovedReview(card_id=card_id, original=original, assigned=assigned)
            for card_id, (original, assigned) in report.moved.items()
        ],
        skipped=report.skipped,
    )


@router.get("/{deck_id}/forecast", response_model=ForecastResponse)
async def forecast(
    deck_id: int,
    days: int | None = None,
    db: AsyncSession = Depends(get_session),
) -> ForecastResponse:
    """Get the number of reviews due per day, starting today."""
    await get_deck_or_404(db, deck_id)
    now = utcnow()
    load = await deck_forecast(db, deck_id, now, days)
    return ForecastResponse(
        deck_id=deck_id,
        start=datetime.combine(now.date(), datetime.min.time()),
        daily_load=load,
    )

"""API routes for review sessions."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.schemas import (
    NextCardResponse,
    RatingRequest,
    RatingResponse,
    SessionStartResponse,
    SessionStatsResponse,
)
from backend.database import get_session
from backend.srs.errors import InvalidRating, StaleWriteError
from backend.srs.session import ReviewSession, start_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/session", tags=["session"])

# In-memory session store (for MVP; move to Redis for production)
_active_sessions: dict[str, ReviewSession] = {}


def _get_review_session(session_id: str) -> ReviewSession:
    review_session = _active_sessions.get(session_id)
    if not review_session:
        raise HTTPException(status_code=404, detail="Session not found")
    return review_session


@router.post("/start", response_model=SessionStartResponse)
async def session_start(
    deck_id: int | None = None,
    db: AsyncSession = Depends(get_session),
) -> SessionStartResponse:
    """Start a new review session, optionally scoped to one deck."""
    review_session = await start_session(db, deck_id)

    if review_session.queue.total == 0:
        raise HTTPException(status_code=404, detail="No cards available for review")

    session_id = str(uuid.uuid4())
    _active_sessions[session_id] = review_session

    return SessionStartResponse(
        session_id=session_id,
        deck_id=deck_id,
        total_cards=review_session.queue.total,
        due_cards=len(review_session.queue.due_cards),
        new_cards=len(review_session.queue.new_cards),
    )


@router.get("/next/{session_id}", response_model=NextCardResponse)
async def session_next(
    session_id: str,
    db: AsyncSession = Depends(get_session),
) -> NextCardResponse:
    """Get the next card in the session."""
    review_session = _get_review_session(session_id)

    session_card = await review_session.get_next(db)
    if session_card is None:
        raise HTTPException(status_code=410, detail="Session is complete")

    return NextCardResponse(
        card_id=session_card.card.id,
        front=session_card.card.front,
        back=session_card.card.back,
        repetitions=session_card.card_state.repetitions,
        interval=session_card.card_state.interval,
        is_new=session_card.card_state.is_new,
        remaining=review_session.remaining,
    )


@router.post("/answer/{session_id}", response_model=RatingResponse)
async def session_answer(
    session_id: str,
    request: RatingRequest,
    db: AsyncSession = Depends(get_session),
) -> RatingResponse:
    """Rate the current card and persist its new schedule."""
    review_session = _get_review_session(session_id)

    session_card = await review_session.get_next(db)
    if session_card is None:
        raise HTTPException(status_code=410, detail="Session is complete")

    # A duplicate submission for an already-rated card must not be applied again
    if session_card.card.id != request.card_id:
        raise HTTPException(status_code=409, detail="Card ID mismatch")

    try:
        result = await review_session.submit_rating(
            db=db,
            session_card=session_card,
            rating=request.rating,
            four_point=request.four_point,
        )
    except InvalidRating as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except StaleWriteError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    new_state = result.new_state
    return RatingResponse(
        applied_rating=int(result.event.rating),
        repetitions=new_state.repetitions,
        ease_factor=new_state.ease_factor,
        interval=new_state.interval,
        next_review=new_state.next_review,
        remaining=review_session.remaining,
        session_complete=review_session.is_complete,
    )


@router.get("/stats/{session_id}", response_model=SessionStatsResponse)
async def session_stats(session_id: str) -> SessionStatsResponse:
    """Get stats for the current session."""
    s = _get_review_session(session_id).stats
    return SessionStatsResponse(
        cards_reviewed=s.cards_reviewed,
        passed=s.passed,
        failed=s.failed,
        new_cards_seen=s.new_cards_seen,
        average_rating=s.average_rating,
    )


@router.post("/end/{session_id}")
async def session_end(session_id: str) -> dict:
    """End a session and clean up."""
    review_session = _active_sessions.pop(session_id, None)
    if not review_session:
        raise HTTPException(status_code=404, detail="Session not found")

    s = review_session.stats
    return {
        "status": "ended",
        "cards_reviewed": s.cards_reviewed,
        "passed": s.passed,
        "failed": s.failed,
    }

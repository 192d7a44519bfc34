"""API routes for decks and cards."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.schemas import (
    CardCreateRequest,
    CardResponse,
    DeckCreateRequest,
    DeckResponse,
    DuePriorityResponse,
)
from backend.config import utcnow
from backend.database import get_session
from backend.models.card import Card
from backend.models.deck import Deck
from backend.srs.queue import prioritize
from backend.srs.repository import SqlCardRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/decks", tags=["decks"])


def _card_response(card: Card) -> CardResponse:
    return CardResponse(
        id=card.id,
        deck_id=card.deck_id,
        front=card.front,
        back=card.back,
        repetitions=card.repetitions,
        ease_factor=card.ease_factor,
        interval=card.interval,
        last_reviewed=card.last_reviewed,
        next_review=card.next_review,
    )


async def get_deck_or_404(db: AsyncSession, deck_id: int) -> Deck:
    deck = await db.get(Deck, deck_id)
    if deck is None:
        raise HTTPException(status_code=404, detail="Deck not found")
    return deck


@router.post("", response_model=DeckResponse, status_code=201)
async def create_deck(
    request: DeckCreateRequest,
    db: AsyncSession = Depends(get_session),
) -> DeckResponse:
    """Create an empty deck."""
    deck = Deck(name=request.name, description=request.description, owner_id=request.owner_id)
    db.add(deck)
    await db.commit()
    await db.refresh(deck)
    return DeckResponse(id=deck.id, name=deck.name, description=deck.description, owner_id=deck.owner_id)


@router.post("/{deck_id}/cards", response_model=CardResponse, status_code=201)
async def add_card(
    deck_id: int,
    request: CardCreateRequest,
    db: AsyncSession = Depends(get_session),
) -> CardResponse:
    """Add a new, immediately due card to a deck."""
    await get_deck_or_404(db, deck_id)
    card = Card(deck_id=deck_id, front=request.front, back=request.back)
    db.add(card)
    await db.commit()
    await db.refresh(card)
    return _card_response(card)


@router.get("/{deck_id}/cards", response_model=list[CardResponse])
async def list_cards(
    deck_id: int,
    db: AsyncSession = Depends(get_session),
) -> list[CardResponse]:
    await get_deck_or_404(db, deck_id)
    cards = await SqlCardRepository(db).list_by_deck(deck_id)
    return [_card_response(card) for card in cards]


@router.get("/{deck_id}/due", response_model=list[DuePriorityResponse])
async def due_cards(
    deck_id: int,
    db: AsyncSession = Depends(get_session),
) -> list[DuePriorityResponse]:
    """List the deck's due cards, most at risk of being forgotten first."""
    await get_deck_or_404(db, deck_id)
    cards = await SqlCardRepository(db).list_by_deck(deck_id)
    return [
        DuePriorityResponse(card_id=p.id, days_overdue=p.days_overdue, priority=round(p.priority, 4))
        for p in prioritize(cards, utcnow(), scope=deck_id)
    ]

"""Shared builders for database-backed tests."""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from backend.models.card import Card
from backend.models.deck import Deck


async def make_deck(db: AsyncSession, name: str = "Biology", cards: int = 0) -> Deck:
    deck = Deck(name=name)
    db.add(deck)
    await db.flush()
    for i in range(cards):
        db.add(Card(deck_id=deck.id, front=f"Q{i}", back=f"A{i}"))
    await db.commit()
    return deck


async def make_card(
    db: AsyncSession,
    deck: Deck,
    repetitions: int = 0,
    ease_factor: float = 2.5,
    interval: int = 1,
    last_reviewed: datetime | None = None,
    next_review: datetime | None = None,
) -> Card:
    card = Card(
        deck_id=deck.id,
        front="front",
        back="back",
        repetitions=repetitions,
        ease_factor=ease_factor,
        interval=interval,
        last_reviewed=last_reviewed,
        next_review=next_review,
    )
    db.add(card)
    await db.commit()
    return card

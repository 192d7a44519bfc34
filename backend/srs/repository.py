"""Card storage for the scheduler.

The scheduler itself never touches storage. Session and planning code go
through :class:`CardRepository`, whose ``put`` refuses stale writes so a
duplicated or retried review can never be silently lost or applied twice.
"""

import logging
from collections.abc import Sequence
from typing import Protocol

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.models.card import Card
from backend.srs.errors import CardNotFound, StaleWriteError
from backend.srs.sm2 import CardState

logger = logging.getLogger(__name__)


class CardRepository(Protocol):
    async def get(self, card_id: int) -> CardState: ...

    async def put(self, card_id: int, state: CardState, expected: CardState | None = None) -> None: ...

    async def list_by_deck(self, deck_id: int) -> Sequence[Card]: ...


class SqlCardRepository:
    """SQLAlchemy-backed card repository.

    Writes are conditional. With ``expected`` the update is a compare-and-swap
    on the previous ``repetitions`` and ``next_review``; without it the write
    wins only if it is not older than the stored ``last_reviewed``.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_card(self, card_id: int) -> Card:
        card = await self.db.get(Card, card_id, populate_existing=True)
        if card is None:
            raise CardNotFound(card_id)
        return card

    async def get(self, card_id: int) -> CardState:
        return (await self.get_card(card_id)).state

    async def put(self, card_id: int, state: CardState, expected: CardState | None = None) -> None:
        """Persist a new state for a card.

        Raises:
            CardNotFound: If the card does not exist.
            StaleWriteError: If the stored state no longer matches.
        """
        if expected is not None:
            next_review_matches = (
                Card.next_review.is_(None)
                if expected.next_review is None
                else Card.next_review == expected.next_review
            )
            condition = and_(
                Card.id == card_id,
                Card.repetitions == expected.repetitions,
                next_review_matches,
            )
        else:
            condition = and_(Card.id == card_id)
            if state.last_reviewed is not None:
                condition = and_(
                    condition,
                    (Card.last_reviewed.is_(None)) | (Card.last_reviewed <= state.last_reviewed),
                )

        stmt = (
            update(Card)
            .where(condition)
            .values(
                repetitions=state.repetitions,
                ease_factor=state.ease_factor,
                interval=state.interval,
                last_reviewed=state.last_reviewed,
                next_review=state.next_review,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            if await self.db.get(Card, card_id) is None:
                raise CardNotFound(card_id)
            logger.warning("Rejected stale write for card %d", card_id)
            raise StaleWriteError(card_id)

    async def list_by_deck(self, deck_id: int) -> list[Card]:
        stmt = (
            select(Card)
            .where(Card.deck_id == deck_id)
            .order_by(Card.id.asc())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_all(self) -> list[Card]:
        stmt = select(Card).order_by(Card.id.asc()).execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

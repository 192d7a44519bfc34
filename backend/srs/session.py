"""Review session orchestrator.

Coordinates due-card selection, the SM-2 scheduler, persistence and review
logging into a cohesive session flow.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from backend.config import Clock, settings, utcnow
from backend.models.card import Card
from backend.models.review_log import ReviewLog
from backend.srs.errors import CardNotFound, StaleWriteError
from backend.srs.queue import QueueConfig, ReviewQueue, build_queue
from backend.srs.rating import ReviewRating, from_four_point, parse_rating
from backend.srs.repository import SqlCardRepository
from backend.srs.sm2 import CardState, ReviewResult, apply_review

logger = logging.getLogger(__name__)


@dataclass
class SessionCard:
    """A card presented during a session, with the state it was shown in."""

    card: Card
    card_state: CardState


@dataclass
class SessionStats:
    """Statistics for a review session."""

    cards_reviewed: int = 0
    passed: int = 0
    failed: int = 0
    new_cards_seen: int = 0
    average_rating: float = 0.0
    total_rating: int = 0


@dataclass
class ReviewSession:
    """Manages an active review session."""

    deck_id: int | None
    queue: ReviewQueue
    clock: Clock = utcnow
    stats: SessionStats = field(default_factory=SessionStats)
    _card_index: int = 0
    _cards: list[Card] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Initialize the card list from the queue."""
        self._cards = self.queue.interleaved()

    @property
    def remaining(self) -> int:
        """Return the number of cards left to review."""
        return max(0, len(self._cards) - self._card_index)

    @property
    def is_complete(self) -> bool:
        """Return True if all cards have been reviewed."""
        return self._card_index >= len(self._cards)

    @property
    def current_card(self) -> Card | None:
        """Return the current card or None if session is complete."""
        if self._card_index < len(self._cards):
            return self._cards[self._card_index]
        return None

    async def get_next(self, db: AsyncSession) -> SessionCard | None:
        """Load the current card fresh from storage.

        Cards deleted since the queue was built are skipped.
        Returns None if the session is complete.
        """
        repo = SqlCardRepository(db)
        while (queued := self.current_card) is not None:
            try:
                card = await repo.get_card(queued.id)
            except CardNotFound:
                logger.warning("Skipping card %d: no longer exists", queued.id)
                self._card_index += 1
                continue
            return SessionCard(card=card, card_state=card.state)
        return None

    async def submit_rating(
        self,
        db: AsyncSession,
        session_card: SessionCard,
        rating: int,
        four_point: bool = False,
    ) -> ReviewResult:
        """Apply a rating to the current card and persist it.

        The write is conditional on the state the card was shown in. If another
        writer got there first the card is re-fetched and the rating re-applied
        to the fresh state, so the review is neither lost nor applied twice.

        Args:
            db: Database session.
            session_card: The card being reviewed.
            rating: Learner rating, 1-5 (or 1-4 with ``four_point``).
            four_point: Interpret ``rating`` as Again/Hard/Good/Easy.

        Returns:
            The ReviewResult that was persisted.

        Raises:
            InvalidRating: If the rating is outside its scale. Nothing is written.
            StaleWriteError: If every retry lost the race.
        """
        canonical = from_four_point(rating) if four_point else parse_rating(rating)
        card_id = session_card.card.id
        repo = SqlCardRepository(db)
        now = self.clock()
        state = session_card.card_state

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(settings.stale_write_retries),
            wait=wait_exponential(multiplier=0.05, max=1),
            retry=retry_if_exception_type(StaleWriteError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    state = await repo.get(card_id)
                    logger.info("Re-applying rating to card %d after stale write", card_id)
                result = apply_review(card_id, state, canonical, now)
                await repo.put(card_id, result.new_state, expected=state)

        db.add(
            ReviewLog(
                card_id=card_id,
                rating=int(result.event.rating),
                interval_before=result.previous_state.interval,
                interval_after=result.new_state.interval,
                ease_factor_before=result.previous_state.ease_factor,
                ease_factor_after=result.new_state.ease_factor,
                reviewed_at=result.event.timestamp,
            )
        )
        await db.commit()

        self._record(result.previous_state, canonical)
        self._card_index += 1
        return result

    def _record(self, previous: CardState, rating: ReviewRating) -> None:
        self.stats.cards_reviewed += 1
        self.stats.total_rating += int(rating)
        self.stats.average_rating = self.stats.total_rating / self.stats.cards_reviewed
        if previous.is_new:
            self.stats.new_cards_seen += 1
        if rating.is_pass:
            self.stats.passed += 1
        else:
            self.stats.failed += 1


async def start_session(
    db: AsyncSession,
    deck_id: int | None = None,
    config: QueueConfig | None = None,
    clock: Clock = utcnow,
) -> ReviewSession:
    """Start a new review session.

    Args:
        db: Database session.
        deck_id: Deck to study; None studies every card the caller can see.
        config: Queue configuration (limits, ratios).
        clock: Source of the current time.

    Returns:
        A ReviewSession ready for use.
    """
    repo = SqlCardRepository(db)
    cards = await repo.list_by_deck(deck_id) if deck_id is not None else await repo.list_all()
    queue = build_queue(cards, clock(), scope=deck_id, config=config)

    session = ReviewSession(deck_id=deck_id, queue=queue, clock=clock)
    logger.info(
        "Started session for deck %s: %d cards queued",
        deck_id if deck_id is not None else "*",
        queue.total,
    )
    return session

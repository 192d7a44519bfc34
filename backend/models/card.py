"""Flashcard model carrying SM-2 scheduling state."""

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, TimestampMixin
from backend.srs.sm2 import INITIAL_EASE_FACTOR, INITIAL_INTERVAL, CardState


class Card(Base, TimestampMixin):
    """A front/back flashcard with SM-2 scheduling state."""

    __tablename__ = "cards"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    deck_id: Mapped[int] = mapped_column(ForeignKey("decks.id"), nullable=False, index=True)
    front: Mapped[str] = mapped_column(Text, nullable=False)
    back: Mapped[str] = mapped_column(Text, nullable=False)
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False, default=INITIAL_EASE_FACTOR)
    interval: Mapped[int] = mapped_column(Integer, nullable=False, default=INITIAL_INTERVAL)
    last_reviewed: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    next_review: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)

    deck: Mapped["Deck"] = relationship(back_populates="cards")  # type: ignore[name-defined] # noqa: F821
    review_logs: Mapped[list["ReviewLog"]] = relationship(back_populates="card", cascade="all, delete-orphan")  # type: ignore[name-defined] # noqa: F821

    @property
    def state(self) -> CardState:
        """Return the card's scheduling state as an immutable value."""
        return CardState(
            repetitions=self.repetitions,
            ease_factor=self.ease_factor,
            interval=self.interval,
            last_reviewed=self.last_reviewed,
            next_review=self.next_review,
        )

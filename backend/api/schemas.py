"""Pydantic schemas for API request/response models."""

from datetime import datetime

from pydantic import BaseModel, Field

# --- Decks ---


class DeckCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    owner_id: str | None = None


class DeckResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    owner_id: str | None = None


class CardCreateRequest(BaseModel):
    front: str = Field(min_length=1)
    back: str = Field(min_length=1)


class CardResponse(BaseModel):
    """A card with its scheduling state."""

    id: int
    deck_id: int
    front: str
    back: str
    repetitions: int
    ease_factor: float
    interval: int
    last_reviewed: datetime | None = None
    next_review: datetime | None = None


class DuePriorityResponse(BaseModel):
    card_id: int
    days_overdue: int
    priority: float


# --- Session ---


class SessionStartResponse(BaseModel):
    """Response when starting a new review session."""

    session_id: str
    deck_id: int | None
    total_cards: int
    due_cards: int
    new_cards: int


class NextCardResponse(BaseModel):
    """Response containing the next card to review."""

    card_id: int
    front: str
    back: str
    repetitions: int
    interval: int
    is_new: bool
    remaining: int


class RatingRequest(BaseModel):
    """Request to rate the current card."""

    card_id: int
    rating: int  # 1-5, or 1-4 with four_point
    four_point: bool = False


class RatingResponse(BaseModel):
    """Response after rating a card with its new schedule."""

    applied_rating: int
    repetitions: int
    ease_factor: float
    interval: int
    next_review: datetime
    remaining: int
    session_complete: bool


class SessionStatsResponse(BaseModel):
    """Statistics for the current review session."""

    cards_reviewed: int
    passed: int
    failed: int
    new_cards_seen: int
    average_rating: float


# --- Stats ---


class DeckStatsResponse(BaseModel):
    """Overall statistics for a deck."""

    total_cards: int
    cards_due: int
    cards_new: int
    cards_mature: int
    average_estimated_retention: float | None
    retention_rate: float
    average_rating: float
    total_reviews: int
    streak: int
    forecast: list[int]


# --- Schedule ---


class LevelRequest(BaseModel):
    max_per_day: int | None = None
    bounded_scan_days: int | None = None


class MovedReview(BaseModel):
    card_id: int
    original: datetime
    assigned: datetime


class LevelResponse(BaseModel):
    considered: int
    moved: list[MovedReview]
    skipped: list[int]


class ForecastResponse(BaseModel):
    deck_id: int
    start: datetime
    daily_load: list[int]

from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from pydantic_settings import BaseSettings

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Replaces the deprecated ``datetime.utcnow()`` while keeping datetimes
    naive so they stay compatible with SQLite (which doesn't store tz info).
    """
    return datetime.now(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "StudyDeck"
    database_url: str = f"sqlite+aiosqlite:///{Path(__file__).resolve().parent.parent / 'data' / 'studydeck.db'}"
    max_per_day: int = 50
    bounded_scan_days: int = 3
    max_new_cards_per_session: int = 10
    max_reviews_per_session: int = 20
    new_card_ratio: float = 0.25  # 1 new card per 4 reviews
    forecast_days: int = 30
    mature_repetitions: int = 5
    stale_write_retries: int = 3
    debug: bool = False

    model_config = {"env_prefix": "STUDYDECK_", "env_file": ".env"}


settings = Settings()

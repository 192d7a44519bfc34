"""Tests for the forgetting-curve estimate and review statistics."""

import math
from datetime import datetime, timedelta

import pytest

from backend.srs.rating import ReviewRating
from backend.srs.retention import (
    calculate_retention_stats,
    elapsed_days,
    estimate_retention,
    forgetting_risk,
)
from backend.srs.sm2 import CardState, ReviewEvent

NOW = datetime(2024, 5, 1)


def _event(rating: int, day: int) -> ReviewEvent:
    return ReviewEvent(
        card_id=1,
        rating=ReviewRating(rating),
        timestamp=NOW + timedelta(days=day),
        resulting_interval=1,
    )


class TestEstimateRetention:
    def test_just_reviewed_is_full_recall(self) -> None:
        assert estimate_retention(0, 2.5, 0) == 1.0

    def test_formula(self) -> None:
        assert estimate_retention(5, 2.5, 2) == pytest.approx(math.exp(-5 / (2.5 * 1.3**2)))

    def test_strictly_decreasing_in_time(self) -> None:
        values = [estimate_retention(d / 2, 2.5, 3) for d in range(0, 60)]
        assert all(a > b for a, b in zip(values, values[1:]))

    def test_increasing_in_ease_factor(self) -> None:
        values = [estimate_retention(10, 1.3 + 0.2 * i, 2) for i in range(10)]
        assert all(a < b for a, b in zip(values, values[1:]))

    def test_increasing_in_repetitions(self) -> None:
        values = [estimate_retention(10, 2.5, reps) for reps in range(10)]
        assert all(a < b for a, b in zip(values, values[1:]))

    def test_bounded(self) -> None:
        for days in [0, 0.5, 1, 30, 365, 10_000]:
            assert 0.0 <= estimate_retention(days, 1.3, 0) <= 1.0

    def test_negative_elapsed_treated_as_zero(self) -> None:
        assert estimate_retention(-3, 2.5, 1) == 1.0


class TestForgettingRisk:
    def test_new_card_has_maximum_risk(self) -> None:
        assert forgetting_risk(CardState.new(), NOW) == 1.0

    def test_uses_last_reviewed(self) -> None:
        state = CardState(repetitions=2, ease_factor=2.5, interval=6, last_reviewed=NOW - timedelta(days=8))
        assert elapsed_days(state, NOW) == pytest.approx(8)
        assert forgetting_risk(state, NOW) == pytest.approx(1 - estimate_retention(8, 2.5, 2))

    def test_reconstructs_elapsed_without_last_reviewed(self) -> None:
        state = CardState(repetitions=2, ease_factor=2.5, interval=6, next_review=NOW - timedelta(days=3))
        assert elapsed_days(state, NOW) == 9


class TestRetentionStats:
    def test_empty_history(self) -> None:
        stats = calculate_retention_stats([])
        assert stats.total_reviews == 0
        assert stats.retention_rate == 0.0
        assert stats.streak == 0

    def test_rates_and_streak(self) -> None:
        events = [_event(4, 0), _event(1, 1), _event(3, 2), _event(5, 3)]
        stats = calculate_retention_stats(events)
        assert stats.total_reviews == 4
        assert stats.successful_reviews == 3
        assert stats.failed_reviews == 1
        assert stats.retention_rate == pytest.approx(0.75)
        assert stats.average_rating == pytest.approx(13 / 4)
        assert stats.streak == 2

    def test_streak_uses_chronological_order(self) -> None:
        events = [_event(5, 3), _event(2, 4), _event(4, 1)]
        assert calculate_retention_stats(events).streak == 0

    def test_all_failures(self) -> None:
        stats = calculate_retention_stats([_event(1, 0), _event(2, 1)])
        assert stats.retention_rate == 0.0
        assert stats.streak == 0

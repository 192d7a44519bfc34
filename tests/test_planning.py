"""Tests for planning-time jobs and deck statistics."""

from datetime import timedelta

import pytest

from backend.srs.errors import InvalidCapacity
from backend.srs.planning import deck_forecast, level_deck
from backend.srs.repository import SqlCardRepository
from backend.srs.session import start_session
from backend.srs.stats import collect_deck_stats
from tests.helpers import make_card, make_deck


@pytest.mark.asyncio
async def test_level_deck_persists_shifts(db, now) -> None:
    deck = await make_deck(db)
    tentative = now + timedelta(days=2)
    for _ in range(5):
        await make_card(db, deck, repetitions=1, last_reviewed=now - timedelta(days=4), next_review=tentative)
    overdue = await make_card(db, deck, repetitions=1, next_review=now - timedelta(days=1))

    report = await level_deck(db, deck.id, now, max_per_day=2, bounded_scan_days=3)

    assert report.considered == 5
    assert len(report.moved) == 3
    cards = await SqlCardRepository(db).list_by_deck(deck.id)
    by_day: dict = {}
    for card in cards:
        if card.id == overdue.id:
            assert card.next_review == now - timedelta(days=1)
            continue
        assert card.next_review >= tentative
        by_day[card.next_review.date()] = by_day.get(card.next_review.date(), 0) + 1
    assert sorted(by_day.values()) == [1, 2, 2]


@pytest.mark.asyncio
async def test_level_deck_invalid_capacity(db, now) -> None:
    deck = await make_deck(db)
    with pytest.raises(InvalidCapacity):
        await level_deck(db, deck.id, now, max_per_day=0)


@pytest.mark.asyncio
async def test_deck_forecast(db, now) -> None:
    deck = await make_deck(db, cards=2)
    await make_card(db, deck, repetitions=1, next_review=now + timedelta(days=3))
    assert await deck_forecast(db, deck.id, now, days=5) == [2, 0, 0, 1, 0]


@pytest.mark.asyncio
async def test_collect_deck_stats(db, now) -> None:
    deck = await make_deck(db, cards=3)
    await make_card(db, deck, repetitions=6, interval=40, last_reviewed=now - timedelta(days=10), next_review=now + timedelta(days=30))

    session = await start_session(db, deck.id, clock=lambda: now)
    session_card = await session.get_next(db)
    await session.submit_rating(db, session_card, 4)

    stats = await collect_deck_stats(db, deck.id, now + timedelta(hours=1), forecast_days=3)
    assert stats.total_cards == 4
    assert stats.cards_new == 2
    assert stats.cards_due == 2
    assert stats.cards_mature == 1
    assert stats.review_stats.total_reviews == 1
    assert stats.review_stats.streak == 1
    assert 0 < stats.average_estimated_retention <= 1
    assert stats.forecast == [2, 1, 0]

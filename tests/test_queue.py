"""Tests for due-card selection and session queues."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from backend.srs.queue import DueItem, QueueConfig, ReviewQueue, build_queue, partition_due, prioritize, select_due
from backend.srs.sm2 import CardState

NOW = datetime(2024, 3, 10, 12, 0)


def _reviewed(card_id: int, next_review: datetime, deck_id: int = 1, **kwargs) -> DueItem:
    interval = kwargs.pop("interval", 1)
    state = CardState(
        repetitions=kwargs.pop("repetitions", 1),
        ease_factor=kwargs.pop("ease_factor", 2.5),
        interval=interval,
        last_reviewed=next_review - timedelta(days=interval),
        next_review=next_review,
    )
    return DueItem(id=card_id, deck_id=deck_id, state=state)


def _new(card_id: int, deck_id: int = 1) -> DueItem:
    return DueItem(id=card_id, deck_id=deck_id, state=CardState.new())


@dataclass
class _Broken:
    id: int
    deck_id: int
    state: object


class TestSelectDue:
    def test_yesterday_tomorrow_absent(self) -> None:
        yesterday = _reviewed(1, NOW - timedelta(days=1))
        tomorrow = _reviewed(2, NOW + timedelta(days=1))
        unseen = _new(3)
        due = select_due([yesterday, tomorrow, unseen], NOW)
        assert {item.id for item in due} == {1, 3}

    def test_due_exactly_now(self) -> None:
        assert [i.id for i in select_due([_reviewed(1, NOW)], NOW)] == [1]

    def test_never_returns_future_items(self) -> None:
        items = [_reviewed(i, NOW + timedelta(hours=i - 5)) for i in range(10)]
        due = select_due(items, NOW)
        assert {item.id for item in due} == {0, 1, 2, 3, 4, 5}
        assert all(item.state.next_review <= NOW for item in due)

    def test_empty_input(self) -> None:
        assert select_due([], NOW) == []

    def test_scope_filters_by_deck(self) -> None:
        items = [_reviewed(1, NOW, deck_id=1), _reviewed(2, NOW, deck_id=2), _new(3, deck_id=2)]
        assert {i.id for i in select_due(items, NOW, scope=2)} == {2, 3}

    def test_orders_by_forgetting_risk(self) -> None:
        # Seen and due at the same times, but a weak card is riskier than a well-learned one
        last, due = NOW - timedelta(days=3), NOW - timedelta(days=1)
        strong = DueItem(1, 1, CardState(repetitions=6, ease_factor=2.8, interval=2, last_reviewed=last, next_review=due))
        weak = DueItem(2, 1, CardState(repetitions=1, ease_factor=1.3, interval=2, last_reviewed=last, next_review=due))
        assert [i.id for i in select_due([strong, weak], NOW)] == [2, 1]

    def test_new_cards_come_first(self) -> None:
        items = [_reviewed(1, NOW - timedelta(days=3)), _new(2)]
        assert [i.id for i in select_due(items, NOW)] == [2, 1]

    def test_ties_broken_by_oldest_next_review(self) -> None:
        # Identical states reviewed at the same time; only the due date differs
        last = NOW - timedelta(days=4)
        older = DueItem(1, 1, CardState(1, 2.5, 1, last, NOW - timedelta(days=3)))
        newer = DueItem(2, 1, CardState(1, 2.5, 1, last, NOW - timedelta(days=1)))
        assert [i.id for i in select_due([newer, older], NOW)] == [1, 2]

    def test_malformed_items_skipped_and_reported(self) -> None:
        good = _reviewed(1, NOW - timedelta(days=1))
        no_state = _Broken(id=2, deck_id=1, state=None)
        bad_ease = _Broken(id=3, deck_id=1, state=CardState(repetitions=2, ease_factor=0.5, interval=3))
        selection = partition_due([no_state, good, bad_ease], NOW)
        assert [i.id for i in selection.items] == [1]
        assert [exc.item.id for exc in selection.rejected] == [2, 3]
        assert "card state" in selection.rejected[0].reason

    def test_nan_ease_factor_is_malformed(self) -> None:
        nan_ease = DueItem(1, 1, CardState(repetitions=2, ease_factor=float("nan"), interval=3))
        selection = partition_due([nan_ease, _new(2)], NOW)
        assert [i.id for i in selection.items] == [2]
        assert "ease factor" in selection.rejected[0].reason

    def test_aware_timestamps_with_tied_risk(self) -> None:
        now = datetime(2024, 3, 10, 12, tzinfo=UTC)
        forgotten = DueItem(1, 1, CardState(0, 1.3, 1, now - timedelta(days=200), now - timedelta(days=199)))
        unseen = _new(2)
        due = select_due([forgotten, unseen], now)
        assert [i.id for i in due] == [2, 1]

    def test_prioritize_reports_overdue_days(self) -> None:
        items = [_reviewed(1, NOW - timedelta(days=2, hours=3)), _new(2)]
        report = {p.id: p for p in prioritize(items, NOW)}
        assert report[1].days_overdue == 2
        assert 0 < report[1].priority < 1
        assert report[2].days_overdue == 0
        assert report[2].priority == 1.0


class TestReviewQueue:
    def test_interleaved_no_new(self) -> None:
        queue = ReviewQueue(due_cards=["a", "b", "c"], new_cards=[], total=3)
        assert queue.interleaved() == ["a", "b", "c"]

    def test_interleaved_no_due(self) -> None:
        queue = ReviewQueue(due_cards=[], new_cards=["x", "y"], total=2)
        assert queue.interleaved() == ["x", "y"]

    def test_interleaved_mixes(self) -> None:
        queue = ReviewQueue(
            due_cards=["a", "b", "c", "d", "e", "f"],
            new_cards=["x", "y"],
            total=8,
        )
        result = queue.interleaved()
        assert len(result) == 8
        assert set(result) == {"a", "b", "c", "d", "e", "f", "x", "y"}
        # New cards should not all be at the start
        assert not all(item in ["x", "y"] for item in result[:3])


class TestBuildQueue:
    def test_limits_reviews_and_new_cards(self) -> None:
        reviews = [_reviewed(i, NOW - timedelta(days=1)) for i in range(8)]
        new = [_new(100 + i) for i in range(5)]
        queue = build_queue(reviews + new, NOW, config=QueueConfig(max_reviews=4, max_new=10, new_card_ratio=0.5))
        assert len(queue.due_cards) == 4
        assert len(queue.new_cards) == 2
        assert queue.total == 6

    def test_at_least_one_new_card(self) -> None:
        queue = build_queue([_new(1), _new(2)], NOW, config=QueueConfig(max_reviews=5, max_new=3))
        assert [c.id for c in queue.new_cards] == [1]

    def test_not_due_cards_excluded(self) -> None:
        queue = build_queue([_reviewed(1, NOW + timedelta(days=2))], NOW)
        assert queue.total == 0

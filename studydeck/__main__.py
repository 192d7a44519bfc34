"""CLI interface for StudyDeck.

Usage:
    python -m studydeck add-deck "Biology"          Create a deck
    python -m studydeck add 1 "front" "back"        Add a card to deck 1
    python -m studydeck due [--deck 1]              Show cards due for review
    python -m studydeck review [--deck 1]           Start a review session
    python -m studydeck stats 1                     Show deck statistics
    python -m studydeck level 1                     Spread upcoming reviews evenly
    python -m studydeck forecast 1                  Show reviews per day ahead
"""

import argparse
import asyncio
import logging

from sqlalchemy import select

from backend.config import settings, utcnow
from backend.database import async_session, engine
from backend.models import Base
from backend.models.card import Card
from backend.models.deck import Deck
from backend.srs.errors import InvalidCapacity, InvalidRating
from backend.srs.planning import deck_forecast, level_deck
from backend.srs.queue import QueueConfig, prioritize
from backend.srs.rating import FourPointRating, ReviewRating
from backend.srs.repository import SqlCardRepository
from backend.srs.session import start_session
from backend.srs.stats import collect_deck_stats


async def ensure_db() -> None:
    """Create tables if they don't exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def create_deck(name: str, description: str | None = None) -> int:
    """Create a deck and return its ID."""
    async with async_session() as db:
        deck = Deck(name=name, description=description)
        db.add(deck)
        await db.commit()
        await db.refresh(deck)
        return deck.id


async def add_card(deck_id: int, front: str, back: str) -> int | None:
    """Add a card to a deck; returns None if the deck does not exist."""
    async with async_session() as db:
        if await db.get(Deck, deck_id) is None:
            return None
        card = Card(deck_id=deck_id, front=front, back=back)
        db.add(card)
        await db.commit()
        await db.refresh(card)
        return card.id


async def cmd_add_deck(args: argparse.Namespace) -> None:
    await ensure_db()
    deck_id = await create_deck(args.name, args.description)
    print(f"  Created deck '{args.name}' (id={deck_id}).")


async def cmd_add(args: argparse.Namespace) -> None:
    """Add a new card."""
    await ensure_db()
    card_id = await add_card(args.deck, args.front, args.back)
    if card_id is None:
        print(f"  Deck {args.deck} does not exist.")
        return
    print(f"  Added card {card_id} (ready for review).")


async def cmd_due(args: argparse.Namespace) -> None:
    """Show the due cards in priority order."""
    await ensure_db()
    now = utcnow()

    async with async_session() as db:
        repo = SqlCardRepository(db)
        cards = await repo.list_by_deck(args.deck) if args.deck is not None else await repo.list_all()
        fronts = {card.id: card.front for card in cards}
        due = prioritize(cards, now, scope=args.deck)

    new = sum(1 for card in cards if card.state.is_new)
    print(f"  {len(due)} cards due ({new} new)")
    for entry in due[: args.limit]:
        print(f"    [{entry.id}] {fronts[entry.id]:<40} overdue {entry.days_overdue}d  risk {entry.priority:.2f}")


async def cmd_review(args: argparse.Namespace) -> None:
    """Run an interactive review session."""
    await ensure_db()
    config = QueueConfig(max_reviews=args.max_cards, max_new=args.new_cards)
    scale = FourPointRating if args.four_point else ReviewRating

    async with async_session() as db:
        session = await start_session(db, args.deck, config=config)
        if session.queue.total == 0:
            print("\nNo cards due for review. You're all caught up!")
            return

        print("\n  Review Session")
        print(
            f"  {len(session.queue.due_cards)} due + {len(session.queue.new_cards)} new"
            f" = {session.queue.total} cards\n"
        )
        print("  Ratings: " + "  ".join(f"{r.value}={r.name.title()}" for r in scale))
        print("  Type 'q' to quit\n")

        position = 0
        while (session_card := await session.get_next(db)) is not None:
            position += 1
            card = session_card.card
            label = f"  [{position}/{session.queue.total}]"
            if session_card.card_state.is_new:
                label += " (NEW)"
            print(label)
            print(f"  {card.front}")

            if input("\n  Press enter to show the answer ").strip().lower() == "q":
                print("\n  Session ended early.")
                break
            print(f"  {card.back}")

            result = None
            while result is None:
                raw = input(f"  Rate [1-{len(scale)}]: ").strip()
                if raw.lower() == "q":
                    break
                try:
                    result = await session.submit_rating(db, session_card, int(raw), four_point=args.four_point)
                except (ValueError, InvalidRating):
                    print(f"  Please enter a number from 1 to {len(scale)}.")
            if result is None:
                print("\n  Session ended early.")
                break
            print(f"  Next review in {result.new_state.interval} day(s)\n")

    s = session.stats
    accuracy = s.passed / s.cards_reviewed * 100 if s.cards_reviewed else 0
    print("\n  Session Complete!")
    print(f"  Reviewed: {s.cards_reviewed}  Passed: {s.passed}  Accuracy: {accuracy:.0f}%\n")


async def cmd_stats(args: argparse.Namespace) -> None:
    """Show deck statistics."""
    await ensure_db()
    async with async_session() as db:
        stats = await collect_deck_stats(db, args.deck, utcnow(), forecast_days=7)

    reviews = stats.review_stats
    retention = stats.average_estimated_retention
    print("\n  StudyDeck Statistics")
    print(f"  {'Total cards:':<24} {stats.total_cards}")
    print(f"  {'Due now:':<24} {stats.cards_due}")
    print(f"  {'New (unseen):':<24} {stats.cards_new}")
    print(f"  {f'Mature ({settings.mature_repetitions}+ reps):':<24} {stats.cards_mature}")
    print(f"  {'Total reviews:':<24} {reviews.total_reviews}")
    print(f"  {'Success rate:':<24} {reviews.retention_rate:.0%}")
    print(f"  {'Average rating:':<24} {reviews.average_rating:.2f}")
    print(f"  {'Current streak:':<24} {reviews.streak}")
    print(f"  {'Estimated retention:':<24} {f'{retention:.0%}' if retention is not None else '-'}")
    print(f"  {'Next 7 days:':<24} {' '.join(str(n) for n in stats.forecast)}")
    print()


async def cmd_level(args: argparse.Namespace) -> None:
    """Spread a deck's upcoming reviews over the following days."""
    await ensure_db()
    async with async_session() as db:
        try:
            report = await level_deck(db, args.deck, utcnow(), args.max_per_day, args.scan_days)
        except InvalidCapacity as exc:
            print(f"  {exc}")
            return

    print(f"  {report.considered} upcoming reviews, {len(report.moved)} moved")
    for card_id, (original, assigned) in sorted(report.moved.items()):
        print(f"    card {card_id}: {original.date()} -> {assigned.date()}")


async def cmd_forecast(args: argparse.Namespace) -> None:
    await ensure_db()
    now = utcnow()
    async with async_session() as db:
        load = await deck_forecast(db, args.deck, now, args.days)
    for offset, count in enumerate(load):
        print(f"  +{offset:<3} {'#' * count} {count}")


async def _latest_deck() -> int | None:
    await ensure_db()
    try:
        async with async_session() as db:
            return (await db.execute(select(Deck.id).order_by(Deck.id.desc()).limit(1))).scalar_one_or_none()
    finally:
        # The command itself runs in a new event loop
        await engine.dispose()


def main() -> None:
    """Entry point for the StudyDeck CLI application."""
    parser = argparse.ArgumentParser(
        prog="studydeck",
        description="StudyDeck spaced repetition flashcards",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # add-deck
    deck_parser = subparsers.add_parser("add-deck", help="Create a deck")
    deck_parser.add_argument("name", help="Deck name")
    deck_parser.add_argument("-d", "--description", default=None, help="Deck description")

    # add
    add_parser = subparsers.add_parser("add", help="Add a card to a deck")
    add_parser.add_argument("deck", type=int, help="Deck ID")
    add_parser.add_argument("front", help="Card front (prompt)")
    add_parser.add_argument("back", help="Card back (answer)")

    # due
    due_parser = subparsers.add_parser("due", help="Show cards due for review")
    due_parser.add_argument("--deck", type=int, default=None, help="Limit to one deck")
    due_parser.add_argument("--limit", type=int, default=10, help="How many cards to list")

    # review
    review_parser = subparsers.add_parser("review", help="Start a review session")
    review_parser.add_argument("--deck", type=int, default=None, help="Limit to one deck")
    review_parser.add_argument(
        "--max-cards", type=int, default=settings.max_reviews_per_session, help="Max reviews per session"
    )
    review_parser.add_argument(
        "--new-cards", type=int, default=settings.max_new_cards_per_session, help="Max new cards"
    )
    review_parser.add_argument(
        "--four-point", action="store_true", help="Rate with Again/Hard/Good/Easy (1-4)"
    )

    # stats
    stats_parser = subparsers.add_parser("stats", help="Show deck statistics")
    stats_parser.add_argument("deck", type=int, nargs="?", default=None, help="Deck ID (default: latest)")

    # level
    level_parser = subparsers.add_parser("level", help="Spread upcoming reviews evenly")
    level_parser.add_argument("deck", type=int, help="Deck ID")
    level_parser.add_argument("--max-per-day", type=int, default=None, help="Daily review capacity")
    level_parser.add_argument("--scan-days", type=int, default=None, help="How far reviews may move")

    # forecast
    forecast_parser = subparsers.add_parser("forecast", help="Show reviews per day ahead")
    forecast_parser.add_argument("deck", type=int, help="Deck ID")
    forecast_parser.add_argument("--days", type=int, default=14, help="Days to show")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not args.command:
        parser.print_help()
        return

    if args.command == "stats" and args.deck is None:
        args.deck = asyncio.run(_latest_deck())
        if args.deck is None:
            print("  No decks yet. Create one with 'add-deck'.")
            return

    commands = {
        "add-deck": cmd_add_deck,
        "add": cmd_add,
        "due": cmd_due,
        "review": cmd_review,
        "stats": cmd_stats,
        "level": cmd_level,
        "forecast": cmd_forecast,
    }
    asyncio.run(commands[args.command](args))


if __name__ == "__main__":
    main()

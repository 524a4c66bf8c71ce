"""CLI interface for the review scheduler.

Usage:
    python -m review_srs init-db              Create the database tables
    python -m review_srs due LEARNER_ID       List due items with their schedule preview
    python -m review_srs stats LEARNER_ID     Show due count, total items and next review
    python -m review_srs preview ITEM_ID      Show what each rating would schedule
"""

import argparse
import asyncio
import logging

from backend.database import init_db
from backend.errors import NotFound
from backend.schemas import DueItem
from backend.srs.coordinator import ReviewCoordinator
from backend.srs.fsrs import Rating


def _format_preview(item: DueItem) -> str:
    return "  ".join(
        f"{Rating(rating).name.title()}={label}"
        for rating, label in sorted(item.schedule_preview.items())
    )


async def cmd_init_db(args: argparse.Namespace) -> None:
    """Create tables if they don't exist."""
    await init_db()
    print("  Database ready.")


async def cmd_due(args: argparse.Namespace) -> None:
    """List the learner's due items."""
    await init_db()
    coordinator = ReviewCoordinator(locale=args.locale)
    items = await coordinator.get_due_items(args.learner_id, limit=args.limit)

    if not items:
        print("\n  No items due for review. You're all caught up!\n")
        return

    print(f"\n  {len(items)} items due\n")
    for item in items:
        print(f"  [{item.id}] {item.item_type}: {item.item_key} ({item.state.value}, reps={item.reps})")
        print(f"      {_format_preview(item)}")
    print()


async def cmd_stats(args: argparse.Namespace) -> None:
    """Show the learner's review statistics."""
    await init_db()
    stats = await ReviewCoordinator().get_review_stats(args.learner_id)
    next_review = stats.next_review_at.isoformat(timespec="minutes") if stats.next_review_at else "-"

    print("\n  Review Statistics")
    print(f"  {'Due now:':<20} {stats.due_count}")
    print(f"  {'Total items:':<20} {stats.total_items}")
    print(f"  {'Next review (UTC):':<20} {next_review}")
    print()


async def cmd_preview(args: argparse.Namespace) -> None:
    """Show the interval each rating would schedule for one item."""
    await init_db()
    coordinator = ReviewCoordinator(locale=args.locale)
    try:
        item = await coordinator.get_item(args.item_id)
    except NotFound as exc:
        print(f"  {exc}")
        raise SystemExit(1) from exc

    print(f"\n  [{item.id}] {item.item_type}: {item.item_key} ({item.state.value})")
    print(f"      {_format_preview(item)}\n")


def main() -> None:
    """Entry point for the review scheduler CLI."""
    parser = argparse.ArgumentParser(
        prog="review_srs",
        description="Spaced repetition review scheduler",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init-db
    subparsers.add_parser("init-db", help="Create the database tables")

    # due
    due_parser = subparsers.add_parser("due", help="List items due for review")
    due_parser.add_argument("learner_id", type=int, help="Learner ID")
    due_parser.add_argument("--limit", type=int, default=None, help="Max items to list")
    due_parser.add_argument("--locale", choices=["en", "zh"], default=None, help="Preview label locale")

    # stats
    stats_parser = subparsers.add_parser("stats", help="Show review statistics")
    stats_parser.add_argument("learner_id", type=int, help="Learner ID")

    # preview
    preview_parser = subparsers.add_parser("preview", help="Preview intervals for an item")
    preview_parser.add_argument("item_id", type=int, help="Review item ID")
    preview_parser.add_argument("--locale", choices=["en", "zh"], default=None, help="Preview label locale")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not args.command:
        parser.print_help()
        return

    cmd_map = {
        "init-db": cmd_init_db,
        "due": cmd_due,
        "stats": cmd_stats,
        "preview": cmd_preview,
    }

    asyncio.run(cmd_map[args.command](args))


if __name__ == "__main__":
    main()

import asyncio
import sys

from src.app import AppSettings, bootstrap
from src.db import get_engine
from src.services import ReviewService

__all__ = ["main", "summarize_queue"]


async def summarize_queue(service: ReviewService, owner_id: str) -> str:
    """Describe an owner's review queue in one line."""
    selection = await service.due_queue(owner_id)
    stats = await service.card_stats(owner_id)
    next_review = stats.next_review_at.isoformat() if stats.next_review_at else "none"
    return (
        f"{owner_id}: {selection.due_count} due, {selection.new_count} new, "
        f"{stats.total_cards} total, next scheduled review {next_review}"
    )


async def _summarize_all(service: ReviewService, owner_ids: list[str]) -> list[str]:
    try:
        return [await summarize_queue(service, owner_id) for owner_id in owner_ids]
    finally:
        await get_engine().dispose()


def main(argv: list[str] | None = None) -> None:
    """Entry point: print the review queue summary for each owner given."""
    owner_ids = sys.argv[1:] if argv is None else argv
    settings = AppSettings.from_env()
    service = bootstrap(settings)
    for line in asyncio.run(_summarize_all(service, owner_ids)):
        print(line)


if __name__ == "__main__":
    main()

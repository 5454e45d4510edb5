#!/usr/bin/env python3
"""
Watch the kanban board live.

Mounts a board projection on the tickets change feed and prints the column
counts every time a change arrives. Uses the service-role key, so it sees
every ticket.

Usage:
    python watch_board.py
    python watch_board.py --verbose --interval 5
"""
import argparse
import asyncio
import logging
from datetime import datetime

from helpdesk.database import ChangeFeed, TicketRepository
from helpdesk.tickets.view_state import TicketBoardProjection
from helpdesk.utils.constants import settings

logger = logging.getLogger("watch_board")


def format_counts(projection: TicketBoardProjection) -> str:
    return "  ".join(
        f"{status.display}: {len(bucket)}" for status, bucket in projection.buckets.items()
    )


async def watch(interval: float) -> None:
    repository = TicketRepository()
    feed = ChangeFeed()
    projection = TicketBoardProjection(repository)

    if not await projection.mount(feed):
        print(f"Initial load failed: {projection.error}")

    print("=" * 80)
    print("BOARD WATCH - live ticket counts")
    print("=" * 80)
    print("Press Ctrl+C to stop")
    print("-" * 80)

    last = None
    try:
        while True:
            current = format_counts(projection)
            if current != last:
                print(f"[{datetime.now().strftime('%I:%M:%S %p')}] {current}")
                last = current
            await asyncio.sleep(interval)
    finally:
        await projection.unmount()


def main():
    parser = argparse.ArgumentParser(description="Print live kanban column counts")
    parser.add_argument("--interval", type=float, default=1.0, help="Seconds between checks")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    settings.validate('SUPABASE_URL', 'SUPABASE_SECRET_KEY')

    try:
        asyncio.run(watch(args.interval))
    except KeyboardInterrupt:
        print("\nStopped.")


if __name__ == '__main__':
    main()

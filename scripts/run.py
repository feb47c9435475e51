#!/usr/bin/env python3
"""
Local runner for the booking data manager.

Usage (from project root):
    python scripts/run.py             # show the booking (cache first)
    python scripts/run.py refresh     # force a fetch from the source
    python scripts/run.py cached      # show the cached booking, never fetch
    python scripts/run.py info        # show cache timestamps
    python scripts/run.py clear       # clear the cache
    python scripts/run.py watch       # refresh every POLL_INTERVAL seconds

Environment variables (all optional):
    BOOKING_SOURCE          - "file", "http" or "simulator" (default: file)
    BOOKING_FILE            - JSON file for the file source (default: booking.json)
    BOOKING_API_URL         - base URL for the http source
    BOOKING_API_KEY         - API key for the http source
    BOOKING_CACHE_BACKEND   - "sqlite" or "memory" (default: sqlite)
    BOOKING_DB_PATH         - SQLite database path (default: data/booking.db)
    BOOKING_CACHE_TTL       - cache lifetime in seconds (default: 600)
    BOOKING_INVALIDATE_ON_EXPIRY - "1" to drop bookings past their own expiry
    POLL_INTERVAL           - seconds between refreshes in watch mode (default: 60)
"""

import asyncio
import logging
import os
import sys

# Make sure project root is on sys.path when run as a script
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from booking_sync.data_manager import BookingDataManager
from booking_sync.domain.booking import BookingResponse
from booking_sync.domain.errors import BookingError
from booking_sync.factory import create_data_manager

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-7s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger(__name__)


def print_booking(response: BookingResponse) -> None:
    b = response.booking
    origin = "cache" if response.is_from_cache else "source"
    print(f"\n{'=' * 60}")
    print(f"  Booking {b.ship_reference}  ({origin}, {response.timestamp:%H:%M:%S})")
    print(f"  Token: {b.ship_token}")
    print(f"  Ticket checking: {'yes' if b.can_issue_ticket_checking else 'no'}")
    print(f"  Duration: {b.duration} min")
    expiry = b.expiry_date
    print(f"  Expires: {expiry.isoformat() if expiry else b.expiry_time}"
          f"{'  (EXPIRED)' if b.is_expired() else ''}")
    print(f"{'=' * 60}")
    for i, seg in enumerate(b.segments, 1):
        pair = seg.origin_and_destination_pair
        print(f"  {i:>2}. #{seg.id}  {pair.origin_city} → {pair.destination_city}")
        print(f"      {pair.origin.code} {pair.origin.display_name}"
              f"  →  {pair.destination.code} {pair.destination.display_name}")
    print()


def print_cache_info(manager: BookingDataManager) -> None:
    info = manager.cache_info()
    if info is None:
        print("No cached booking.")
        return
    print(f"  Cached:    {info.cached_at.isoformat()}")
    print(f"  Expires:   {info.expires_at.isoformat()}")
    print(f"  Expired:   {info.is_expired}")
    print(f"  Remaining: {int(info.time_remaining.total_seconds())}s")


async def watch(manager: BookingDataManager, interval: int) -> None:
    manager.results.subscribe(print_booking)
    manager.refreshing.subscribe(
        lambda busy: log.info("refreshing…" if busy else "refresh done")
    )
    log.info("Watching booking, interval=%ds", interval)
    while True:
        try:
            await manager.refresh()
        except BookingError as exc:
            log.error("No booking available: %s", exc)
        log.info("Sleeping %ds …", interval)
        await asyncio.sleep(interval)


async def main(argv: list[str]) -> int:
    command = argv[0] if argv else "show"
    manager = create_data_manager()

    if command in ("show", "refresh"):
        try:
            response = await manager.request(force_refresh=command == "refresh")
        except BookingError as exc:
            log.error("No booking available: %s", exc)
            return 1
        print_booking(response)
        return 0

    if command == "cached":
        try:
            response = manager.cached_only()
        except BookingError as exc:
            log.error("Cache unreadable: %s", exc)
            return 1
        if response is None:
            print("No valid cached booking.")
            return 1
        print_booking(response)
        return 0

    if command == "info":
        print_cache_info(manager)
        return 0

    if command == "clear":
        manager.clear_cache()
        print("Cache cleared.")
        return 0

    if command == "watch":
        await watch(manager, int(os.environ.get("POLL_INTERVAL", "60")))
        return 0

    print(__doc__, file=sys.stderr)
    return 2


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main(sys.argv[1:])))
    except KeyboardInterrupt:
        log.info("Stopped.")

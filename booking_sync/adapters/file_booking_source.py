"""
BookingSource that reads a bundled booking.json file.

Handy for local development and demos: point BOOKING_FILE at a JSON file
with the same shape the API returns.
"""

import asyncio
import json
import logging
from pathlib import Path

from booking_sync.domain.booking import Booking
from booking_sync.domain.booking_source import BookingSource
from booking_sync.domain.errors import FetchFailure

log = logging.getLogger(__name__)


class FileBookingSource(BookingSource):

    def __init__(self, path: str | Path = "booking.json"):
        self._path = Path(path)

    async def fetch(self) -> Booking:
        return await asyncio.to_thread(self._load)

    def _load(self) -> Booking:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise FetchFailure(f"booking file not found: {self._path}") from exc
        except (OSError, ValueError) as exc:
            raise FetchFailure(f"could not read booking file {self._path}: {exc}") from exc

        try:
            booking = Booking.from_dict(data)
        except ValueError as exc:
            raise FetchFailure(f"booking file {self._path} is malformed: {exc}") from exc

        log.info(
            "loaded booking %s from %s (%d segment(s))",
            booking.ship_reference, self._path, len(booking.segments),
        )
        return booking

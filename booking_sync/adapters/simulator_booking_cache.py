"""
In-memory BookingCache: same contract as the SQLite cache, nothing persisted.
"""

import logging
from datetime import datetime
from typing import Callable

from booking_sync.domain.booking import Booking
from booking_sync.domain.booking_cache import (
    DEFAULT_TTL_SECONDS,
    BookingCache,
    CacheEntry,
    CacheInfo,
    utc_now,
)

log = logging.getLogger(__name__)


class InMemoryBookingCache(BookingCache):

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        # Replaced wholesale on every store; readers grab the reference once.
        self._entry: CacheEntry | None = None

    def store(self, booking: Booking, ttl_seconds: float | None = None) -> None:
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        self._entry = CacheEntry.create(booking, ttl, self._clock())
        log.info(
            "cached booking %s in memory, expires %s",
            booking.ship_reference, self._entry.expires_at.isoformat(),
        )

    def load(self, allow_expired: bool = False) -> CacheEntry | None:
        entry = self._entry
        if entry is None:
            return None
        if not allow_expired and entry.is_expired(self._clock()):
            log.info("cached booking expired at %s, clearing", entry.expires_at.isoformat())
            if self._entry is entry:
                self._entry = None
            return None
        return entry

    def clear(self) -> None:
        self._entry = None
        log.debug("in-memory booking cache cleared")

    def is_valid(self) -> bool:
        entry = self._entry
        return entry is not None and not entry.is_expired(self._clock())

    def info(self) -> CacheInfo | None:
        entry = self._entry
        if entry is None:
            return None
        return entry.info(self._clock())

"""
SQLite adapter for BookingCache: survives process restarts.

Use ":memory:" for tests, a file path for production.
The whole entry is stored as one JSON document in a single row keyed by a
fixed slot name; INSERT OR REPLACE swaps it in one transaction.
"""

import logging
import sqlite3
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
from booking_sync.domain.errors import StorageFailure

log = logging.getLogger(__name__)

SLOT_KEY = "booking"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS booking_cache (
    slot        TEXT PRIMARY KEY,
    payload     BLOB NOT NULL,
    cached_at   TEXT NOT NULL,
    expires_at  TEXT NOT NULL
);
"""


class SqliteBookingCache(BookingCache):

    def __init__(
        self,
        db_path: str = "booking.db",
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)

    # -- storage medium: get / set / delete of the fixed slot ---------------

    def _read(self) -> bytes | None:
        try:
            row = self._conn.execute(
                "SELECT payload FROM booking_cache WHERE slot = ?", (SLOT_KEY,)
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageFailure(f"reading booking cache failed: {exc}") from exc
        if not row:
            return None
        return row["payload"]

    def _write(self, entry: CacheEntry) -> None:
        try:
            payload = entry.to_json().encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise StorageFailure(f"serializing booking failed: {exc}") from exc
        try:
            self._conn.execute(
                "INSERT OR REPLACE INTO booking_cache (slot, payload, cached_at, expires_at)"
                " VALUES (?, ?, ?, ?)",
                (SLOT_KEY, payload, entry.cached_at.isoformat(), entry.expires_at.isoformat()),
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            raise StorageFailure(f"writing booking cache failed: {exc}") from exc

    def _delete(self) -> None:
        try:
            self._conn.execute("DELETE FROM booking_cache WHERE slot = ?", (SLOT_KEY,))
            self._conn.commit()
        except sqlite3.Error as exc:
            raise StorageFailure(f"clearing booking cache failed: {exc}") from exc

    def _peek(self) -> CacheEntry | None:
        """Decode the slot without side effects. Raises StorageFailure / ValueError."""
        raw = self._read()
        if raw is None:
            return None
        return CacheEntry.from_json(raw)

    # -- BookingCache --------------------------------------------------------

    def store(self, booking: Booking, ttl_seconds: float | None = None) -> None:
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        entry = CacheEntry.create(booking, ttl, self._clock())
        self._write(entry)
        log.info(
            "cached booking %s, expires %s",
            booking.ship_reference, entry.expires_at.isoformat(),
        )

    def load(self, allow_expired: bool = False) -> CacheEntry | None:
        try:
            entry = self._peek()
        except ValueError as exc:
            log.warning("cached booking is corrupt (%s), clearing", exc)
            self._delete()
            raise StorageFailure(f"decoding cached booking failed: {exc}") from exc
        if entry is None:
            return None
        if not allow_expired and entry.is_expired(self._clock()):
            log.info("cached booking expired at %s, clearing", entry.expires_at.isoformat())
            self._delete()
            return None
        return entry

    def clear(self) -> None:
        self._delete()
        log.debug("booking cache cleared")

    def is_valid(self) -> bool:
        try:
            entry = self._peek()
        except (StorageFailure, ValueError):
            return False
        return entry is not None and not entry.is_expired(self._clock())

    def info(self) -> CacheInfo | None:
        try:
            entry = self._peek()
        except (StorageFailure, ValueError) as exc:
            log.debug("booking cache info unavailable: %s", exc)
            return None
        if entry is None:
            return None
        return entry.info(self._clock())

    def close(self) -> None:
        self._conn.close()

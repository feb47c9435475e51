"""
BookingCache port: holds the last fetched booking for a limited time.

There is exactly one slot: storing a booking replaces whatever was there.
Expiry is decided at read time; nothing runs in the background.  An expired
entry stays in storage until the next load() (which clears it) or store()
(which overwrites it).
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from booking_sync.domain.booking import Booking

DEFAULT_TTL_SECONDS = 600.0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheInfo:
    """Read-only snapshot of the cached entry, computed on demand."""

    cached_at: datetime
    expires_at: datetime
    is_expired: bool
    time_remaining: timedelta


@dataclass(frozen=True)
class CacheEntry:
    """A booking plus the instants it was cached and stops being valid."""

    booking: Booking
    cached_at: datetime
    expires_at: datetime

    def __post_init__(self):
        if self.expires_at < self.cached_at:
            raise ValueError("expires_at must not be earlier than cached_at")

    @classmethod
    def create(cls, booking: Booking, ttl_seconds: float, now: datetime) -> "CacheEntry":
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must be >= 0, got {ttl_seconds}")
        return cls(booking=booking, cached_at=now, expires_at=now + timedelta(seconds=ttl_seconds))

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def info(self, now: datetime) -> CacheInfo:
        return CacheInfo(
            cached_at=self.cached_at,
            expires_at=self.expires_at,
            is_expired=self.is_expired(now),
            time_remaining=max(timedelta(0), self.expires_at - now),
        )

    # -- persisted form ------------------------------------------------------

    def to_json(self) -> str:
        return json.dumps(
            {
                "booking": self.booking.to_dict(),
                "cachedAt": self.cached_at.isoformat(),
                "expiresAt": self.expires_at.isoformat(),
            },
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> "CacheEntry":
        """Inverse of to_json(). Raises ValueError on anything it cannot decode."""
        try:
            data = json.loads(raw)
            cached_at = datetime.fromisoformat(data["cachedAt"])
            expires_at = datetime.fromisoformat(data["expiresAt"])
            booking = Booking.from_dict(data["booking"])
        except (KeyError, TypeError, UnicodeDecodeError) as exc:
            raise ValueError(f"malformed cache entry: {exc!r}") from exc
        if cached_at.tzinfo is None or expires_at.tzinfo is None:
            raise ValueError("cache entry timestamps must be timezone-aware")
        return cls(booking=booking, cached_at=cached_at, expires_at=expires_at)


class BookingCache(ABC):
    """
    Port: single-slot, TTL-bound storage for the last known booking.

    Absence is never an error: load() and info() return None.
    Implementations must make store() all-or-nothing: a concurrent reader
    sees either the previous entry or the new one, never a mix.
    """

    @abstractmethod
    def store(self, booking: Booking, ttl_seconds: float | None = None) -> None:
        """
        Replace the cached entry with booking, valid for ttl_seconds
        (the cache's configured TTL when None).

        Raises StorageFailure if the entry cannot be serialized or written.
        """
        ...

    @abstractmethod
    def load(self, allow_expired: bool = False) -> CacheEntry | None:
        """
        Return the cached entry, or None if there is none.

        An expired entry is cleared and reported as None, unless
        allow_expired is set, in which case it is returned untouched.
        A corrupt entry is cleared, then StorageFailure is raised.
        """
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove the entry. Clearing an empty cache is fine."""
        ...

    @abstractmethod
    def is_valid(self) -> bool:
        """True iff an entry is present and not expired. Never raises."""
        ...

    @abstractmethod
    def info(self) -> CacheInfo | None:
        """Snapshot of the current entry, or None if absent or unreadable."""
        ...

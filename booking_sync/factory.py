"""
Composition root: build the cache, the source and the data manager from
environment variables.  Explicit arguments win over the environment.
"""

import logging
import os

from booking_sync.data_manager import BookingDataManager, DataManagerConfig
from booking_sync.domain.booking_cache import DEFAULT_TTL_SECONDS, BookingCache
from booking_sync.domain.booking_source import BookingSource

log = logging.getLogger(__name__)


def _ttl_from_env() -> float:
    return float(os.environ.get("BOOKING_CACHE_TTL", str(DEFAULT_TTL_SECONDS)))


def create_booking_cache(backend: str | None = None) -> BookingCache:
    """
    Factory: create the cache backend named by BOOKING_CACHE_BACKEND
    ("sqlite" or "memory"). Defaults to "sqlite".
    """
    backend = backend or os.environ.get("BOOKING_CACHE_BACKEND", "sqlite")
    ttl = _ttl_from_env()

    if backend == "sqlite":
        from booking_sync.adapters.sqlite_booking_cache import SqliteBookingCache

        db_path = os.environ.get("BOOKING_DB_PATH", "data/booking.db")
        if db_path != ":memory:" and os.path.dirname(db_path):
            os.makedirs(os.path.dirname(db_path), exist_ok=True)
        return SqliteBookingCache(db_path=db_path, ttl_seconds=ttl)

    if backend == "memory":
        from booking_sync.adapters.simulator_booking_cache import InMemoryBookingCache

        return InMemoryBookingCache(ttl_seconds=ttl)

    raise ValueError(f"Unknown booking cache backend: {backend!r}")


def create_booking_source(kind: str | None = None) -> BookingSource:
    """
    Factory: create the source named by BOOKING_SOURCE
    ("file", "http" or "simulator"). Defaults to "file".
    """
    kind = kind or os.environ.get("BOOKING_SOURCE", "file")

    if kind == "file":
        from booking_sync.adapters.file_booking_source import FileBookingSource

        return FileBookingSource(os.environ.get("BOOKING_FILE", "booking.json"))

    if kind == "http":
        from booking_sync.adapters.booking_api_client import BookingApiClient

        return BookingApiClient(
            base_url=os.environ["BOOKING_API_URL"],
            api_key=os.environ.get("BOOKING_API_KEY"),
        )

    if kind == "simulator":
        from booking_sync.adapters.simulator_booking_source import (
            SimulatorBookingSource,
            make_sample_booking,
        )

        return SimulatorBookingSource(make_sample_booking())

    raise ValueError(f"Unknown booking source: {kind!r}")


def create_data_manager(
    cache: BookingCache | None = None,
    source: BookingSource | None = None,
) -> BookingDataManager:
    config = DataManagerConfig(
        source=source or create_booking_source(),
        cache=cache or create_booking_cache(),
        invalidate_on_booking_expiry=os.environ.get("BOOKING_INVALIDATE_ON_EXPIRY", "0") == "1",
    )
    log.debug(
        "data manager wired: source=%s cache=%s",
        type(config.source).__name__, type(config.cache).__name__,
    )
    return BookingDataManager(config)

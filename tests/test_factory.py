"""
Composition-root tests: environment variables pick the adapters.
"""

import pytest

from booking_sync.adapters.booking_api_client import BookingApiClient
from booking_sync.adapters.file_booking_source import FileBookingSource
from booking_sync.adapters.simulator_booking_cache import InMemoryBookingCache
from booking_sync.adapters.simulator_booking_source import SimulatorBookingSource
from booking_sync.adapters.sqlite_booking_cache import SqliteBookingCache
from booking_sync.data_manager import BookingDataManager
from booking_sync.factory import (
    create_booking_cache,
    create_booking_source,
    create_data_manager,
)

_ENV = (
    "BOOKING_CACHE_BACKEND", "BOOKING_DB_PATH", "BOOKING_CACHE_TTL",
    "BOOKING_SOURCE", "BOOKING_FILE", "BOOKING_API_URL", "BOOKING_API_KEY",
    "BOOKING_INVALIDATE_ON_EXPIRY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_sqlite_is_default_backend(monkeypatch, tmp_path):
    monkeypatch.setenv("BOOKING_DB_PATH", str(tmp_path / "sub" / "booking.db"))
    cache = create_booking_cache()
    assert isinstance(cache, SqliteBookingCache)
    assert (tmp_path / "sub" / "booking.db").exists()


def test_memory_backend_from_env(monkeypatch):
    monkeypatch.setenv("BOOKING_CACHE_BACKEND", "memory")
    assert isinstance(create_booking_cache(), InMemoryBookingCache)


def test_explicit_backend_wins_over_env(monkeypatch):
    monkeypatch.setenv("BOOKING_CACHE_BACKEND", "sqlite")
    assert isinstance(create_booking_cache("memory"), InMemoryBookingCache)


def test_ttl_from_env(monkeypatch):
    from booking_sync.adapters.simulator_booking_source import make_sample_booking

    monkeypatch.setenv("BOOKING_CACHE_TTL", "30")
    cache = create_booking_cache("memory")
    cache.store(make_sample_booking())
    info = cache.info()
    assert (info.expires_at - info.cached_at).total_seconds() == 30


def test_unknown_backend_rejected():
    with pytest.raises(ValueError, match="Unknown booking cache backend"):
        create_booking_cache("redis")


def test_file_is_default_source(monkeypatch):
    monkeypatch.setenv("BOOKING_FILE", "fixtures/booking.json")
    assert isinstance(create_booking_source(), FileBookingSource)


def test_http_source_from_env(monkeypatch):
    monkeypatch.setenv("BOOKING_SOURCE", "http")
    monkeypatch.setenv("BOOKING_API_URL", "https://api.example.test")
    monkeypatch.setenv("BOOKING_API_KEY", "k")
    source = create_booking_source()
    assert isinstance(source, BookingApiClient)
    assert source.session.headers["Api-Key"] == "k"


def test_http_source_requires_url(monkeypatch):
    with pytest.raises(KeyError):
        create_booking_source("http")


def test_simulator_source():
    assert isinstance(create_booking_source("simulator"), SimulatorBookingSource)


def test_unknown_source_rejected():
    with pytest.raises(ValueError, match="Unknown booking source"):
        create_booking_source("carrier-pigeon")


@pytest.mark.asyncio
async def test_data_manager_wired_from_env(monkeypatch):
    monkeypatch.setenv("BOOKING_CACHE_BACKEND", "memory")
    monkeypatch.setenv("BOOKING_SOURCE", "simulator")

    manager = create_data_manager()
    assert isinstance(manager, BookingDataManager)

    first = await manager.request()
    second = await manager.request()
    assert first.is_from_cache is False
    assert second.is_from_cache is True

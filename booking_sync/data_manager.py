"""
Booking data manager: decides between cache and source, degrades gracefully.

Wires together the ports:
  BookingSource → BookingCache → NotificationHub

Flow of request(force_refresh):
  1. Cache check (skipped when forced): a valid cached booking is served
     as is.  Cache errors here only count as a miss.
  2. Fetch: the refreshing flag goes up, the source is asked.
       success → store in cache (a failed store is only logged), serve fresh
       failure → serve whatever the cache still holds, even if stale;
                 if it holds nothing, re-raise the fetch failure
  3. The refreshing flag is down again on every way out of step 2.

Every served response is published on hub.results; failures are not.

Concurrent callers that need a fetch while one is already running join it
instead of starting another, and all receive the same outcome.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from booking_sync.domain.booking import BookingResponse
from booking_sync.domain.booking_cache import BookingCache, CacheEntry, CacheInfo, utc_now
from booking_sync.domain.booking_source import BookingSource
from booking_sync.domain.notifications import Channel, NotificationHub, StateSignal

log = logging.getLogger(__name__)


@dataclass
class DataManagerConfig:
    source: BookingSource
    cache: BookingCache
    hub: NotificationHub = field(default_factory=NotificationHub)
    # Treat a cached booking whose own expiry_time has passed as a cache miss
    # in request(), cached_only() and has_valid_cache().
    invalidate_on_booking_expiry: bool = False
    clock: Callable[[], datetime] = utc_now


class BookingDataManager:
    """
    Serve the booking from cache or source.

    Build one per process and hand it to whoever needs bookings.
    """

    def __init__(self, config: DataManagerConfig):
        self._cfg = config
        self._inflight: asyncio.Task | None = None

    # -- observation ---------------------------------------------------------

    @property
    def results(self) -> Channel[BookingResponse]:
        return self._cfg.hub.results

    @property
    def refreshing(self) -> StateSignal[bool]:
        return self._cfg.hub.refreshing

    @property
    def is_refreshing(self) -> bool:
        return self._cfg.hub.refreshing.value

    # -- requests ------------------------------------------------------------

    async def request(self, force_refresh: bool = False) -> BookingResponse:
        """Return the booking, from cache when valid, otherwise from the source."""
        log.debug("booking requested (force_refresh=%s)", force_refresh)

        if not force_refresh:
            response = self._check_cache()
            if response is not None:
                log.info("serving booking %s from cache", response.booking.ship_reference)
                self.results.publish(response)
                return response

        return await self._join_fetch()

    async def refresh(self) -> BookingResponse:
        """Always go to the source (falling back to the cache if it fails)."""
        return await self.request(force_refresh=True)

    def cached_only(self) -> BookingResponse | None:
        """
        Return the cached booking request() would serve, without ever
        touching the source. Stale entries are left in place for fallback.
        """
        entry = self._cfg.cache.load(allow_expired=True)
        if entry is None or not self._is_servable(entry):
            log.debug("no valid cached booking")
            return None
        return BookingResponse(booking=entry.booking, is_from_cache=True)

    def clear_cache(self) -> None:
        self._cfg.cache.clear()
        log.info("booking cache cleared")

    def has_valid_cache(self) -> bool:
        if not self._cfg.invalidate_on_booking_expiry:
            return self._cfg.cache.is_valid()
        return self._check_cache() is not None

    def cache_info(self) -> CacheInfo | None:
        return self._cfg.cache.info()

    def handle_external_failure(self, error: Exception) -> BookingResponse | None:
        """
        Best-effort recovery for callers that hit an error elsewhere:
        return whatever booking the cache holds, stale or not, or None.
        Never raises.
        """
        log.warning("recovering from external failure: %s", error)
        try:
            entry = self._cfg.cache.load(allow_expired=True)
        except Exception as exc:
            log.warning("cache fallback failed as well: %s", exc)
            return None
        if entry is None:
            return None
        return BookingResponse(booking=entry.booking, is_from_cache=True)

    # -- internals -----------------------------------------------------------

    def _check_cache(self) -> BookingResponse | None:
        # Peek without evicting: a stale entry must survive for the fallback.
        try:
            entry = self._cfg.cache.load(allow_expired=True)
        except Exception as exc:
            log.warning("cache read failed, treating as miss: %s", exc)
            return None
        if entry is None or not self._is_servable(entry):
            return None
        return BookingResponse(booking=entry.booking, is_from_cache=True)

    def _is_servable(self, entry: CacheEntry) -> bool:
        now = self._cfg.clock()
        if entry.is_expired(now):
            log.debug("cached booking expired at %s", entry.expires_at.isoformat())
            return False
        if self._cfg.invalidate_on_booking_expiry and entry.booking.is_expired(now):
            log.info("cached booking %s is past its own expiry", entry.booking.ship_reference)
            return False
        return True

    async def _join_fetch(self) -> BookingResponse:
        task = self._inflight
        if task is None:
            task = asyncio.create_task(self._fetch_fresh())
            task.add_done_callback(self._fetch_done)
            self._inflight = task
        else:
            log.debug("joining booking fetch already in flight")
        # shield: a caller giving up must not cancel the fetch others wait on
        return await asyncio.shield(task)

    def _fetch_done(self, task: asyncio.Task) -> None:
        # Still set only for a task cancelled before it started running.
        if self._inflight is task:
            self._inflight = None
        # Mark the outcome retrieved even if every caller went away.
        if not task.cancelled():
            task.exception()

    async def _fetch_fresh(self) -> BookingResponse:
        try:
            return await self._fetch_and_publish()
        finally:
            # Detach before completing so no caller can join a finished fetch.
            if self._inflight is asyncio.current_task():
                self._inflight = None

    async def _fetch_and_publish(self) -> BookingResponse:
        log.info("fetching booking from source")
        self.refreshing.set(True)
        try:
            booking = await self._cfg.source.fetch()
        except Exception as exc:
            self.refreshing.set(False)
            log.error("booking fetch failed: %s", exc)
            response = self._fallback()
            if response is None:
                raise
            log.info("serving stale booking %s after failed fetch", response.booking.ship_reference)
            self.results.publish(response)
            return response
        except BaseException:
            # cancelled mid-fetch
            self.refreshing.set(False)
            raise

        try:
            try:
                self._cfg.cache.store(booking)
            except Exception as exc:
                log.warning("could not cache fetched booking: %s", exc)

            response = BookingResponse(booking=booking, is_from_cache=False)
            log.info(
                "fetched booking %s (%d segment(s))",
                booking.ship_reference, len(booking.segments),
            )
            self.results.publish(response)
            return response
        finally:
            self.refreshing.set(False)

    def _fallback(self) -> BookingResponse | None:
        try:
            entry = self._cfg.cache.load(allow_expired=True)
        except Exception as exc:
            log.warning("cache fallback failed: %s", exc)
            return None
        if entry is None:
            log.warning("no cached booking to fall back on")
            return None
        return BookingResponse(booking=entry.booking, is_from_cache=True)

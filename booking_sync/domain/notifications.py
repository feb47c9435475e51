"""
Notification hub: fan-out of booking results and of the refreshing flag.

Two channels, both multicast:

    results     every BookingResponse the data manager produces
                (cache hit, fresh fetch or fallback); nothing on failure
    refreshing  True while a fetch is in flight, False otherwise; the
                current value is always readable through .value

Subscribing never influences the data manager; it only observes.

Usage:
    hub = NotificationHub()

    sub = hub.results.subscribe(lambda r: print(r.booking.ship_reference))
    hub.refreshing.subscribe(spinner.set_visible)
    ...
    sub.cancel()

    async with hub.results.stream() as updates:
        async for response in updates:
            ...
"""

import asyncio
import logging
import threading
from typing import Callable, Generic, TypeVar

from booking_sync.domain.booking import BookingResponse

log = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class Subscription(Generic[T]):
    """Handle returned by Channel.subscribe(); cancel() detaches the callback."""

    def __init__(self, channel: "Channel[T]", callback: Callable[[T], None]):
        self._channel = channel
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        if not self.cancelled:
            self.cancelled = True
            self._channel._remove(self)


class Channel(Generic[T]):
    """
    Multicast observer registry.

    publish() calls every subscriber synchronously, in subscription order,
    so each subscriber sees values in the order they were published.
    A subscriber that raises is logged and skipped; the others still run.
    Late subscribers only see what is published after they attach.
    """

    def __init__(self, name: str = "channel") -> None:
        self.name = name
        self._subscriptions: list[Subscription[T]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[T], None]) -> Subscription[T]:
        sub = Subscription(self, callback)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def unsubscribe(self, callback: Callable[[T], None]) -> None:
        """Detach every subscription made with this callback."""
        with self._lock:
            matching = [s for s in self._subscriptions if s.callback == callback]
        for sub in matching:
            sub.cancel()

    def _remove(self, sub: Subscription[T]) -> None:
        with self._lock:
            self._subscriptions = [s for s in self._subscriptions if s is not sub]

    def publish(self, value: T) -> None:
        # Snapshot under lock, call without it: a callback may (un)subscribe.
        with self._lock:
            snapshot = list(self._subscriptions)
        for sub in snapshot:
            if sub.cancelled:
                continue
            try:
                sub.callback(value)
            except Exception as exc:
                log.error("%s subscriber %r failed: %s", self.name, sub.callback, exc)

    def stream(self) -> "ChannelStream[T]":
        """Async iterator over future values; attached as soon as this returns."""
        return ChannelStream(self)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)


class ChannelStream(Generic[T]):
    """Queue-backed consumer of a Channel. close() (or leaving `async with`) detaches it."""

    def __init__(self, channel: Channel[T]):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._subscription = channel.subscribe(self._queue.put_nowait)
        self._closed = False

    def __aiter__(self) -> "ChannelStream[T]":
        return self

    async def __anext__(self) -> T:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._subscription.cancel()
            self._queue.put_nowait(_CLOSED)

    async def __aenter__(self) -> "ChannelStream[T]":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()


class StateSignal(Channel[T]):
    """A Channel that remembers its last value and only publishes changes."""

    def __init__(self, initial: T, name: str = "state") -> None:
        super().__init__(name)
        self._value = initial

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        if value == self._value:
            return
        self._value = value
        self.publish(value)


class NotificationHub:
    """The two channels consumers attach to."""

    def __init__(self) -> None:
        self.results: Channel[BookingResponse] = Channel("results")
        self.refreshing: StateSignal[bool] = StateSignal(False, "refreshing")

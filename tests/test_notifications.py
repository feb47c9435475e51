"""
NotificationHub tests: fan-out, ordering, detachment, last-value state.
"""

import asyncio

import pytest

from booking_sync.domain.notifications import Channel, NotificationHub, StateSignal


def test_publish_reaches_every_subscriber_in_order():
    channel: Channel[int] = Channel("numbers")
    a, b = [], []
    channel.subscribe(a.append)
    channel.subscribe(b.append)

    for n in (1, 2, 3):
        channel.publish(n)

    assert a == [1, 2, 3]
    assert b == [1, 2, 3]


def test_late_subscriber_gets_no_replay():
    channel: Channel[str] = Channel()
    channel.publish("early")
    seen = []
    channel.subscribe(seen.append)
    channel.publish("late")
    assert seen == ["late"]


def test_cancelled_subscription_stops_delivery():
    channel: Channel[int] = Channel()
    seen = []
    sub = channel.subscribe(seen.append)
    channel.publish(1)
    sub.cancel()
    sub.cancel()  # idempotent
    channel.publish(2)
    assert seen == [1]
    assert channel.subscriber_count == 0


def test_unsubscribe_by_callback():
    channel: Channel[int] = Channel()
    seen = []
    channel.subscribe(seen.append)
    channel.unsubscribe(seen.append)
    channel.publish(1)
    assert seen == []


def test_failing_subscriber_does_not_block_others():
    channel: Channel[int] = Channel()
    seen = []

    def boom(_):
        raise RuntimeError("subscriber bug")

    channel.subscribe(boom)
    channel.subscribe(seen.append)
    channel.publish(7)  # must not raise
    assert seen == [7]


def test_subscriber_may_unsubscribe_itself_during_publish():
    channel: Channel[int] = Channel()
    seen = []

    def once(value):
        seen.append(value)
        sub.cancel()

    sub = channel.subscribe(once)
    channel.publish(1)
    channel.publish(2)
    assert seen == [1]


def test_state_signal_keeps_last_value_and_publishes_changes_only():
    signal = StateSignal(False)
    seen = []
    signal.subscribe(seen.append)

    signal.set(False)
    signal.set(True)
    signal.set(True)
    signal.set(False)

    assert seen == [True, False]
    assert signal.value is False


def test_hub_starts_not_refreshing():
    hub = NotificationHub()
    assert hub.refreshing.value is False
    assert hub.results.subscriber_count == 0


@pytest.mark.asyncio
async def test_stream_yields_published_values_in_order():
    channel: Channel[int] = Channel()
    received = []

    async with channel.stream() as updates:
        for n in (1, 2, 3):
            channel.publish(n)
        async for value in updates:
            received.append(value)
            if len(received) == 3:
                break

    assert received == [1, 2, 3]
    assert channel.subscriber_count == 0


@pytest.mark.asyncio
async def test_stream_ends_when_closed():
    channel: Channel[int] = Channel()
    stream = channel.stream()

    async def consume():
        return [v async for v in stream]

    task = asyncio.create_task(consume())
    await asyncio.sleep(0)
    channel.publish(1)
    stream.close()

    assert await asyncio.wait_for(task, timeout=1) == [1]

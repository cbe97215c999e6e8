import asyncio

import pytest

from application.ports.realtime import (
    MessageCreated,
    MessageCreatedValue,
    MessageReactionIncreased,
    MessageReactionValue,
)
from infrastructure.realtime.cancellation import CancellationToken
from infrastructure.realtime.notifier import Notifier
from infrastructure.realtime.registry import Subscriber, SubscriptionRegistry


def _created(room_id: str, message_id: str = "m1", text: str = "hello") -> MessageCreated:
    return MessageCreated(room_id=room_id, value=MessageCreatedValue(id=message_id, message=text))


async def _join(registry, ws, room_id="room-1"):
    token = CancellationToken()
    sub = Subscriber(connection=ws, cancel=token.cancel, room_id=room_id)
    await registry.register(room_id, sub)
    return sub, token


@pytest.mark.asyncio
async def test_publish_to_empty_room_is_noop():
    notifier = Notifier(SubscriptionRegistry())
    assert await notifier.publish(_created("nobody-here")) == 0


@pytest.mark.asyncio
async def test_publish_reaches_every_subscriber_of_the_room_only(fake_ws_factory):
    registry = SubscriptionRegistry()
    notifier = Notifier(registry)
    a, b, other = fake_ws_factory(), fake_ws_factory(), fake_ws_factory()
    await _join(registry, a)
    await _join(registry, b)
    await _join(registry, other, room_id="room-2")

    delivered = await notifier.publish(_created("room-1"))

    assert delivered == 2
    expected = {"kind": "message_created", "value": {"id": "m1", "message": "hello"}}
    assert a.sent == [expected]
    assert b.sent == [expected]
    assert other.sent == []


@pytest.mark.asyncio
async def test_failed_delivery_cancels_only_that_subscriber(fake_ws_factory):
    registry = SubscriptionRegistry()
    notifier = Notifier(registry)
    good, bad = fake_ws_factory(), fake_ws_factory(fail_send=True)
    _, good_token = await _join(registry, good)
    bad_sub, bad_token = await _join(registry, bad)

    assert await notifier.publish(_created("room-1")) == 1

    assert len(good.sent) == 1
    assert not good_token.cancelled
    assert bad_token.reason == "delivery_failed"
    # the owning session is responsible for deregistering
    assert await registry.contains("room-1", bad_sub)


@pytest.mark.asyncio
async def test_slow_subscriber_times_out(fake_ws_factory):
    registry = SubscriptionRegistry()
    notifier = Notifier(registry, send_timeout=0.05)
    slow = fake_ws_factory(send_delay=0.5)
    _, token = await _join(registry, slow)

    assert await notifier.publish(_created("room-1")) == 0
    assert token.reason == "delivery_failed"


@pytest.mark.asyncio
async def test_same_room_events_arrive_in_publish_order(fake_ws_factory):
    registry = SubscriptionRegistry()
    notifier = Notifier(registry)
    ws = fake_ws_factory(send_delay=0.01)
    await _join(registry, ws)

    events = [
        MessageReactionIncreased(room_id="room-1", value=MessageReactionValue(id="m1", count=n))
        for n in range(1, 6)
    ]
    await asyncio.gather(*(notifier.publish(e) for e in events))

    assert [frame["value"]["count"] for frame in ws.sent] == [1, 2, 3, 4, 5]
    # per-room locks are released once nothing is in flight
    assert notifier._room_locks == {}


@pytest.mark.asyncio
async def test_subscriber_joining_mid_publish_waits_for_next_event(fake_ws_factory):
    registry = SubscriptionRegistry()
    notifier = Notifier(registry)
    first = fake_ws_factory(send_delay=0.05)
    await _join(registry, first)

    publishing = asyncio.create_task(notifier.publish(_created("room-1")))
    await asyncio.sleep(0.01)
    late = fake_ws_factory()
    await _join(registry, late)
    await publishing

    assert len(first.sent) == 1
    assert late.sent == []

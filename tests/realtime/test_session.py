import asyncio
import random

import pytest

from application.ports.realtime import MessageCreated, MessageCreatedValue
from domain.common.exceptions import (
    InvalidIdentifierException,
    RoomNotFoundException,
    SubscriptionUpgradeException,
)
from infrastructure.realtime.notifier import Notifier
from infrastructure.realtime.registry import SubscriptionRegistry
from infrastructure.realtime.session import LiveSession, SessionState


async def _known_room(raw: str) -> str:
    return raw


async def _missing_room(raw: str) -> str:
    raise RoomNotFoundException(raw)


async def _invalid_room(raw: str) -> str:
    raise InvalidIdentifierException("room_id", raw)


async def _until(predicate, timeout: float = 1.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not await predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.005)


async def _start(registry, ws, room_id="room-1", validate=_known_room):
    session = LiveSession(ws, room_id, registry=registry, validate=validate)
    task = asyncio.create_task(session.run())

    async def registered():
        return await registry.count(room_id) == 1

    await _until(registered)
    return session, task


@pytest.mark.asyncio
async def test_client_disconnect_ends_session(fake_ws_factory):
    registry = SubscriptionRegistry()
    ws = fake_ws_factory()
    session, task = await _start(registry, ws)

    assert ws.accepted
    assert session.state is SessionState.ACTIVE
    assert await registry.contains("room-1", session.subscriber)

    ws.disconnect()
    reason = await asyncio.wait_for(task, timeout=1)

    assert reason == "client_disconnected"
    assert session.state is SessionState.TERMINAL
    assert await registry.count() == 0
    # the peer is already gone, nothing to close
    assert ws.closed_with is None


@pytest.mark.asyncio
async def test_delivery_failure_terminates_session(fake_ws_factory):
    registry = SubscriptionRegistry()
    notifier = Notifier(registry)
    ws = fake_ws_factory(fail_send=True)
    session, task = await _start(registry, ws)

    await notifier.publish(MessageCreated(room_id="room-1", value=MessageCreatedValue(id="m1", message="hi")))
    reason = await asyncio.wait_for(task, timeout=1)

    assert reason == "delivery_failed"
    assert ws.closed_with == 1011
    assert await registry.count() == 0
    assert session.state is SessionState.TERMINAL


@pytest.mark.asyncio
async def test_failed_subscriber_is_dropped_before_next_publish(fake_ws_factory):
    registry = SubscriptionRegistry()
    notifier = Notifier(registry)
    ws_a, ws_b = fake_ws_factory(fail_send=True), fake_ws_factory()
    _, task_a = await _start(registry, ws_a)
    session_b = LiveSession(ws_b, "room-1", registry=registry, validate=_known_room)
    task_b = asyncio.create_task(session_b.run())

    async def both_registered():
        return await registry.count("room-1") == 2

    await _until(both_registered)

    first = MessageCreated(room_id="room-1", value=MessageCreatedValue(id="m1", message="first"))
    assert await notifier.publish(first) == 1
    assert await asyncio.wait_for(task_a, timeout=1) == "delivery_failed"

    second = MessageCreated(room_id="room-1", value=MessageCreatedValue(id="m2", message="second"))
    assert await notifier.publish(second) == 1
    assert [frame["value"]["id"] for frame in ws_b.sent] == ["m1", "m2"]
    assert await registry.snapshot("room-1") == [session_b.subscriber]

    ws_b.disconnect()
    await asyncio.wait_for(task_b, timeout=1)


@pytest.mark.asyncio
async def test_shutdown_closes_every_session(fake_ws_factory):
    registry = SubscriptionRegistry()
    ws_a, ws_b = fake_ws_factory(), fake_ws_factory()
    _, task_a = await _start(registry, ws_a)
    _, task_b = await _start(registry, ws_b, room_id="room-2")

    assert await registry.close_all("server_shutdown") == 2
    reasons = await asyncio.wait_for(asyncio.gather(task_a, task_b), timeout=1)

    assert reasons == ["server_shutdown", "server_shutdown"]
    assert ws_a.closed_with == 1001
    assert ws_b.closed_with == 1001
    assert await registry.count() == 0


@pytest.mark.asyncio
async def test_cancelling_the_task_still_deregisters(fake_ws_factory):
    registry = SubscriptionRegistry()
    ws = fake_ws_factory()
    session, task = await _start(registry, ws)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert await registry.count() == 0
    assert session.state is SessionState.TERMINAL


@pytest.mark.asyncio
@pytest.mark.parametrize("validate, exc_type", [
    (_missing_room, RoomNotFoundException),
    (_invalid_room, InvalidIdentifierException),
])
async def test_rejected_room_never_registers(fake_ws_factory, validate, exc_type):
    registry = SubscriptionRegistry()
    ws = fake_ws_factory()
    session = LiveSession(ws, "nope", registry=registry, validate=validate)

    with pytest.raises(exc_type):
        await session.run()

    assert not ws.accepted
    assert session.state is SessionState.TERMINAL
    assert await registry.count() == 0


@pytest.mark.asyncio
async def test_upgrade_failure_is_reported(fake_ws_factory):
    registry = SubscriptionRegistry()
    ws = fake_ws_factory(fail_accept=True)
    session = LiveSession(ws, "room-1", registry=registry, validate=_known_room)

    with pytest.raises(SubscriptionUpgradeException):
        await session.run()

    assert session.state is SessionState.TERMINAL
    assert await registry.count() == 0


@pytest.mark.asyncio
async def test_concurrent_sessions_each_get_exactly_one_delivery(fake_ws_factory):
    registry = SubscriptionRegistry()
    notifier = Notifier(registry)
    sockets = [fake_ws_factory() for _ in range(40)]
    sessions = [LiveSession(ws, "room-1", registry=registry, validate=_known_room) for ws in sockets]
    tasks = [asyncio.create_task(s.run()) for s in sessions]

    async def all_registered():
        return await registry.count("room-1") == len(sessions)

    await _until(all_registered)
    event = MessageCreated(room_id="room-1", value=MessageCreatedValue(id="m1", message="hello all"))

    assert await notifier.publish(event) == 40
    assert all(ws.sent == [event.to_client()] for ws in sockets)
    assert len({s.subscriber.id for s in sessions}) == 40

    for ws in sockets:
        ws.disconnect()
    await asyncio.wait_for(asyncio.gather(*tasks), timeout=2)
    assert await registry.count() == 0


async def _assert_registered_iff_active(registry, sessions) -> None:
    owners = {s.subscriber: s for s in sessions if s.subscriber is not None}
    for subscriber, session in owners.items():
        present = await registry.contains(subscriber.room_id, subscriber)
        assert present == (session.state is SessionState.ACTIVE)
    for room in await registry.rooms():
        for subscriber in await registry.snapshot(room):
            assert owners[subscriber].state is SessionState.ACTIVE


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", [0, 1, 7, 42])
async def test_random_interleavings_keep_membership_consistent(fake_ws_factory, seed):
    rng = random.Random(seed)
    registry = SubscriptionRegistry()
    notifier = Notifier(registry)
    rooms = ["room-a", "room-b", "room-c"]
    sessions, sockets, tasks, publishes = [], [], [], []

    for step in range(300):
        roll = rng.random()
        if roll < 0.4 or not sessions:
            ws = fake_ws_factory(fail_send=rng.random() < 0.2)
            session = LiveSession(ws, rng.choice(rooms), registry=registry, validate=_known_room)
            sessions.append(session)
            sockets.append(ws)
            tasks.append(asyncio.create_task(session.run()))
        elif roll < 0.7:
            rng.choice(sockets).disconnect()
        else:
            event = MessageCreated(room_id=rng.choice(rooms), value=MessageCreatedValue(id=f"m{step}", message="q"))
            publishes.append(asyncio.create_task(notifier.publish(event)))

        for _ in range(rng.randint(0, 3)):
            await asyncio.sleep(0)
        await _assert_registered_iff_active(registry, sessions)

    await asyncio.gather(*publishes)
    for ws in sockets:
        ws.disconnect()
    reasons = await asyncio.wait_for(asyncio.gather(*tasks), timeout=5)

    assert set(reasons) <= {"client_disconnected", "delivery_failed"}
    assert all(s.state is SessionState.TERMINAL for s in sessions)
    assert await registry.count() == 0
    assert await registry.rooms() == []

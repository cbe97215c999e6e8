"""In-process registry of live room subscriptions.

Maps room id -> set of Subscriber handles for this process. The registry
never owns a connection: it keeps a reference plus the cancel callable of
the session that does. All reads and writes go through one asyncio.Lock and
never await I/O while holding it.
"""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Set

from core.logging_config import get_logger


logger = get_logger(__name__)


class SubscriberConnection(Protocol):
    """The part of a WebSocket the notifier needs."""

    async def send_json(self, data: Any) -> None: ...


@dataclass(eq=False)
class Subscriber:
    """One live connection in one room; equality and hashing are by identity."""

    connection: SubscriberConnection
    cancel: Callable[[str], Any]
    room_id: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    _write_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def send(self, payload: dict, *, timeout: Optional[float] = None) -> None:
        # writes to a single connection never interleave
        async with self._write_lock:
            if timeout:
                await asyncio.wait_for(self.connection.send_json(payload), timeout=timeout)
            else:
                await self.connection.send_json(payload)


class SubscriptionRegistry:
    """Process-wide room -> subscribers mapping."""

    def __init__(self) -> None:
        self._rooms: Dict[str, Set[Subscriber]] = {}
        self._lock = asyncio.Lock()

    async def register(self, room_id: str, subscriber: Subscriber) -> None:
        # a handle belongs to exactly one room
        if subscriber.room_id != room_id:
            raise ValueError(f"subscriber {subscriber.id} belongs to room {subscriber.room_id}, not {room_id}")
        async with self._lock:
            members = self._rooms.setdefault(room_id, set())
            members.add(subscriber)
            size = len(members)
        logger.info("subscriber_registered", room_id=room_id, subscriber=subscriber.id, room_size=size)

    async def deregister(self, room_id: str, subscriber: Subscriber) -> bool:
        """Remove a subscriber; returns False if it was not registered."""
        async with self._lock:
            members = self._rooms.get(room_id)
            if members is None or subscriber not in members:
                return False
            members.discard(subscriber)
            if not members:
                del self._rooms[room_id]
            size = len(members)
        logger.info("subscriber_deregistered", room_id=room_id, subscriber=subscriber.id, room_size=size)
        return True

    async def snapshot(self, room_id: str) -> List[Subscriber]:
        async with self._lock:
            return list(self._rooms.get(room_id, ()))

    async def contains(self, room_id: str, subscriber: Subscriber) -> bool:
        async with self._lock:
            return subscriber in self._rooms.get(room_id, ())

    async def count(self, room_id: Optional[str] = None) -> int:
        async with self._lock:
            if room_id is not None:
                return len(self._rooms.get(room_id, ()))
            return sum(len(members) for members in self._rooms.values())

    async def rooms(self) -> List[str]:
        async with self._lock:
            return list(self._rooms)

    async def close_all(self, reason: str = "server_shutdown") -> int:
        """Cancel every registered subscriber.

        Sessions deregister themselves once their token fires; this only
        signals them.
        """
        async with self._lock:
            targets = [sub for members in self._rooms.values() for sub in members]
        for sub in targets:
            sub.cancel(reason)
        if targets:
            logger.info("subscribers_cancelled", count=len(targets), reason=reason)
        return len(targets)

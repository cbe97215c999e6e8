"""Room fan-out of notifications to live subscribers."""
from __future__ import annotations

import asyncio
from typing import Dict, Optional

from application.ports.realtime import Notification
from core.logging_config import get_logger
from infrastructure.realtime.registry import Subscriber, SubscriptionRegistry


logger = get_logger(__name__)


class Notifier:
    """Deliver each event once to every subscriber of its room.

    - The subscriber set is snapshotted first; no registry lock is held
      while writing to sockets.
    - A subscriber whose write fails (or times out) is cancelled, never
      deregistered here: its session removes itself.
    - Publishes to the same room are serialized in call order through a
      per-room FIFO lock; other rooms proceed independently.
    """

    def __init__(self, registry: SubscriptionRegistry, *, send_timeout: Optional[float] = None) -> None:
        self._registry = registry
        self._send_timeout = send_timeout if send_timeout and send_timeout > 0 else None
        self._room_locks: Dict[str, asyncio.Lock] = {}
        self._room_inflight: Dict[str, int] = {}

    def _enter_room(self, room_id: str) -> asyncio.Lock:
        lock = self._room_locks.get(room_id)
        if lock is None:
            lock = self._room_locks[room_id] = asyncio.Lock()
        self._room_inflight[room_id] = self._room_inflight.get(room_id, 0) + 1
        return lock

    def _leave_room(self, room_id: str) -> None:
        remaining = self._room_inflight.get(room_id, 1) - 1
        if remaining <= 0:
            self._room_inflight.pop(room_id, None)
            self._room_locks.pop(room_id, None)
        else:
            self._room_inflight[room_id] = remaining

    async def publish(self, event: Notification) -> int:
        """Fan `event` out; returns the number of successful deliveries.

        Never raises for delivery problems. An empty room is a no-op.
        """
        room_id = event.room_id
        lock = self._enter_room(room_id)
        try:
            async with lock:
                targets = await self._registry.snapshot(room_id)
                if not targets:
                    logger.debug("notification_no_subscribers", room_id=room_id, kind=event.kind)
                    return 0
                payload = event.to_client()
                results = await asyncio.gather(
                    *(self._deliver(sub, payload, event) for sub in targets)
                )
        finally:
            self._leave_room(room_id)

        delivered = sum(1 for ok in results if ok)
        logger.info(
            "notification_published",
            room_id=room_id,
            kind=event.kind,
            targets=len(targets),
            delivered=delivered,
        )
        return delivered

    async def _deliver(self, subscriber: Subscriber, payload: dict, event: Notification) -> bool:
        try:
            await subscriber.send(payload, timeout=self._send_timeout)
            return True
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning(
                "notification_delivery_failed",
                room_id=event.room_id,
                kind=event.kind,
                subscriber=subscriber.id,
                error=str(exc) or type(exc).__name__,
            )
            subscriber.cancel("delivery_failed")
            return False

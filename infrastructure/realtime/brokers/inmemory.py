"""In-memory implementation of RealtimeBrokerPort.

Single-process only. Handlers are awaited in subscription order, so the
caller's publish returns once the local fan-out has finished; a failing
handler is logged and does not stop the others.
"""
from __future__ import annotations

from typing import Tuple

from application.ports.realtime import Handler, Notification, RealtimeBrokerPort
from core.logging_config import get_logger


logger = get_logger(__name__)


class InMemoryRealtimeBroker(RealtimeBrokerPort):
    def __init__(self) -> None:
        self._handlers: Tuple[Handler, ...] = ()
        self._closed = False

    async def publish(self, event: Notification) -> None:  # type: ignore[override]
        if self._closed:
            logger.debug("inmemory_broker_closed_drop", room_id=event.room_id, kind=event.kind)
            return
        for handler in self._handlers:
            try:
                await handler(event)
            except Exception as exc:
                logger.error("inmemory_broker_handler_failed", room_id=event.room_id, kind=event.kind, error=str(exc), exc_info=True)

    async def subscribe(self, handler: Handler) -> None:  # type: ignore[override]
        # copy-on-write: publishers iterate a stable tuple
        self._handlers = (*self._handlers, handler)

    async def aclose(self) -> None:  # type: ignore[override]
        self._closed = True
        self._handlers = ()

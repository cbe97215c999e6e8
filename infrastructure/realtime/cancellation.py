"""One-shot cancellation signal for live subscriber sessions."""
from __future__ import annotations

import asyncio
from typing import Optional


class CancellationToken:
    """Idempotent, observable-once cancellation.

    `cancel()` may be called any number of times from any coroutine on the
    loop (the Notifier after a failed write, the reader on client disconnect,
    the app on shutdown). Only the first call records a reason and wakes the
    waiter; later calls return False and change nothing.
    """

    __slots__ = ("_event", "_reason")

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> bool:
        if self._event.is_set():
            return False
        self._reason = reason
        self._event.set()
        return True

    async def wait(self) -> Optional[str]:
        await self._event.wait()
        return self._reason

    def __repr__(self) -> str:
        state = f"cancelled:{self._reason}" if self.cancelled else "active"
        return f"<CancellationToken {state}>"

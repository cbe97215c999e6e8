"""Pytest bootstrap configuration.

Environment variables must be set before test collection imports modules
that read application settings (the engine is built at import time).
"""
import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="ama-tests-")

os.environ["DATABASE__URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["DEBUG"] = "true"
os.environ["REALTIME_BROKER"] = "inmemory"
os.environ["REALTIME_WS_SEND_TIMEOUT_S"] = "2"
os.environ.pop("REDIS__URL", None)

import asyncio
from typing import Any, List, Optional

import pytest


class FakeWebSocket:
    """Minimal stand-in for a Starlette WebSocket used by session/notifier tests."""

    def __init__(self, *, fail_send: bool = False, fail_accept: bool = False, send_delay: float = 0.0):
        self.sent: List[Any] = []
        self.accepted = False
        self.closed_with: Optional[int] = None
        self.fail_send = fail_send
        self.fail_accept = fail_accept
        self.send_delay = send_delay
        self._incoming: asyncio.Queue = asyncio.Queue()

    async def accept(self) -> None:
        if self.fail_accept:
            raise RuntimeError("handshake failed")
        self.accepted = True

    async def send_json(self, data: Any) -> None:
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if self.fail_send:
            raise ConnectionResetError("peer gone")
        self.sent.append(data)

    async def receive(self) -> dict:
        return await self._incoming.get()

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None:
        self.closed_with = code

    def disconnect(self) -> None:
        self._incoming.put_nowait({"type": "websocket.disconnect", "code": 1000})


@pytest.fixture
def fake_ws_factory():
    return FakeWebSocket

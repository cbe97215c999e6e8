"""Lifecycle of one subscribed WebSocket client.

validating -> upgrading -> active -> terminating -> terminal

The subscriber handle is in the registry exactly while the session is
active: it is registered right after a successful upgrade and removed before
the socket is released, on every exit path.
"""
from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from core.logging_config import get_logger
from domain.common.exceptions import SubscriptionUpgradeException
from infrastructure.realtime.cancellation import CancellationToken
from infrastructure.realtime.registry import Subscriber, SubscriptionRegistry


logger = get_logger(__name__)

# Resolves a raw room id to its canonical form, raising a BusinessException
# (invalid identifier / room not found / storage failure) otherwise.
RoomValidator = Callable[[str], Awaitable[str]]

# close codes per termination reason; anything else closes normally (1000)
_CLOSE_CODES = {
    "server_shutdown": 1001,
    "delivery_failed": 1011,
    "receive_failed": 1011,
}


class SessionState(str, Enum):
    VALIDATING = "validating"
    UPGRADING = "upgrading"
    ACTIVE = "active"
    TERMINATING = "terminating"
    TERMINAL = "terminal"


class LiveSession:
    def __init__(
        self,
        websocket: WebSocket,
        raw_room_id: str,
        *,
        registry: SubscriptionRegistry,
        validate: RoomValidator,
    ) -> None:
        self._ws = websocket
        self._raw_room_id = raw_room_id
        self._registry = registry
        self._validate = validate
        self._state = SessionState.VALIDATING
        self.room_id: Optional[str] = None
        self.token: Optional[CancellationToken] = None
        self.subscriber: Optional[Subscriber] = None

    @property
    def state(self) -> SessionState:
        return self._state

    async def run(self) -> Optional[str]:
        """Serve the client until the session ends; returns the termination reason.

        Validation and upgrade failures are raised to the caller (nothing has
        been registered at that point) so it can reject the handshake.
        """
        try:
            self.room_id = await self._validate(self._raw_room_id)
        except BaseException:
            self._state = SessionState.TERMINAL
            raise

        self._state = SessionState.UPGRADING
        try:
            await self._ws.accept()
        except Exception as exc:
            self._state = SessionState.TERMINAL
            logger.warning("subscription_upgrade_failed", room_id=self.room_id, error=str(exc))
            raise SubscriptionUpgradeException(str(exc)) from exc

        return await self._serve()

    async def _serve(self) -> Optional[str]:
        room_id = self.room_id
        token = self.token = CancellationToken()
        subscriber = self.subscriber = Subscriber(
            connection=self._ws,
            cancel=token.cancel,
            room_id=room_id,
        )
        reader: Optional[asyncio.Task] = None
        try:
            await self._registry.register(room_id, subscriber)
            self._state = SessionState.ACTIVE
            reader = asyncio.create_task(
                self._read_until_disconnect(token),
                name=f"ws-reader-{subscriber.id}",
            )
            await token.wait()
        except asyncio.CancelledError:
            token.cancel("server_cancelled")
            raise
        except Exception as exc:
            logger.error("subscription_session_failed", room_id=room_id, subscriber=subscriber.id, error=str(exc), exc_info=True)
            token.cancel("session_error")
        finally:
            await self._registry.deregister(room_id, subscriber)
            self._state = SessionState.TERMINATING
            if reader is not None and not reader.done():
                reader.cancel()
                await asyncio.gather(reader, return_exceptions=True)
            await self._close(token.reason)
            self._state = SessionState.TERMINAL
            logger.info("subscription_closed", room_id=room_id, subscriber=subscriber.id, reason=token.reason)
        return token.reason

    async def _read_until_disconnect(self, token: CancellationToken) -> None:
        # client frames carry no meaning on this endpoint; only disconnects matter
        try:
            while True:
                message = await self._ws.receive()
                if message.get("type") == "websocket.disconnect":
                    token.cancel("client_disconnected")
                    return
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.debug("subscription_receive_failed", room_id=self.room_id, error=str(exc))
            token.cancel("receive_failed")

    async def _close(self, reason: Optional[str]) -> None:
        if reason == "client_disconnected":
            return
        connected = WebSocketState.CONNECTED
        if getattr(self._ws, "application_state", connected) != connected:
            return
        if getattr(self._ws, "client_state", connected) != connected:
            return
        try:
            await self._ws.close(code=_CLOSE_CODES.get(reason or "", 1000))
        except Exception as exc:
            logger.debug("subscription_close_failed", room_id=self.room_id, error=str(exc))

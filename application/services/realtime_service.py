"""Application service for realtime room subscriptions.

Keeps application logic (room validation, orchestration) separate from
the concrete subscription registry, fan-out and broadcast transport.
"""
from __future__ import annotations

from typing import Optional

from fastapi import WebSocket

from application.ports.realtime import (
    MessageAnswered,
    MessageAnsweredValue,
    MessageCreated,
    MessageCreatedValue,
    MessageReactionIncreased,
    MessageReactionValue,
    Notification,
    RealtimeBrokerPort,
)
from application.services.room_service import RoomApplicationService
from core.logging_config import get_logger
from infrastructure.realtime.notifier import Notifier
from infrastructure.realtime.registry import SubscriptionRegistry
from infrastructure.realtime.session import LiveSession


logger = get_logger(__name__)


class RealtimeService:
    def __init__(
        self,
        *,
        broker: RealtimeBrokerPort,
        registry: SubscriptionRegistry,
        notifier: Notifier,
        rooms: RoomApplicationService,
    ) -> None:
        self._broker = broker
        self._registry = registry
        self._notifier = notifier
        self._rooms = rooms

    # Subscription lifecycle
    async def subscribe(self, websocket: WebSocket, raw_room_id: str) -> Optional[str]:
        """Run a live session for `websocket` until it terminates.

        Raises BusinessException when the room id is invalid, the room does
        not exist, or the upgrade fails; the caller rejects the handshake.
        """
        session = LiveSession(
            websocket,
            raw_room_id,
            registry=self._registry,
            validate=self._rooms.ensure_room,
        )
        return await session.run()

    # Mutation side: called after the HTTP response has been sent
    async def notify(self, event: Notification) -> None:
        try:
            await self._broker.publish(event)
        except Exception as exc:
            # notification problems never fail the triggering request
            logger.error("realtime_notify_failed", room_id=event.room_id, kind=event.kind, error=str(exc), exc_info=True)

    async def notify_message_created(self, room_id: str, message_id: str, text: str) -> None:
        await self.notify(
            MessageCreated(room_id=room_id, value=MessageCreatedValue(id=message_id, message=text))
        )

    async def notify_reaction_increased(self, room_id: str, message_id: str, count: int) -> None:
        await self.notify(
            MessageReactionIncreased(room_id=room_id, value=MessageReactionValue(id=message_id, count=count))
        )

    async def notify_message_answered(self, room_id: str, message_id: str) -> None:
        await self.notify(MessageAnswered(room_id=room_id, value=MessageAnsweredValue(id=message_id)))

    # Broker callback (cross-process events -> in-process fan-out)
    async def on_broker_event(self, event: Notification) -> None:
        await self._notifier.publish(event)

    async def stats(self) -> dict:
        return {
            "rooms": len(await self._registry.rooms()),
            "subscribers": await self._registry.count(),
        }

    async def shutdown(self) -> int:
        """Signal every live session to terminate."""
        return await self._registry.close_all("server_shutdown")

    @property
    def registry(self) -> SubscriptionRegistry:
        return self._registry

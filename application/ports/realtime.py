"""
Realtime port and notification DTOs (contracts-first).

Notifications are a closed, discriminated union over known kinds; each kind
has a statically defined `value` shape. `room_id` routes the event to the
right room and is never serialized to clients.

This module also defines the RealtimeBrokerPort protocol so the application
layer stays decoupled from the concrete cross-process transport.
"""
from __future__ import annotations

from typing import Annotated, Any, Awaitable, Callable, Literal, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class MessageCreatedValue(_Frozen):
    id: str
    message: str


class MessageReactionValue(_Frozen):
    id: str
    count: int


class MessageAnsweredValue(_Frozen):
    id: str


class _NotificationBase(_Frozen):
    room_id: str = Field(exclude=True)

    def to_client(self) -> dict[str, Any]:
        """Wire shape pushed to subscribers: `{"kind": ..., "value": {...}}`."""
        return self.model_dump(mode="json")


class MessageCreated(_NotificationBase):
    kind: Literal["message_created"] = "message_created"
    value: MessageCreatedValue


class MessageReactionIncreased(_NotificationBase):
    kind: Literal["message_reaction_increased"] = "message_reaction_increased"
    value: MessageReactionValue


class MessageAnswered(_NotificationBase):
    kind: Literal["message_answered"] = "message_answered"
    value: MessageAnsweredValue


Notification = Annotated[
    Union[MessageCreated, MessageReactionIncreased, MessageAnswered],
    Field(discriminator="kind"),
]

_notification_adapter: TypeAdapter[Notification] = TypeAdapter(Notification)


def dump_for_broker(event: Notification) -> dict[str, Any]:
    """Serialize including the routing key, for cross-process transports."""
    return {"room_id": event.room_id, "event": event.to_client()}


def load_from_broker(data: dict[str, Any]) -> Notification:
    payload = dict(data["event"])
    payload["room_id"] = data["room_id"]
    return _notification_adapter.validate_python(payload)


Handler = Callable[[Notification], Awaitable[None]]


class RealtimeBrokerPort(Protocol):
    """Abstraction for getting an event from the mutating request to the Notifier.

    Implementations may be in-memory (single process) or Redis pub/sub.
    The application only depends on this contract.
    """

    async def publish(self, event: Notification) -> None: ...

    async def subscribe(self, handler: Handler) -> None: ...

    async def aclose(self) -> None: ...  # pragma: no cover - optional


__all__ = [
    "MessageCreated",
    "MessageCreatedValue",
    "MessageReactionIncreased",
    "MessageReactionValue",
    "MessageAnswered",
    "MessageAnsweredValue",
    "Notification",
    "RealtimeBrokerPort",
    "Handler",
    "dump_for_broker",
    "load_from_broker",
]

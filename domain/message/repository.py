"""Repository abstraction for room messages."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from .entity import Message


class MessageRepository(ABC):
    """Contract for persisting and querying messages."""

    @abstractmethod
    async def create(self, message: Message) -> Message:
        ...

    @abstractmethod
    async def get_by_id(self, message_id: UUID) -> Optional[Message]:
        ...

    @abstractmethod
    async def list_by_room(self, room_id: UUID) -> list[Message]:
        ...

    @abstractmethod
    async def increment_reaction(self, message_id: UUID) -> Optional[int]:
        """Atomically add one reaction; returns the new count or None if absent."""
        ...

    @abstractmethod
    async def mark_answered(self, message_id: UUID) -> bool:
        """Returns False when the message does not exist."""
        ...

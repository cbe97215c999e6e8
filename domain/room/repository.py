"""Repository abstraction for rooms."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from .entity import Room


class RoomRepository(ABC):
    """Contract for persisting and querying rooms."""

    @abstractmethod
    async def create(self, room: Room) -> Room:
        ...

    @abstractmethod
    async def get_by_id(self, room_id: UUID) -> Optional[Room]:
        ...

    @abstractmethod
    async def list(self) -> list[Room]:
        ...

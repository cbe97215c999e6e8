"""SQLAlchemy-backed repository for rooms."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.room import Room, RoomRepository
from infrastructure.models.room import RoomModel


class SQLAlchemyRoomRepository(RoomRepository):
    """Persist room aggregates using SQLAlchemy ORM."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _to_entity(model: RoomModel) -> Room:
        return Room(id=model.id, theme=model.theme, created_at=model.created_at)

    async def create(self, room: Room) -> Room:
        model = RoomModel(theme=room.theme)
        if room.created_at is not None:
            model.created_at = room.created_at
        self.session.add(model)
        await self.session.flush()
        await self.session.refresh(model)
        return self._to_entity(model)

    async def get_by_id(self, room_id: UUID) -> Optional[Room]:
        result = await self.session.execute(
            select(RoomModel).where(RoomModel.id == room_id)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list(self) -> list[Room]:
        result = await self.session.execute(
            select(RoomModel).order_by(RoomModel.created_at.desc(), RoomModel.id)
        )
        return [self._to_entity(model) for model in result.scalars().all()]

"""SQLAlchemy-backed repository for room messages."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from domain.message import Message, MessageRepository
from infrastructure.models.message import MessageModel


class SQLAlchemyMessageRepository(MessageRepository):
    """Persist message aggregates using SQLAlchemy ORM."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _to_entity(model: MessageModel) -> Message:
        return Message(
            id=model.id,
            room_id=model.room_id,
            message=model.message,
            reaction_count=int(model.reaction_count or 0),
            answered=bool(model.answered),
            created_at=model.created_at,
        )

    async def create(self, message: Message) -> Message:
        model = MessageModel(
            room_id=message.room_id,
            message=message.message,
            reaction_count=message.reaction_count,
            answered=message.answered,
        )
        if message.created_at is not None:
            model.created_at = message.created_at
        self.session.add(model)
        await self.session.flush()
        await self.session.refresh(model)
        return self._to_entity(model)

    async def get_by_id(self, message_id: UUID) -> Optional[Message]:
        result = await self.session.execute(
            select(MessageModel).where(MessageModel.id == message_id)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_by_room(self, room_id: UUID) -> list[Message]:
        result = await self.session.execute(
            select(MessageModel)
            .where(MessageModel.room_id == room_id)
            .order_by(MessageModel.created_at, MessageModel.id)
        )
        return [self._to_entity(model) for model in result.scalars().all()]

    async def increment_reaction(self, message_id: UUID) -> Optional[int]:
        # 单条 UPDATE ... RETURNING，并发点赞不会丢失更新
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id)
            .values(reaction_count=MessageModel.reaction_count + 1)
            .returning(MessageModel.reaction_count)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        count = result.scalar_one_or_none()
        return int(count) if count is not None else None

    async def mark_answered(self, message_id: UUID) -> bool:
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id)
            .values(answered=True)
            .returning(MessageModel.id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

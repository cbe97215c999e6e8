"""
房间/消息应用服务（application/services）- 编排仓储与事务边界

Every method takes raw path identifiers and validates them before touching
storage: a malformed id never reaches the database.
"""
from __future__ import annotations

from typing import Callable
from uuid import UUID

from application.dto import (
    IdentifierDTO,
    MessageCreateDTO,
    MessageDTO,
    MessageListDTO,
    RoomCreateDTO,
    RoomDTO,
    RoomListDTO,
)
from core.logging_config import get_logger
from domain.common.exceptions import (
    InvalidIdentifierException,
    MessageNotFoundException,
    RoomNotFoundException,
)
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.message import Message
from domain.room import Room


logger = get_logger(__name__)


def parse_identifier(raw: str, field: str) -> UUID:
    """Parse a path identifier into a UUID or raise InvalidIdentifierException."""
    try:
        return UUID(str(raw).strip())
    except (ValueError, AttributeError, TypeError):
        raise InvalidIdentifierException(field, str(raw)) from None


def _to_message_dto(message: Message) -> MessageDTO:
    return MessageDTO(
        id=str(message.id),
        room_id=str(message.room_id),
        message=message.message,
        reaction_count=message.reaction_count,
        answered=message.answered,
    )


class RoomApplicationService:
    """房间与消息的应用服务"""

    def __init__(self, uow_factory: Callable[..., AbstractUnitOfWork]):
        self._uow_factory = uow_factory

    # -------------------- rooms --------------------
    async def create_room(self, data: RoomCreateDTO) -> IdentifierDTO:
        async with self._uow_factory() as uow:
            room = await uow.room_repository.create(Room(id=None, theme=data.theme))
        logger.info("room_created", room_id=str(room.id))
        return IdentifierDTO(id=str(room.id))

    async def list_rooms(self) -> RoomListDTO:
        async with self._uow_factory(readonly=True) as uow:
            rooms = await uow.room_repository.list()
        return RoomListDTO(rooms=[RoomDTO(id=str(r.id), theme=r.theme) for r in rooms])

    async def get_room(self, raw_room_id: str) -> RoomDTO:
        room_id = parse_identifier(raw_room_id, "room_id")
        async with self._uow_factory(readonly=True) as uow:
            room = await uow.room_repository.get_by_id(room_id)
        if room is None:
            raise RoomNotFoundException(str(room_id))
        return RoomDTO(id=str(room.id), theme=room.theme)

    async def ensure_room(self, raw_room_id: str) -> str:
        """Canonical room id if the room exists (used before subscribing)."""
        room = await self.get_room(raw_room_id)
        return room.id

    # -------------------- messages --------------------
    async def create_message(self, raw_room_id: str, data: MessageCreateDTO) -> MessageDTO:
        room_id = parse_identifier(raw_room_id, "room_id")
        async with self._uow_factory() as uow:
            if await uow.room_repository.get_by_id(room_id) is None:
                raise RoomNotFoundException(str(room_id))
            message = await uow.message_repository.create(
                Message(id=None, room_id=room_id, message=data.message)
            )
        logger.info("message_created", room_id=str(room_id), message_id=str(message.id))
        return _to_message_dto(message)

    async def list_messages(self, raw_room_id: str) -> MessageListDTO:
        room_id = parse_identifier(raw_room_id, "room_id")
        async with self._uow_factory(readonly=True) as uow:
            if await uow.room_repository.get_by_id(room_id) is None:
                raise RoomNotFoundException(str(room_id))
            messages = await uow.message_repository.list_by_room(room_id)
        return MessageListDTO(messages=[_to_message_dto(m) for m in messages])

    async def get_message(self, raw_room_id: str, raw_message_id: str) -> MessageDTO:
        room_id = parse_identifier(raw_room_id, "room_id")
        message_id = parse_identifier(raw_message_id, "message_id")
        async with self._uow_factory(readonly=True) as uow:
            message = await uow.message_repository.get_by_id(message_id)
        if message is None or not message.belongs_to(room_id):
            raise MessageNotFoundException(str(message_id))
        return _to_message_dto(message)

    async def react_to_message(self, raw_room_id: str, raw_message_id: str) -> MessageDTO:
        """Add one reaction; returns the message with its new reaction count."""
        room_id = parse_identifier(raw_room_id, "room_id")
        message_id = parse_identifier(raw_message_id, "message_id")
        async with self._uow_factory() as uow:
            message = await uow.message_repository.get_by_id(message_id)
            if message is None or not message.belongs_to(room_id):
                raise MessageNotFoundException(str(message_id))
            count = await uow.message_repository.increment_reaction(message_id)
            if count is None:
                raise MessageNotFoundException(str(message_id))
        message.reaction_count = count
        logger.info("message_reacted", room_id=str(room_id), message_id=str(message_id), count=count)
        return _to_message_dto(message)

    async def mark_message_answered(self, raw_room_id: str, raw_message_id: str) -> MessageDTO:
        room_id = parse_identifier(raw_room_id, "room_id")
        message_id = parse_identifier(raw_message_id, "message_id")
        async with self._uow_factory() as uow:
            message = await uow.message_repository.get_by_id(message_id)
            if message is None or not message.belongs_to(room_id):
                raise MessageNotFoundException(str(message_id))
            if not await uow.message_repository.mark_answered(message_id):
                raise MessageNotFoundException(str(message_id))
        message.answered = True
        logger.info("message_answered", room_id=str(room_id), message_id=str(message_id))
        return _to_message_dto(message)

"""Unit of Work 抽象定义

一个用例对应一个 UoW：进入时取得仓储，正常退出时提交（只读除外），
异常退出时回滚。业务异常照常向上抛出。
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from domain.message.repository import MessageRepository
from domain.room.repository import RoomRepository


class AbstractUnitOfWork(ABC):
    """房间/消息用例的事务边界"""

    room_repository: RoomRepository
    message_repository: MessageRepository

    def __init__(self, *, readonly: bool = False) -> None:
        self._readonly = readonly
        self._committed = False

    @property
    def readonly(self) -> bool:
        return self._readonly

    async def __aenter__(self) -> "AbstractUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc is not None:
            await self.rollback()
            return
        if self._readonly or self._committed:
            return
        await self.commit()

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...

"""SQLAlchemy Unit of Work 实现"""
from __future__ import annotations

from typing import Optional, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.common.exceptions import StorageException
from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.database import AsyncSessionLocal
from infrastructure.repositories.room_repository import SQLAlchemyRoomRepository
from infrastructure.repositories.message_repository import SQLAlchemyMessageRepository


logger = get_logger(__name__)


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    """基于SQLAlchemy的Unit of Work

    数据库层异常（SQLAlchemyError）在回滚后统一转换为 StorageException，
    应用层与路由层无需感知具体驱动。
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
        session: Optional[AsyncSession] = None,
        *,
        readonly: bool = False,
    ) -> None:
        super().__init__(readonly=readonly)
        self._session_factory = session_factory
        self._external_session = session
        self.session: Optional[AsyncSession] = session
        self._transaction = None

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        if self.session is None:
            self.session = self._session_factory()
        self.room_repository = SQLAlchemyRoomRepository(self.session)
        self.message_repository = SQLAlchemyMessageRepository(self.session)
        # 仅在非只读模式下显式开启事务
        if not self._readonly:
            try:
                self._transaction = await self.session.begin()
            except SQLAlchemyError as exc:
                await self._release()
                raise StorageException("begin", str(exc)) from exc
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await super().__aexit__(exc_type, exc, tb)
        finally:
            await self._release()
        if isinstance(exc, SQLAlchemyError):
            logger.error("storage_operation_failed", error=str(exc), error_type=type(exc).__name__)
            raise StorageException("query", str(exc)) from exc

    async def _release(self) -> None:
        # session.close() 会回滚仍处于活动状态的事务
        self._transaction = None
        if self._external_session is None and self.session is not None:
            await self.session.close()
            self.session = None
        self.room_repository = None  # type: ignore[assignment]
        self.message_repository = None  # type: ignore[assignment]

    async def commit(self) -> None:
        if self._readonly:
            # 只读情况下不提交
            self._committed = True
            return
        if self.session and self.session.in_transaction():
            try:
                await self.session.commit()
            except SQLAlchemyError as exc:
                logger.error("storage_commit_failed", error=str(exc))
                raise StorageException("commit", str(exc)) from exc
        self._committed = True

    async def rollback(self) -> None:
        if self.session and self.session.in_transaction():
            await self.session.rollback()
        self._committed = False

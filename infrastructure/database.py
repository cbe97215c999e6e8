"""
数据库配置和连接管理

Rooms and messages live in one relational store. PostgreSQL (asyncpg) is the
default; SQLite (aiosqlite) is accepted for local runs and tests.
"""
from typing import Any, Dict

from sqlalchemy import event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from core.config import settings
from core.logging_config import get_logger
from infrastructure.models import Base


logger = get_logger(__name__)

_ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


def _build_async_url(database_url: str) -> URL:
    """确保数据库URL使用异步驱动（postgresql -> asyncpg, sqlite -> aiosqlite）"""
    url = make_url(database_url)
    if "+" in url.drivername:
        return url
    if url.drivername not in _ASYNC_DRIVERS:
        raise ValueError(f"不支持的数据库驱动: {url.drivername}. 请使用 async 驱动或更新 DATABASE__URL")
    return url.set(drivername=_ASYNC_DRIVERS[url.drivername])


def _engine_options(url: URL) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.database.echo}
    if url.get_backend_name() != "sqlite":
        options["pool_pre_ping"] = True
    return options


def _enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    # SQLite 默认不执行外键约束，消息随房间级联删除依赖它
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


_url = _build_async_url(settings.database.url)

engine = create_async_engine(_url, **_engine_options(_url))
if _url.get_backend_name() == "sqlite":
    _enable_sqlite_foreign_keys(engine)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
)


async def create_tables():
    """
    创建所有表

    仅用于开发/测试环境；表结构迁移不在本服务职责范围内
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_tables_ready", backend=_url.get_backend_name())


async def drop_tables():
    """
    删除所有表

    警告：仅用于测试环境，会删除所有数据！
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def dispose_engine() -> None:
    await engine.dispose()

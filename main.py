"""
FastAPI应用主入口
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import messages as messages_routes
from api.routes import rooms as rooms_routes
from api.routes import ws as ws_routes
from api.middleware import RequestIDMiddleware, LoggingMiddleware
from application.ports.realtime import RealtimeBrokerPort
from application.services.realtime_service import RealtimeService
from application.services.room_service import RoomApplicationService
from core.config import settings
from core.exceptions import register_exception_handlers
from core.response import success_response
from core.logging_config import get_logger, configure_logging
from infrastructure.database import create_tables, dispose_engine
from infrastructure.realtime.brokers import InMemoryRealtimeBroker, RedisRealtimeBroker
from infrastructure.realtime.notifier import Notifier
from infrastructure.realtime.registry import SubscriptionRegistry
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


# 初始化日志：在入口处显式配置，避免模块导入时的副作用
configure_logging()
logger = get_logger(__name__)


def build_realtime_broker() -> RealtimeBrokerPort:
    """根据 REALTIME_BROKER 选择 Broker：auto -> redis(if url) else inmemory"""
    provider = settings.REALTIME_BROKER
    if provider in ("redis", "auto") and settings.redis.url:
        logger.info("realtime_broker_selected", provider="redis")
        return RedisRealtimeBroker()
    if provider == "redis":
        logger.warning("realtime_broker_redis_missing_url", message="REDIS__URL not set, falling back to in-memory broker")
    logger.info("realtime_broker_selected", provider="inmemory")
    return InMemoryRealtimeBroker()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 开发环境自动建表；生产环境的表结构由外部迁移工具负责
    if settings.DEBUG:
        await create_tables()
        logger.info("database_initialized", message="Database tables created (development)")

    # 初始化实时通信：注册表、扇出器与 Broker 的生命周期与进程一致
    registry = SubscriptionRegistry()
    notifier = Notifier(registry, send_timeout=settings.REALTIME_WS_SEND_TIMEOUT_S)
    broker = build_realtime_broker()
    realtime = RealtimeService(
        broker=broker,
        registry=registry,
        notifier=notifier,
        rooms=RoomApplicationService(uow_factory=SQLAlchemyUnitOfWork),
    )
    await broker.subscribe(realtime.on_broker_event)
    app.state.subscription_registry = registry
    app.state.realtime_broker = broker
    app.state.realtime_service = realtime
    logger.info("realtime_initialized")

    yield

    # 关闭：先通知所有订阅会话退出，再关闭 Broker 与数据库连接池
    cancelled = await realtime.shutdown()
    logger.info("realtime_sessions_cancelled", count=cancelled)
    try:
        await broker.aclose()
    except Exception as exc:
        logger.warning("realtime_broker_close_failed", error=str(exc))
    await dispose_engine()
    logger.info("application_shutdown", message="Application shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="实时问答房间服务：房间、提问、点赞与实时推送",
)

# 添加中间件（注意顺序：从下往上执行）
# 1. 日志中间件（依赖request_id）
app.add_middleware(LoggingMiddleware)

# 2. Request ID中间件（最先执行，为后续中间件提供request_id）
app.add_middleware(RequestIDMiddleware)

# 3. CORS中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Accept", "Authorization", "Content-Type", "X-CSRF-Token", "X-Request-ID"],
    expose_headers=["Link", "X-Request-ID"],
    max_age=300,
)

# 注册全局异常处理器
register_exception_handlers(app)


# 注册路由
app.include_router(rooms_routes.router, prefix="/api")
app.include_router(messages_routes.router, prefix="/api")
app.include_router(ws_routes.router)


@app.get("/", tags=["Root"])
async def root():
    """API根路径"""
    return success_response(
        data={
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "docs": "/docs",
        },
        message="Welcome",
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """健康检查端点（附带当前进程的订阅统计）"""
    realtime = getattr(app.state, "realtime_service", None)
    realtime_stats = await realtime.stats() if realtime is not None else None
    return success_response(data={"status": "healthy", "realtime": realtime_stats}, message="OK")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )

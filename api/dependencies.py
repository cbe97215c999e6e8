"""
API依赖项 - 应用服务注入
"""
from starlette.requests import HTTPConnection

from application.services.realtime_service import RealtimeService
from application.services.room_service import RoomApplicationService
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


async def get_room_service() -> RoomApplicationService:
    return RoomApplicationService(uow_factory=SQLAlchemyUnitOfWork)


def get_realtime_service(conn: HTTPConnection) -> RealtimeService:
    """Realtime service built in the lifespan; shared by HTTP and WebSocket routes."""
    svc = getattr(conn.app.state, "realtime_service", None)
    if svc is None:
        raise RuntimeError("Realtime service not initialized. Ensure lifespan sets app.state.realtime_service.")
    return svc

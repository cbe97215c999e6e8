"""WebSocket subscription route.

`/subscribe/{room_id}` upgrades to a WebSocket that receives every
notification for that room until either side goes away. A bad room id or an
unknown room rejects the handshake before any upgrade happens.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, WebSocket
from starlette.websockets import WebSocketState

from api.dependencies import get_realtime_service
from api.middleware import get_request_id
from application.services.realtime_service import RealtimeService
from core.exceptions import business_exception_response
from core.logging_config import get_logger
from domain.common.exceptions import BusinessException


logger = get_logger(__name__)


router = APIRouter(tags=["WebSocket"])


async def _reject(ws: WebSocket, exc: BusinessException) -> None:
    if ws.application_state != WebSocketState.CONNECTING:
        return
    # Prefer a real HTTP status on the handshake; fall back to a policy-violation close
    if "websocket.http.response" in ws.scope.get("extensions", {}):
        await ws.send_denial_response(business_exception_response(exc, get_request_id()))
    else:
        await ws.close(code=1008, reason=exc.message)


@router.websocket("/subscribe/{room_id}")
async def subscribe(
    ws: WebSocket,
    room_id: str,
    realtime: RealtimeService = Depends(get_realtime_service),
) -> None:
    client = f"{ws.client.host}:{ws.client.port}" if ws.client else "unknown"
    logger.info("subscription_requested", room_id=room_id, client=client)
    try:
        reason = await realtime.subscribe(ws, room_id)
    except BusinessException as exc:
        logger.info("subscription_rejected", room_id=room_id, client=client, error_type=exc.error_type)
        await _reject(ws, exc)
        return
    logger.info("subscription_finished", room_id=room_id, client=client, reason=reason)

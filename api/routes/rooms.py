"""房间相关路由。"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from api.dependencies import get_room_service
from application.dto import IdentifierDTO, RoomCreateDTO, RoomListDTO
from application.services.room_service import RoomApplicationService
from core.response import Response as ApiResponse, success_response


router = APIRouter(prefix="/rooms", tags=["Rooms"])


@router.post(
    "",
    summary="创建房间",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[IdentifierDTO],
)
async def create_room(
    body: RoomCreateDTO,
    service: RoomApplicationService = Depends(get_room_service),
):
    room = await service.create_room(body)
    return success_response(room, message="Created")


@router.get(
    "",
    summary="房间列表",
    response_model=ApiResponse[RoomListDTO],
)
async def list_rooms(service: RoomApplicationService = Depends(get_room_service)):
    return success_response(await service.list_rooms())

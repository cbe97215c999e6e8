"""房间消息（提问）相关路由。

Mutations respond first; the live notification is sent from a background
task once the response is out, so subscribers never slow the caller down.
"""
from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status

from api.dependencies import get_realtime_service, get_room_service
from application.dto import (
    IdentifierDTO,
    MessageCreateDTO,
    MessageDTO,
    MessageListDTO,
    ReactionCountDTO,
)
from application.services.realtime_service import RealtimeService
from application.services.room_service import RoomApplicationService
from core.response import Response as ApiResponse, success_response


router = APIRouter(prefix="/rooms/{room_id}/messages", tags=["Messages"])


@router.post(
    "",
    summary="发布消息",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[IdentifierDTO],
)
async def create_message(
    room_id: str,
    body: MessageCreateDTO,
    background_tasks: BackgroundTasks,
    service: RoomApplicationService = Depends(get_room_service),
    realtime: RealtimeService = Depends(get_realtime_service),
):
    message = await service.create_message(room_id, body)
    background_tasks.add_task(
        realtime.notify_message_created, message.room_id, message.id, message.message
    )
    return success_response(IdentifierDTO(id=message.id), message="Created")


@router.get(
    "",
    summary="房间消息列表",
    response_model=ApiResponse[MessageListDTO],
)
async def list_messages(
    room_id: str,
    service: RoomApplicationService = Depends(get_room_service),
):
    return success_response(await service.list_messages(room_id))


@router.get(
    "/{message_id}",
    summary="消息详情",
    response_model=ApiResponse[MessageDTO],
)
async def get_message(
    room_id: str,
    message_id: str,
    service: RoomApplicationService = Depends(get_room_service),
):
    return success_response(await service.get_message(room_id, message_id))


@router.patch(
    "/{message_id}/react",
    summary="点赞消息",
    response_model=ApiResponse[ReactionCountDTO],
)
async def react_to_message(
    room_id: str,
    message_id: str,
    background_tasks: BackgroundTasks,
    service: RoomApplicationService = Depends(get_room_service),
    realtime: RealtimeService = Depends(get_realtime_service),
):
    message = await service.react_to_message(room_id, message_id)
    background_tasks.add_task(
        realtime.notify_reaction_increased, message.room_id, message.id, message.reaction_count
    )
    return success_response(ReactionCountDTO(count=message.reaction_count))


# TODO: DELETE /{message_id}/react (remove a reaction) once reactions are tracked per client


@router.patch(
    "/{message_id}/answer",
    summary="标记为已回答",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def mark_message_answered(
    room_id: str,
    message_id: str,
    background_tasks: BackgroundTasks,
    service: RoomApplicationService = Depends(get_room_service),
    realtime: RealtimeService = Depends(get_realtime_service),
):
    message = await service.mark_message_answered(room_id, message_id)
    background_tasks.add_task(realtime.notify_message_answered, message.room_id, message.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

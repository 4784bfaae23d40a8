# agencyos/modules/notifications/routers.py
from typing import List

from fastapi import APIRouter, Depends, status

from agencyos.core.security import CurrentUser
from agencyos.models.api_common import StatusResponse
from .models import NotificationAPI, UnreadCountAPI
from .services import NotificationService, get_notification_service

notifications_router = APIRouter()


@notifications_router.get("/", response_model=List[NotificationAPI])
async def list_notifications(current_user: CurrentUser, service: NotificationService = Depends(get_notification_service)):
    return [NotificationAPI.model_validate(n) for n in await service.list_for_user(current_user.id)]


@notifications_router.get("/unread-count", response_model=UnreadCountAPI)
async def unread_count(current_user: CurrentUser, service: NotificationService = Depends(get_notification_service)):
    return UnreadCountAPI(unread=await service.unread_count(current_user.id))


@notifications_router.post("/{notification_id}/read", response_model=StatusResponse)
async def mark_as_read(notification_id: str, current_user: CurrentUser, service: NotificationService = Depends(get_notification_service)):
    await service.mark_as_read(current_user.id, notification_id)
    return StatusResponse(status="ok")


@notifications_router.post("/read-all", response_model=StatusResponse)
async def mark_all_as_read(current_user: CurrentUser, service: NotificationService = Depends(get_notification_service)):
    updated = await service.mark_all_as_read(current_user.id)
    return StatusResponse(status="ok", message=f"{updated} notification(s) marked as read")


@notifications_router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(notification_id: str, current_user: CurrentUser, service: NotificationService = Depends(get_notification_service)):
    await service.delete(current_user.id, notification_id)

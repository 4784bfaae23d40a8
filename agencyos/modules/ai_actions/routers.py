# agencyos/modules/ai_actions/routers.py
from typing import List

from fastapi import APIRouter, Depends, status

from agencyos.core.security import CurrentUser, require_role
from .models import AIActionAPI, AIActionCreateAPI, RejectActionAPI
from .services import AIActionService, get_ai_action_service

ai_actions_router = APIRouter()


@ai_actions_router.get("/", response_model=List[AIActionAPI])
async def list_actions(current_user: CurrentUser, service: AIActionService = Depends(get_ai_action_service)):
    return [AIActionAPI.model_validate(a) for a in await service.get_all(current_user.organization_id)]


@ai_actions_router.get("/pending", response_model=List[AIActionAPI])
async def list_pending_actions(current_user: CurrentUser, service: AIActionService = Depends(get_ai_action_service)):
    return [AIActionAPI.model_validate(a) for a in await service.get_pending(current_user.organization_id)]


@ai_actions_router.post("/", response_model=AIActionAPI, status_code=status.HTTP_201_CREATED)
async def create_action(action_in: AIActionCreateAPI, current_user: CurrentUser, service: AIActionService = Depends(get_ai_action_service)):
    return AIActionAPI.model_validate(await service.create(current_user.organization_id, action_in))


@ai_actions_router.post("/{action_id}/approve", response_model=AIActionAPI, summary="Approve and execute a proposed action")
async def approve_action(
    action_id: str,
    current_user=Depends(require_role(["admin", "manager"])),
    service: AIActionService = Depends(get_ai_action_service),
):
    return AIActionAPI.model_validate(await service.approve(current_user.organization_id, action_id, current_user.id))


@ai_actions_router.post("/{action_id}/reject", response_model=AIActionAPI)
async def reject_action(
    action_id: str,
    payload: RejectActionAPI,
    current_user=Depends(require_role(["admin", "manager"])),
    service: AIActionService = Depends(get_ai_action_service),
):
    action = await service.reject(current_user.organization_id, action_id, current_user.id, payload.reason)
    return AIActionAPI.model_validate(action)

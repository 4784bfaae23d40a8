# agencyos/modules/ai_agents/routers.py
from typing import List

from fastapi import APIRouter, Depends, status

from agencyos.core.security import CurrentUser, require_role
from .models import AIAgentAPI, AIAgentCreateAPI, AIAgentUpdateAPI
from .services import AIAgentService, get_ai_agent_service

ai_agents_router = APIRouter()


@ai_agents_router.get("/", response_model=List[AIAgentAPI])
async def list_agents(current_user: CurrentUser, service: AIAgentService = Depends(get_ai_agent_service)):
    return [AIAgentAPI.model_validate(a) for a in await service.get_all(current_user.organization_id)]


@ai_agents_router.get("/{agent_id}", response_model=AIAgentAPI)
async def get_agent(agent_id: str, current_user: CurrentUser, service: AIAgentService = Depends(get_ai_agent_service)):
    return AIAgentAPI.model_validate(await service.get_by_id(current_user.organization_id, agent_id))


@ai_agents_router.post("/", response_model=AIAgentAPI, status_code=status.HTTP_201_CREATED)
async def create_agent(
    agent_in: AIAgentCreateAPI,
    current_user=Depends(require_role(["admin", "manager"])),
    service: AIAgentService = Depends(get_ai_agent_service),
):
    agent = await service.create(current_user.organization_id, agent_in, created_by=current_user.id)
    return AIAgentAPI.model_validate(agent)


@ai_agents_router.patch("/{agent_id}", response_model=AIAgentAPI)
async def update_agent(
    agent_id: str,
    agent_in: AIAgentUpdateAPI,
    current_user=Depends(require_role(["admin", "manager"])),
    service: AIAgentService = Depends(get_ai_agent_service),
):
    return AIAgentAPI.model_validate(await service.update(current_user.organization_id, agent_id, agent_in))


@ai_agents_router.post("/{agent_id}/toggle", response_model=AIAgentAPI, summary="Switch an agent between active and inactive")
async def toggle_agent(
    agent_id: str,
    current_user=Depends(require_role(["admin", "manager"])),
    service: AIAgentService = Depends(get_ai_agent_service),
):
    return AIAgentAPI.model_validate(await service.toggle_status(current_user.organization_id, agent_id))


@ai_agents_router.delete("/{agent_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_agent(
    agent_id: str,
    current_user=Depends(require_role(["admin"])),
    service: AIAgentService = Depends(get_ai_agent_service),
):
    await service.delete(current_user.organization_id, agent_id)

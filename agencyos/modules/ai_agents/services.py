# agencyos/modules/ai_agents/services.py
from typing import List, Optional

from fastapi import Depends, HTTPException, status
from loguru import logger

from .models import AIAgentCreateAPI, AIAgentInDB, AIAgentUpdateAPI
from .repository import AIAgentRepository, get_ai_agent_repository


class AIAgentService:
    def __init__(self, agent_repo: AIAgentRepository):
        self.agent_repo = agent_repo

    async def get_all(self, organization_id: str) -> List[AIAgentInDB]:
        return await self.agent_repo.list_for_org(organization_id, limit=0)

    async def get_by_id(self, organization_id: str, agent_id: str) -> AIAgentInDB:
        agent = await self.agent_repo.get_for_org(organization_id, agent_id)
        if not agent:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="AI agent not found.")
        return agent

    async def create(self, organization_id: str, agent_in: AIAgentCreateAPI, created_by: Optional[str] = None) -> AIAgentInDB:
        data = agent_in.model_dump()
        data["organization_id"] = organization_id
        data["created_by"] = created_by
        agent = await self.agent_repo.create(data)
        logger.bind(service="AIAgentService", organization_id=organization_id).info(
            f"AI agent '{agent.name}' created ({agent.role})."
        )
        return agent

    async def update(self, organization_id: str, agent_id: str, agent_in: AIAgentUpdateAPI) -> AIAgentInDB:
        """Partial update: only the provided fields change, nested settings included."""
        changes = agent_in.model_dump(exclude_unset=True)
        update_data = {}
        for key, value in changes.items():
            if value is None:
                continue
            if key in ("settings", "permissions"):
                update_data.update({f"{key}.{sub_key}": sub_value for sub_key, sub_value in value.items()})
            else:
                update_data[key] = value
        agent = await self.agent_repo.update_for_org(organization_id, agent_id, update_data)
        if not agent:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="AI agent not found.")
        return agent

    async def delete(self, organization_id: str, agent_id: str) -> None:
        if not await self.agent_repo.delete_for_org(organization_id, agent_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="AI agent not found.")

    async def toggle_status(self, organization_id: str, agent_id: str) -> AIAgentInDB:
        agent = await self.get_by_id(organization_id, agent_id)
        new_status = "inactive" if agent.status == "active" else "active"
        return await self.agent_repo.update_for_org(organization_id, agent_id, {"status": new_status})


async def get_ai_agent_service(agent_repo: AIAgentRepository = Depends(get_ai_agent_repository)) -> AIAgentService:
    return AIAgentService(agent_repo)

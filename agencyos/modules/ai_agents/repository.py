# agencyos/modules/ai_agents/repository.py
from typing import List

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from agencyos.core.database import get_database
from agencyos.core.repository import TenantRepository
from .models import AIAgentInDB


class AIAgentRepository(TenantRepository[AIAgentInDB]):
    model = AIAgentInDB
    collection_name = "ai_agents"

    async def list_active_by_trigger(self, organization_id: str, trigger: str) -> List[AIAgentInDB]:
        # Matches array elements
        return await self.list_for_org(organization_id, {"status": "active", "triggers": trigger}, limit=0)


async def get_ai_agent_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> AIAgentRepository:
    return AIAgentRepository(db)

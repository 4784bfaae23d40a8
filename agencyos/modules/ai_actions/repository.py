# agencyos/modules/ai_actions/repository.py
from typing import List

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from agencyos.core.database import get_database
from agencyos.core.repository import TenantRepository
from .models import AIActionInDB, AILeadInDB


class AIActionRepository(TenantRepository[AIActionInDB]):
    model = AIActionInDB
    collection_name = "ai_actions"

    async def list_recent(self, organization_id: str, limit: int = 100) -> List[AIActionInDB]:
        return await self.list_for_org(organization_id, limit=limit)


class AILeadRepository(TenantRepository[AILeadInDB]):
    model = AILeadInDB
    collection_name = "ai_leads"


async def get_ai_action_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> AIActionRepository:
    return AIActionRepository(db)


async def get_ai_lead_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> AILeadRepository:
    return AILeadRepository(db)

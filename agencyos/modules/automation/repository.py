# agencyos/modules/automation/repository.py
from typing import List, Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from agencyos.core.database import get_database
from agencyos.core.repository import TenantRepository, utcnow
from .models import AutomationRuleInDB


class AutomationRuleRepository(TenantRepository[AutomationRuleInDB]):
    model = AutomationRuleInDB
    collection_name = "automation_rules"

    async def get_all(self, organization_id: str) -> List[AutomationRuleInDB]:
        return await self.list_for_org(organization_id, limit=0)

    async def get_active(self, organization_id: str) -> List[AutomationRuleInDB]:
        return await self.list_for_org(organization_id, {"is_active": True}, limit=0)

    async def get_by_trigger(self, organization_id: str, trigger_type: str) -> List[AutomationRuleInDB]:
        """Active rules listening to `trigger_type`, oldest first."""
        return await self.list_for_org(
            organization_id,
            {"trigger_type": trigger_type, "is_active": True},
            limit=0,
            sort=[("created_at", 1)],
        )

    async def toggle(self, organization_id: str, rule_id: str, is_active: bool) -> Optional[AutomationRuleInDB]:
        return await self.update_for_org(organization_id, rule_id, {"is_active": is_active})

    async def record_execution(self, rule_id: str) -> Optional[AutomationRuleInDB]:
        return await self.increment(rule_id, {"execution_count": 1}, {"last_executed_at": utcnow()})


async def get_automation_rule_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> AutomationRuleRepository:
    return AutomationRuleRepository(db)

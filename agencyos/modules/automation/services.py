# agencyos/modules/automation/services.py
from typing import List, Optional

from fastapi import Depends, HTTPException, status
from loguru import logger

from .models import AutomationRuleCreateAPI, AutomationRuleInDB, AutomationRuleUpdateAPI
from .repository import AutomationRuleRepository, get_automation_rule_repository


class AutomationRuleService:
    def __init__(self, rule_repo: AutomationRuleRepository):
        self.rule_repo = rule_repo

    async def get_all(self, organization_id: str) -> List[AutomationRuleInDB]:
        return await self.rule_repo.get_all(organization_id)

    async def get_active(self, organization_id: str) -> List[AutomationRuleInDB]:
        return await self.rule_repo.get_active(organization_id)

    async def get_by_trigger(self, organization_id: str, trigger_type: str) -> List[AutomationRuleInDB]:
        return await self.rule_repo.get_by_trigger(organization_id, trigger_type)

    async def get(self, organization_id: str, rule_id: str) -> AutomationRuleInDB:
        rule = await self.rule_repo.get_for_org(organization_id, rule_id)
        if not rule:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Automation rule not found.")
        return rule

    async def create(self, organization_id: str, rule_in: AutomationRuleCreateAPI, created_by: Optional[str] = None) -> AutomationRuleInDB:
        data = rule_in.model_dump()
        data.update({
            "organization_id": organization_id,
            "created_by": created_by,
            "execution_count": 0,
            "last_executed_at": None,
        })
        rule = await self.rule_repo.create(data)
        logger.bind(service="AutomationRuleService", organization_id=organization_id).info(
            f"Rule '{rule.name}' created: {rule.trigger_type} -> {rule.action_type}"
        )
        return rule

    async def update(self, organization_id: str, rule_id: str, rule_in: AutomationRuleUpdateAPI) -> AutomationRuleInDB:
        changes = {k: v for k, v in rule_in.model_dump(exclude_unset=True).items() if v is not None}
        rule = await self.rule_repo.update_for_org(organization_id, rule_id, changes)
        if not rule:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Automation rule not found.")
        return rule

    async def delete(self, organization_id: str, rule_id: str) -> None:
        if not await self.rule_repo.delete_for_org(organization_id, rule_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Automation rule not found.")

    async def toggle(self, organization_id: str, rule_id: str, is_active: bool) -> AutomationRuleInDB:
        rule = await self.rule_repo.toggle(organization_id, rule_id, is_active)
        if not rule:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Automation rule not found.")
        return rule


async def get_automation_rule_service(
    rule_repo: AutomationRuleRepository = Depends(get_automation_rule_repository),
) -> AutomationRuleService:
    return AutomationRuleService(rule_repo)

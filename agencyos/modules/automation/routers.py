# agencyos/modules/automation/routers.py
from typing import List

from fastapi import APIRouter, Depends, status

from agencyos.core.security import CurrentUser, require_role
from .models import AutomationRuleAPI, AutomationRuleCreateAPI, AutomationRuleUpdateAPI, RuleToggleAPI
from .services import AutomationRuleService, get_automation_rule_service

automation_router = APIRouter()


@automation_router.get("/rules", response_model=List[AutomationRuleAPI])
async def list_rules(current_user: CurrentUser, service: AutomationRuleService = Depends(get_automation_rule_service)):
    return [AutomationRuleAPI.model_validate(r) for r in await service.get_all(current_user.organization_id)]


@automation_router.get("/rules/active", response_model=List[AutomationRuleAPI])
async def list_active_rules(current_user: CurrentUser, service: AutomationRuleService = Depends(get_automation_rule_service)):
    return [AutomationRuleAPI.model_validate(r) for r in await service.get_active(current_user.organization_id)]


@automation_router.get("/rules/{rule_id}", response_model=AutomationRuleAPI)
async def get_rule(rule_id: str, current_user: CurrentUser, service: AutomationRuleService = Depends(get_automation_rule_service)):
    return AutomationRuleAPI.model_validate(await service.get(current_user.organization_id, rule_id))


@automation_router.post("/rules", response_model=AutomationRuleAPI, status_code=status.HTTP_201_CREATED)
async def create_rule(
    rule_in: AutomationRuleCreateAPI,
    current_user=Depends(require_role(["admin", "manager"])),
    service: AutomationRuleService = Depends(get_automation_rule_service),
):
    rule = await service.create(current_user.organization_id, rule_in, created_by=current_user.id)
    return AutomationRuleAPI.model_validate(rule)


@automation_router.patch("/rules/{rule_id}", response_model=AutomationRuleAPI)
async def update_rule(
    rule_id: str,
    rule_in: AutomationRuleUpdateAPI,
    current_user=Depends(require_role(["admin", "manager"])),
    service: AutomationRuleService = Depends(get_automation_rule_service),
):
    return AutomationRuleAPI.model_validate(await service.update(current_user.organization_id, rule_id, rule_in))


@automation_router.post("/rules/{rule_id}/toggle", response_model=AutomationRuleAPI)
async def toggle_rule(
    rule_id: str,
    payload: RuleToggleAPI,
    current_user=Depends(require_role(["admin", "manager"])),
    service: AutomationRuleService = Depends(get_automation_rule_service),
):
    return AutomationRuleAPI.model_validate(await service.toggle(current_user.organization_id, rule_id, payload.is_active))


@automation_router.delete("/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rule(
    rule_id: str,
    current_user=Depends(require_role(["admin", "manager"])),
    service: AutomationRuleService = Depends(get_automation_rule_service),
):
    await service.delete(current_user.organization_id, rule_id)

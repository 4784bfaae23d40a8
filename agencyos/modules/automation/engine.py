# agencyos/modules/automation/engine.py

import re
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, get_args

import httpx
from fastapi import Depends, HTTPException
from loguru import logger

from agencyos.core.config import settings
from agencyos.core.logging_config import trace_id_var
from agencyos.models.api_common import _to_naive_utc
from agencyos.modules.clients.repository import ClientRepository, get_client_repository
from agencyos.modules.notifications.models import NOTIFICATION_TYPES, NotificationCreate
from agencyos.modules.notifications.services import NotificationService, get_notification_service
from agencyos.modules.tasks.models import TASK_PRIORITIES, TASK_TYPES
from agencyos.modules.tasks.repository import TaskRepository, get_task_repository
from agencyos.modules.whatsapp.services import EvolutionService, get_evolution_service
from .models import AutomationRuleInDB, Condition
from .repository import AutomationRuleRepository, get_automation_rule_repository

_VARIABLE_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def _condition_holds(condition: Condition, value: Any) -> bool:
    expected = condition.value
    operator = condition.operator
    if operator == "equals":
        return value == expected
    if operator == "not_equals":
        return value != expected
    if operator in ("greater_than", "less_than"):
        try:
            return value > expected if operator == "greater_than" else value < expected
        except TypeError:
            # None or mismatched types never satisfy an ordering
            return False
    if operator == "contains":
        return str(expected) in str(value)
    if operator == "in":
        return isinstance(expected, (list, tuple, set)) and value in expected
    return True


def evaluate_conditions(conditions: Optional[Mapping[str, Any]], context: Mapping[str, Any]) -> bool:
    """True when every `{field: {operator, value}}` holds for the context. Empty means true."""
    if not conditions:
        return True
    for field, raw_condition in conditions.items():
        condition = raw_condition if isinstance(raw_condition, Condition) else Condition.model_validate(raw_condition)
        if not _condition_holds(condition, context.get(field)):
            return False
    return True


def replace_variables(template: Optional[str], context: Mapping[str, Any]) -> str:
    """Substitutes `{{key}}` placeholders with context values; unknown keys are left as is."""
    if not template:
        return ""

    def _substitute(match: re.Match) -> str:
        key = match.group(1)
        if key not in context:
            return match.group(0)
        value = context[key]
        return "" if value is None else str(value)

    return _VARIABLE_PATTERN.sub(_substitute, template)


def replace_variables_in_object(obj: Mapping[str, Any], context: Mapping[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key, value in obj.items():
        if isinstance(value, str):
            result[key] = replace_variables(value, context)
        elif isinstance(value, Mapping):
            result[key] = replace_variables_in_object(value, context)
        else:
            result[key] = value
    return result


def parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return _to_naive_utc(value)
    if isinstance(value, str) and value:
        try:
            return _to_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


class AutomationEngine:
    """Runs the organization's automation rules for a trigger event."""

    def __init__(
        self,
        rule_repo: AutomationRuleRepository,
        task_repo: TaskRepository,
        client_repo: ClientRepository,
        notification_service: NotificationService,
        evolution_service: EvolutionService,
    ):
        self.rule_repo = rule_repo
        self.task_repo = task_repo
        self.client_repo = client_repo
        self.notification_service = notification_service
        self.evolution_service = evolution_service

    async def trigger_rules(self, organization_id: str, trigger_type: str, context: Dict[str, Any]) -> int:
        """Executes every matching active rule. Returns how many rules ran.

        A failing rule is logged and does not stop the others.
        """
        log = logger.bind(trace_id=trace_id_var.get(), service="AutomationEngine",
                          organization_id=organization_id, trigger=trigger_type)
        rules = await self.rule_repo.get_by_trigger(organization_id, trigger_type)
        executed = 0
        for rule in rules:
            try:
                if not evaluate_conditions(rule.condition_config, context):
                    log.debug(f"Rule '{rule.name}' skipped: conditions not met.")
                    continue
                await self.execute_action(rule, context)
                await self.rule_repo.record_execution(rule.id)
                executed += 1
            except Exception as e:
                log.exception(f"Failed to execute rule {rule.id} ('{rule.name}'): {e}")
        if rules:
            log.info(f"{executed}/{len(rules)} rule(s) executed.")
        return executed

    async def execute_action(self, rule: AutomationRuleInDB, context: Dict[str, Any]) -> None:
        handlers = {
            "create_task": self._create_task,
            "send_whatsapp": self._send_whatsapp,
            "send_email": self._send_email,
            "change_status": self._change_status,
            "assign_manager": self._assign_manager,
            "webhook": self._webhook,
            "create_notification": self._create_notification,
        }
        handler = handlers.get(rule.action_type)
        if handler is None:
            logger.warning(f"Unknown action type: {rule.action_type}")
            return
        await handler(rule.organization_id, rule.action_config, context)

    async def _create_task(self, organization_id: str, config: Dict[str, Any], context: Dict[str, Any]) -> None:
        task_type = config.get("task_type")
        priority = config.get("priority")
        assignee_id = config.get("assigned_to")
        if assignee_id and not await self.notification_service.user_repo.get_for_org(organization_id, assignee_id):
            logger.bind(service="AutomationEngine", organization_id=organization_id).warning(
                f"create_task: assignee {assignee_id} is not in the organization; task left unassigned."
            )
            assignee_id = None
        await self.task_repo.create({
            "organization_id": organization_id,
            "title": replace_variables(config.get("title"), context) or "Automated task",
            "description": replace_variables(config.get("description") or "", context),
            "project_id": context.get("project_id") or config.get("project_id"),
            "client_id": context.get("client_id"),
            "assignee_id": assignee_id,
            "type": task_type if task_type in get_args(TASK_TYPES) else "Task",
            "priority": priority if priority in get_args(TASK_PRIORITIES) else "Medium",
            "deadline": parse_datetime(config.get("due_date")),
            "status": "To Do",
            "tags": [],
        })

    async def _send_whatsapp(self, organization_id: str, config: Dict[str, Any], context: Dict[str, Any]) -> None:
        log = logger.bind(service="AutomationEngine", organization_id=organization_id)
        message = replace_variables(config.get("message"), context)
        phone_number = context.get("client_phone") or config.get("phone_number")
        if not phone_number or not message:
            log.info("send_whatsapp skipped: no phone number or message.")
            return
        try:
            sent = await self.evolution_service.send_text_via_active_instance(organization_id, str(phone_number), message)
        except HTTPException as e:
            log.warning(f"send_whatsapp skipped: {e.detail}")
            return
        if sent:
            log.info(f"Automation WhatsApp message sent to {phone_number}.")

    async def _send_email(self, organization_id: str, config: Dict[str, Any], context: Dict[str, Any]) -> None:
        logger.bind(service="AutomationEngine", organization_id=organization_id).info(
            "Email sending is not configured; send_email action skipped."
        )

    async def _change_status(self, organization_id: str, config: Dict[str, Any], context: Dict[str, Any]) -> None:
        if context.get("client_id") and config.get("new_status"):
            await self.client_repo.update_for_org(organization_id, context["client_id"], {"status": config["new_status"]})

    async def _assign_manager(self, organization_id: str, config: Dict[str, Any], context: Dict[str, Any]) -> None:
        if context.get("client_id") and config.get("manager_id"):
            await self.client_repo.update_for_org(organization_id, context["client_id"], {"manager_id": config["manager_id"]})

    async def _webhook(self, organization_id: str, config: Dict[str, Any], context: Dict[str, Any]) -> None:
        log = logger.bind(service="AutomationEngine", organization_id=organization_id)
        url = config.get("webhook_url")
        if not url:
            log.warning("Webhook action without webhook_url.")
            return
        payload = replace_variables_in_object(config.get("payload") or {}, context)
        headers = {"Content-Type": "application/json", **(config.get("headers") or {})}
        try:
            async with httpx.AsyncClient(timeout=settings.AUTOMATION_WEBHOOK_TIMEOUT) as client:
                response = await client.post(url, headers=headers, json={**payload, **context})
            log.info(f"Automation webhook delivered to {url}: status {response.status_code}")
        except httpx.RequestError as e:
            log.error(f"Webhook execution failed: {e}")

    async def _create_notification(self, organization_id: str, config: Dict[str, Any], context: Dict[str, Any]) -> None:
        user_id = config.get("user_id") or context.get("user_id")
        if not user_id:
            logger.warning("create_notification skipped: no recipient.")
            return
        notification_type = config.get("notification_type") or "info"
        await self.notification_service.create(NotificationCreate(
            user_id=user_id,
            title=config.get("title") or "Automation Notification",
            message=replace_variables(config.get("message"), context),
            type=notification_type if notification_type in get_args(NOTIFICATION_TYPES) else "info",
        ), organization_id)


async def get_automation_engine(
    rule_repo: AutomationRuleRepository = Depends(get_automation_rule_repository),
    task_repo: TaskRepository = Depends(get_task_repository),
    client_repo: ClientRepository = Depends(get_client_repository),
    notification_service: NotificationService = Depends(get_notification_service),
    evolution_service: EvolutionService = Depends(get_evolution_service),
) -> AutomationEngine:
    return AutomationEngine(rule_repo, task_repo, client_repo, notification_service, evolution_service)

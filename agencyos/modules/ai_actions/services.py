# agencyos/modules/ai_actions/services.py
from datetime import timedelta
from typing import Any, Dict, List, Optional, get_args

from fastapi import Depends, HTTPException, status
from loguru import logger

from agencyos.core.repository import utcnow
from agencyos.modules.automation.engine import parse_datetime
from agencyos.modules.clients.repository import ClientRepository, get_client_repository
from agencyos.modules.projects.models import PROJECT_STATUSES
from agencyos.modules.projects.repository import ProjectRepository, get_project_repository
from agencyos.modules.tasks.models import TASK_PRIORITIES, TASK_TYPES
from agencyos.modules.tasks.repository import TaskRepository, get_task_repository
from agencyos.modules.whatsapp.services import EvolutionService, get_evolution_service
from .models import AIActionCreateAPI, AIActionInDB
from .repository import AIActionRepository, AILeadRepository, get_ai_action_repository, get_ai_lead_repository


def _as_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value) or default
    except (TypeError, ValueError):
        return default


class AIActionService:
    """Review queue for actions proposed by AI agents.

    An approved action is executed immediately against the CRM and then
    marked `executed`.
    """

    def __init__(
        self,
        action_repo: AIActionRepository,
        lead_repo: AILeadRepository,
        client_repo: ClientRepository,
        task_repo: TaskRepository,
        project_repo: ProjectRepository,
        evolution_service: EvolutionService,
    ):
        self.action_repo = action_repo
        self.lead_repo = lead_repo
        self.client_repo = client_repo
        self.task_repo = task_repo
        self.project_repo = project_repo
        self.evolution_service = evolution_service

    async def get_all(self, organization_id: str) -> List[AIActionInDB]:
        return await self.action_repo.list_recent(organization_id, limit=100)

    async def get_pending(self, organization_id: str) -> List[AIActionInDB]:
        return [a for a in await self.get_all(organization_id) if a.status == "pending"]

    async def create(self, organization_id: str, action_in: AIActionCreateAPI) -> AIActionInDB:
        data = action_in.model_dump()
        data["organization_id"] = organization_id
        data["agent_name"] = data.get("agent_name") or "Unknown Agent"
        return await self.action_repo.create(data)

    async def _get(self, organization_id: str, action_id: str) -> AIActionInDB:
        action = await self.action_repo.get_for_org(organization_id, action_id)
        if not action:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Action not found.")
        return action

    async def approve(self, organization_id: str, action_id: str, reviewer_id: str) -> AIActionInDB:
        log = logger.bind(service="AIActionService", organization_id=organization_id, action_id=action_id)
        action = await self._get(organization_id, action_id)
        if action.status != "pending":
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Action is already {action.status}.")

        action = await self.action_repo.update_for_org(organization_id, action_id, {
            "status": "approved",
            "reviewed_by": reviewer_id,
            "reviewed_at": utcnow(),
        })
        await self.execute(action)
        log.info(f"AI action '{action.action_type}' approved by {reviewer_id} and executed.")
        return await self.action_repo.update_for_org(organization_id, action_id, {"status": "executed"})

    async def reject(self, organization_id: str, action_id: str, reviewer_id: str, reason: Optional[str] = None) -> AIActionInDB:
        action = await self.action_repo.update_for_org(organization_id, action_id, {
            "status": "rejected",
            "reviewed_by": reviewer_id,
            "reviewed_at": utcnow(),
            "data": {"rejection_reason": reason},
        })
        if not action:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Action not found.")
        return action

    async def execute(self, action: AIActionInDB) -> None:
        org_id = action.organization_id
        data: Dict[str, Any] = action.data or {}
        log = logger.bind(service="AIActionService", organization_id=org_id, action_id=action.id)

        if action.action_type == "create_lead":
            await self.lead_repo.create({
                "organization_id": org_id,
                "agent_id": action.agent_id,
                "name": data.get("name") or "New lead",
                "phone": data.get("phone"),
                "email": data.get("email"),
                "budget": _as_float(data.get("budget")),
                "status": "qualified",
                "score": _as_int(data.get("score"), 5),
                "extracted_data": data,
                "source": "ai_agent",
            })

        elif action.action_type == "create_task":
            priority = data.get("priority")
            task_type = data.get("type")
            await self.task_repo.create({
                "organization_id": org_id,
                "title": data.get("title") or "New AI task",
                "description": data.get("description") or "",
                "priority": priority if priority in get_args(TASK_PRIORITIES) else "Medium",
                "type": task_type if task_type in get_args(TASK_TYPES) else "Task",
                "status": "To Do",
                "assignee_id": data.get("assignee_id"),
                "project_id": data.get("project_id"),
                "deadline": parse_datetime(data.get("deadline")),
                "tags": [],
            })

        elif action.action_type == "update_client":
            if data.get("client_id") and data.get("updates"):
                await self.client_repo.update_for_org(org_id, data["client_id"], data["updates"])

        elif action.action_type == "create_project":
            start = parse_datetime(data.get("start_date")) or utcnow()
            end = parse_datetime(data.get("end_date")) or start + timedelta(days=30)
            budget = _as_float(data.get("budget"))
            await self.project_repo.create({
                "organization_id": org_id,
                "name": data.get("name") or "New project",
                "client_id": data.get("client_id"),
                "status": data.get("status") if data.get("status") in get_args(PROJECT_STATUSES) else "Strategy/KP",
                "start_date": start,
                "end_date": end,
                "budget": budget,
                "duration": _as_int(data.get("duration"), 30),
                "total_ltv": budget,
                "description": data.get("description") or "",
                "team_ids": data.get("team_ids") or [],
                "services": data.get("services") or ["SMM"],
                "is_archived": False,
            })

        elif action.action_type == "send_whatsapp":
            phone = data.get("phone")
            text = data.get("message") or data.get("text")
            if not phone or not text:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="send_whatsapp needs a phone and a message.")
            if not await self.evolution_service.send_text_via_active_instance(org_id, str(phone), text):
                raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="WhatsApp message was not accepted.")

        elif action.action_type == "create_proposal":
            log.info("create_proposal approved; proposal drafting is handled outside the CRM.")

        else:
            log.warning(f"Unknown action type: {action.action_type}")


async def get_ai_action_service(
    action_repo: AIActionRepository = Depends(get_ai_action_repository),
    lead_repo: AILeadRepository = Depends(get_ai_lead_repository),
    client_repo: ClientRepository = Depends(get_client_repository),
    task_repo: TaskRepository = Depends(get_task_repository),
    project_repo: ProjectRepository = Depends(get_project_repository),
    evolution_service: EvolutionService = Depends(get_evolution_service),
) -> AIActionService:
    return AIActionService(action_repo, lead_repo, client_repo, task_repo, project_repo, evolution_service)

# agencyos/modules/tasks/services.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends, HTTPException, status
from loguru import logger

from agencyos.core.repository import utcnow
from agencyos.modules.automation.engine import AutomationEngine, get_automation_engine
from agencyos.modules.notifications.services import NotificationService, get_notification_service
from agencyos.modules.people.models import UserInDB
from agencyos.modules.people.repository import UserRepository, get_user_repository
from .models import TaskCreateAPI, TaskInDB, TaskUpdateAPI
from .repository import TaskRepository, get_task_repository


def task_context(task: TaskInDB) -> Dict[str, Any]:
    return {
        "task_id": task.id,
        "task_title": task.title,
        "project_id": task.project_id,
        "client_id": task.client_id,
        "assignee_id": task.assignee_id,
        "user_id": task.assignee_id,
        "status": task.status,
        "priority": task.priority,
        "type": task.type,
        "deadline": task.deadline.isoformat() if task.deadline else None,
    }


class TaskService:
    """Task CRUD with assignment notifications and automation triggers."""

    def __init__(
        self,
        task_repo: TaskRepository,
        notification_service: NotificationService,
        automation: Optional[AutomationEngine] = None,
        user_repo: Optional[UserRepository] = None,
    ):
        self.task_repo = task_repo
        self.notification_service = notification_service
        self.automation = automation
        self.user_repo = user_repo or notification_service.user_repo

    async def list(
        self,
        organization_id: str,
        project_id: Optional[str] = None,
        assignee_id: Optional[str] = None,
        status_filter: Optional[str] = None,
        skip: int = 0,
        limit: int = 200,
    ) -> List[TaskInDB]:
        query: Dict[str, Any] = {}
        if project_id:
            query["project_id"] = project_id
        if assignee_id:
            query["assignee_id"] = assignee_id
        if status_filter:
            query["status"] = status_filter
        return await self.task_repo.list_for_org(organization_id, query, skip=skip, limit=limit)

    async def get(self, organization_id: str, task_id: str) -> TaskInDB:
        task = await self.task_repo.get_for_org(organization_id, task_id)
        if not task:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found.")
        return task

    async def _ensure_assignee(self, organization_id: str, assignee_id: Optional[str]) -> None:
        if assignee_id and not await self.user_repo.get_for_org(organization_id, assignee_id):
            logger.bind(service="TaskService", organization_id=organization_id).warning(
                f"Rejected assignee outside the organization: {assignee_id}"
            )
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Assignee not found in this organization."
            )

    async def create(self, organization_id: str, task_in: TaskCreateAPI, creator: UserInDB) -> TaskInDB:
        await self._ensure_assignee(organization_id, task_in.assignee_id)
        data = task_in.model_dump()
        data.update({
            "organization_id": organization_id,
            "creator_id": creator.id,
            "completed_at": utcnow() if data.get("status") == "Done" else None,
        })
        task = await self.task_repo.create(data)
        log = logger.bind(service="TaskService", organization_id=organization_id)
        log.info(f"Task created: {task.id}")

        if task.assignee_id and task.assignee_id != creator.id:
            await self.notification_service.task_assigned(
                task.assignee_id, task.id, task.title, creator.name, organization_id=organization_id
            )
        if self.automation:
            await self.automation.trigger_rules(organization_id, "task_created", task_context(task))
        return task

    async def update(self, organization_id: str, task_id: str, task_in: TaskUpdateAPI, actor: UserInDB) -> TaskInDB:
        """Partial update.

        Moving to `Done` stamps `completed_at` and fires `task_completed`;
        moving away from `Done` clears it. A new assignee notifies both
        the new and the previous assignee.
        """
        existing = await self.get(organization_id, task_id)
        changes = task_in.model_dump(exclude_unset=True)
        reason = changes.pop("reassign_reason", None)
        if changes.get("assignee_id") != existing.assignee_id:
            await self._ensure_assignee(organization_id, changes.get("assignee_id"))

        new_status = changes.get("status")
        completed_now = new_status == "Done" and existing.status != "Done"
        if completed_now:
            changes["completed_at"] = utcnow()
        elif new_status and new_status != "Done" and existing.status == "Done":
            changes["completed_at"] = None
        if "deadline" in changes and changes["deadline"] != existing.deadline:
            changes["deadline_notified_at"] = None

        task = await self.task_repo.update_for_org(organization_id, task_id, changes)
        if not task:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found.")

        new_assignee = changes.get("assignee_id")
        if new_assignee and new_assignee != existing.assignee_id:
            if existing.assignee_id:
                await self.notification_service.task_reassigned(
                    new_assignee, existing.assignee_id, task.id, task.title, actor.name, reason,
                    organization_id=organization_id,
                )
            elif new_assignee != actor.id:
                await self.notification_service.task_assigned(
                    new_assignee, task.id, task.title, actor.name, organization_id=organization_id
                )

        if completed_now and self.automation:
            await self.automation.trigger_rules(organization_id, "task_completed", task_context(task))
        return task

    async def delete(self, organization_id: str, task_id: str) -> None:
        if not await self.task_repo.delete_for_org(organization_id, task_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found.")

    async def list_due_between(self, organization_id: str, start: datetime, end: datetime) -> List[TaskInDB]:
        return await self.task_repo.list_due_between(start, end, organization_id)


async def get_task_service(
    task_repo: TaskRepository = Depends(get_task_repository),
    notification_service: NotificationService = Depends(get_notification_service),
    automation: AutomationEngine = Depends(get_automation_engine),
    user_repo: UserRepository = Depends(get_user_repository),
) -> TaskService:
    return TaskService(task_repo, notification_service, automation, user_repo)

# agencyos/modules/notifications/services.py
from typing import List, Optional

from fastapi import Depends, HTTPException, status
from loguru import logger

from agencyos.modules.people.repository import UserRepository, get_user_repository
from .models import NotificationCreate, NotificationInDB
from .repository import NotificationRepository, get_notification_repository


class NotificationService:
    def __init__(self, notification_repo: NotificationRepository, user_repo: UserRepository):
        self.notification_repo = notification_repo
        self.user_repo = user_repo

    async def create(self, notification: NotificationCreate, organization_id: Optional[str] = None) -> NotificationInDB:
        """Stores a notification under the recipient's organization.

        With `organization_id` the recipient must belong to that organization.
        """
        log = logger.bind(service="NotificationService", user_id=notification.user_id, type=notification.type)
        if organization_id:
            recipient = await self.user_repo.get_for_org(organization_id, notification.user_id)
        else:
            recipient = await self.user_repo.get_by_id(notification.user_id)
        if not recipient or not recipient.organization_id:
            log.error("Cannot create notification: recipient organization not found.")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot create notification: user organization not found",
            )

        data = notification.model_dump()
        data["organization_id"] = recipient.organization_id
        data["is_read"] = False
        created = await self.notification_repo.create(data)
        log.debug(f"Notification stored: {created.id}")
        return created

    async def list_for_user(self, user_id: str) -> List[NotificationInDB]:
        return await self.notification_repo.list_for_user(user_id, limit=50)

    async def unread_count(self, user_id: str) -> int:
        return await self.notification_repo.unread_count(user_id)

    async def mark_as_read(self, user_id: str, notification_id: str) -> None:
        if not await self.notification_repo.mark_as_read(user_id, notification_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found.")

    async def mark_all_as_read(self, user_id: str) -> int:
        return await self.notification_repo.mark_all_as_read(user_id)

    async def delete(self, user_id: str, notification_id: str) -> None:
        if not await self.notification_repo.delete(notification_id, extra_query={"user_id": user_id}):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found.")

    # --- Task helpers ---

    async def task_assigned(
        self, assignee_id: str, task_id: str, task_title: str, assigner_name: str, organization_id: Optional[str] = None
    ) -> NotificationInDB:
        return await self.create(NotificationCreate(
            user_id=assignee_id,
            type="task_assigned",
            title="New task",
            message=f'{assigner_name} assigned you a task: "{task_title}"',
            entity_type="task",
            entity_id=task_id,
        ), organization_id)

    async def task_reassigned(
        self,
        new_assignee_id: str,
        previous_assignee_id: Optional[str],
        task_id: str,
        task_title: str,
        reassigner_name: str,
        reason: Optional[str] = None,
        organization_id: Optional[str] = None,
    ) -> None:
        reason_suffix = f". Reason: {reason}" if reason else ""
        await self.create(NotificationCreate(
            user_id=new_assignee_id,
            type="task_reassigned",
            title="Task reassigned",
            message=f'{reassigner_name} reassigned a task to you: "{task_title}"{reason_suffix}',
            entity_type="task",
            entity_id=task_id,
        ), organization_id)
        if not previous_assignee_id:
            return
        try:
            await self.create(NotificationCreate(
                user_id=previous_assignee_id,
                type="task_reassigned",
                title="Task reassigned",
                message=f'Task "{task_title}" was reassigned to another assignee{reason_suffix}',
                entity_type="task",
                entity_id=task_id,
            ), organization_id)
        except HTTPException:
            # Previous assignee left the organization
            logger.bind(service="NotificationService", task_id=task_id).warning(
                f"Previous assignee {previous_assignee_id} not notified of reassignment."
            )

    async def deadline_approaching(
        self, assignee_id: str, task_id: str, task_title: str, hours_left: int, organization_id: Optional[str] = None
    ) -> NotificationInDB:
        time_text = "less than an hour" if hours_left <= 1 else f"{hours_left} h"
        return await self.create(NotificationCreate(
            user_id=assignee_id,
            type="deadline_approaching",
            title="Deadline approaching",
            message=f'{time_text} left until the deadline of "{task_title}"',
            entity_type="task",
            entity_id=task_id,
        ), organization_id)


async def get_notification_service(
    notification_repo: NotificationRepository = Depends(get_notification_repository),
    user_repo: UserRepository = Depends(get_user_repository),
) -> NotificationService:
    return NotificationService(notification_repo, user_repo)

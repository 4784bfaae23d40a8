# agencyos/modules/tasks/repository.py
from datetime import datetime
from typing import List, Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from agencyos.core.database import get_database
from agencyos.core.repository import TenantRepository
from .models import TaskInDB


class TaskRepository(TenantRepository[TaskInDB]):
    model = TaskInDB
    collection_name = "tasks"

    async def list_due_between(
        self,
        start: datetime,
        end: datetime,
        organization_id: Optional[str] = None,
    ) -> List[TaskInDB]:
        """Open tasks whose deadline falls in [start, end]."""
        query = {"deadline": {"$gte": start, "$lte": end}, "status": {"$ne": "Done"}}
        if organization_id:
            query["organization_id"] = organization_id
        return await self.list_by(query, limit=0, sort=[("deadline", ASCENDING)])

    async def list_pending_deadline_reminders(self, start: datetime, end: datetime) -> List[TaskInDB]:
        """Open tasks due in [start, end] whose reminder has not been sent yet."""
        query = {
            "deadline": {"$gte": start, "$lte": end},
            "status": {"$ne": "Done"},
            "deadline_notified_at": None,
        }
        return await self.list_by(query, limit=0, sort=[("deadline", ASCENDING)])

    async def detach_from_stage(self, stage_id: str) -> int:
        try:
            result = await self.collection.update_many({"stage_id": stage_id}, {"$set": {"stage_id": None}})
        except Exception as e:
            self._handle_db_exception(e, "detach_from_stage", query={"stage_id": stage_id})
        return result.modified_count


async def get_task_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> TaskRepository:
    return TaskRepository(db)

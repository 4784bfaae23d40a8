# agencyos/modules/notifications/repository.py
from typing import List

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING

from agencyos.core.database import get_database
from agencyos.core.repository import TenantRepository, utcnow
from .models import NotificationInDB


class NotificationRepository(TenantRepository[NotificationInDB]):
    model = NotificationInDB
    collection_name = "notifications"

    async def list_for_user(self, user_id: str, limit: int = 50) -> List[NotificationInDB]:
        return await self.list_by({"user_id": user_id}, limit=limit, sort=[("created_at", DESCENDING)])

    async def unread_count(self, user_id: str) -> int:
        return await self.count({"user_id": user_id, "is_read": False})

    async def mark_as_read(self, user_id: str, notification_id: str) -> bool:
        updated = await self.update(notification_id, {"is_read": True}, extra_query={"user_id": user_id})
        return updated is not None

    async def mark_all_as_read(self, user_id: str) -> int:
        try:
            result = await self.collection.update_many(
                {"user_id": user_id, "is_read": False},
                {"$set": {"is_read": True, "updated_at": utcnow()}},
            )
        except Exception as e:
            self._handle_db_exception(e, "mark_all_as_read", query={"user_id": user_id})
        return result.modified_count


async def get_notification_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> NotificationRepository:
    return NotificationRepository(db)

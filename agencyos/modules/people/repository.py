# agencyos/modules/people/repository.py
import re
from typing import List, Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from agencyos.core.database import get_database
from agencyos.core.repository import TenantRepository
from .models import UserInDB


class UserRepository(TenantRepository[UserInDB]):
    model = UserInDB
    collection_name = "users"

    async def get_by_email(self, email: str) -> Optional[UserInDB]:
        return await self.get_by({"email": email.lower()})

    async def find_by_job_title(
        self,
        organization_id: str,
        job_title: str,
        user_ids: Optional[List[str]] = None,
    ) -> Optional[UserInDB]:
        """First active user whose job title contains `job_title` (case-insensitive)."""
        query = {
            "organization_id": organization_id,
            "is_active": True,
            "job_title": {"$regex": re.escape(job_title), "$options": "i"},
        }
        if user_ids is not None:
            object_ids = [oid for oid in (self._to_objectid(u) for u in user_ids) if oid]
            if not object_ids:
                return None
            query["_id"] = {"$in": object_ids}
        return await self.get_by(query, sort=[("created_at", 1)])


async def get_user_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> UserRepository:
    return UserRepository(db)

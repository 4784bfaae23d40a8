# agencyos/modules/organizations/repository.py
from typing import Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from agencyos.core.database import get_database
from agencyos.core.repository import BaseRepository, utcnow
from .models import OrganizationInDB


class OrganizationRepository(BaseRepository[OrganizationInDB]):
    model = OrganizationInDB
    collection_name = "organizations"

    async def get_by_slug(self, slug: str) -> Optional[OrganizationInDB]:
        return await self.get_by({"slug": slug})

    async def try_debit(self, organization_id: str, field: str, amount: float) -> Optional[OrganizationInDB]:
        """Atomically subtracts `amount` from a balance field unless it would go negative.

        Returns the updated organization, or None when the balance is insufficient
        or the organization does not exist.
        """
        obj_id = self._to_objectid(organization_id)
        if not obj_id:
            return None
        try:
            document = await self.collection.find_one_and_update(
                {"_id": obj_id, field: {"$gte": amount}},
                {"$inc": {field: -amount}, "$set": {"updated_at": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        except Exception as e:
            self._handle_db_exception(e, "try_debit", obj_id)
        return self._validate(document)


async def get_organization_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> OrganizationRepository:
    return OrganizationRepository(db)

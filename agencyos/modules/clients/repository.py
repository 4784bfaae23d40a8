# agencyos/modules/clients/repository.py
from typing import Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from agencyos.core.database import get_database
from agencyos.core.repository import TenantRepository
from .models import ClientInDB


class ClientRepository(TenantRepository[ClientInDB]):
    model = ClientInDB
    collection_name = "clients"

    async def find_by_phone(self, organization_id: str, phone: str) -> Optional[ClientInDB]:
        return await self.get_by({"organization_id": organization_id, "phone": phone})


async def get_client_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> ClientRepository:
    return ClientRepository(db)

# agencyos/modules/finance/repository.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING

from agencyos.core.database import get_database
from agencyos.core.repository import TenantRepository
from .models import TransactionInDB


class TransactionRepository(TenantRepository[TransactionInDB]):
    model = TransactionInDB
    collection_name = "transactions"

    async def list_between(
        self,
        organization_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[TransactionInDB]:
        """Transactions of the organization, optionally filtered by `date`."""
        query: Dict[str, Any] = {}
        if start_date or end_date:
            query["date"] = {}
            if start_date:
                query["date"]["$gte"] = start_date
            if end_date:
                query["date"]["$lte"] = end_date
        return await self.list_for_org(organization_id, query, skip=skip, limit=limit, sort=[("date", DESCENDING)])


async def get_transaction_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> TransactionRepository:
    return TransactionRepository(db)

# agencyos/modules/analytics/repository.py
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from agencyos.core.database import get_database
from agencyos.core.repository import TenantRepository, utcnow
from .models import MonthlyAnalyticsInDB


class MonthlyAnalyticsRepository(TenantRepository[MonthlyAnalyticsInDB]):
    """Materialized per-month rows. `month` is stored as an ISO date string."""

    model = MonthlyAnalyticsInDB
    collection_name = "monthly_analytics"

    async def list_since(self, organization_id: str, start: Optional[date] = None) -> List[MonthlyAnalyticsInDB]:
        query: Dict[str, Any] = {}
        if start:
            query["month"] = {"$gte": start.isoformat()}
        return await self.list_for_org(organization_id, query, limit=0, sort=[("month", ASCENDING)])

    async def upsert_month(self, organization_id: str, month: date, values: Dict[str, Any]) -> None:
        now = utcnow()
        key = {"organization_id": organization_id, "month": month.isoformat()}
        values = {k: v for k, v in values.items() if k not in ("month", "organization_id")}
        try:
            await self.collection.update_one(
                key,
                {"$set": {**values, "updated_at": now}, "$setOnInsert": {"created_at": now}},
                upsert=True,
            )
        except Exception as e:
            self._handle_db_exception(e, "upsert_month", query=key)


async def get_monthly_analytics_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> MonthlyAnalyticsRepository:
    return MonthlyAnalyticsRepository(db)

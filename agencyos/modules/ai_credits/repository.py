# agencyos/modules/ai_credits/repository.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument

from agencyos.core.database import get_database
from agencyos.core.repository import BaseRepository, TenantRepository, utcnow
from .models import CreditTransactionInDB, ModelPricingInDB, PlatformSettingsInDB


class CreditTransactionRepository(TenantRepository[CreditTransactionInDB]):
    model = CreditTransactionInDB
    collection_name = "ai_credit_transactions"

    async def sum_markup_since(self, organization_id: str, since: datetime) -> float:
        pipeline = [
            {"$match": {"organization_id": organization_id, "created_at": {"$gte": since}}},
            {"$group": {"_id": None, "total": {"$sum": "$markup_cost"}}},
        ]
        try:
            rows = await self.collection.aggregate(pipeline).to_list(length=1)
        except Exception as e:
            self._handle_db_exception(e, "sum_markup_since", query={"organization_id": organization_id})
        return float(rows[0]["total"]) if rows else 0.0


class PlatformSettingsRepository(BaseRepository[PlatformSettingsInDB]):
    model = PlatformSettingsInDB
    collection_name = "ai_platform_settings"

    async def get_or_create(self, defaults: Dict[str, Any]) -> PlatformSettingsInDB:
        """Returns the singleton settings document, inserting `defaults` the first time."""
        now = utcnow()
        try:
            document = await self.collection.find_one_and_update(
                {},
                {"$setOnInsert": {**defaults, "created_at": now, "updated_at": now}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except Exception as e:
            self._handle_db_exception(e, "get_or_create")
        return self._validate(document)


class ModelPricingRepository(BaseRepository[ModelPricingInDB]):
    model = ModelPricingInDB
    collection_name = "ai_model_pricing"

    async def list_sorted(self) -> List[ModelPricingInDB]:
        return await self.list_by({}, limit=0, sort=[("sort_order", ASCENDING)])

    async def get_active_by_slug(self, model_slug: str) -> Optional[ModelPricingInDB]:
        return await self.get_by({"model_slug": model_slug, "is_active": True})


async def get_credit_transaction_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> CreditTransactionRepository:
    return CreditTransactionRepository(db)


async def get_platform_settings_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> PlatformSettingsRepository:
    return PlatformSettingsRepository(db)


async def get_model_pricing_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> ModelPricingRepository:
    return ModelPricingRepository(db)

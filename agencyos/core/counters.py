# agencyos/core/counters.py

from typing import Optional

from fastapi import Depends
from loguru import logger
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from agencyos.core.database import get_database
from agencyos.core.repository import utcnow

COUNTERS_COLLECTION = "counters"


class CounterService:
    """Atomic named sequences stored as `{_id: name, sequence_value: n}`."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[COUNTERS_COLLECTION]

    async def next_value(self, name: str) -> int:
        try:
            counter = await self.collection.find_one_and_update(
                {"_id": name},
                {"$inc": {"sequence_value": 1}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except Exception as e:
            logger.bind(counter_name=name).exception(f"Counter update failed: {e}")
            raise RuntimeError(f"Database error accessing counter '{name}'") from e
        return int(counter["sequence_value"])

    async def generate_reference(self, prefix: str, scope: Optional[str] = None) -> str:
        """`PREFIX-YYYY-NNNNN`, numbered per year and, when given, per scope (an organization id)."""
        if not prefix or not prefix.isalnum():
            raise ValueError("Prefix must be a non-empty alphanumeric string.")
        year = utcnow().year
        name = ":".join(part for part in (scope, prefix.lower(), str(year)) if part)
        return f"{prefix.upper()}-{year}-{await self.next_value(name):05d}"


async def get_counter_service(db: AsyncIOMotorDatabase = Depends(get_database)) -> CounterService:
    return CounterService(db)

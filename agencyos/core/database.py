# agencyos/core/database.py

from contextlib import AbstractAsyncContextManager
from typing import Dict, List, Optional, Tuple

import redis.asyncio as redis
from fastapi import HTTPException, status
from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, IndexModel

from agencyos.core.config import settings

DEFAULT_DB_NAME = "agencyos_db"

# Created on startup; create_index is a no-op when the index already exists
INDEXES: Dict[str, List[IndexModel]] = {
    "users": [IndexModel([("email", ASCENDING)], unique=True)],
    "organizations": [IndexModel([("slug", ASCENDING)], unique=True)],
    "clients": [IndexModel([("organization_id", ASCENDING), ("phone", ASCENDING)])],
    "tasks": [
        IndexModel([("organization_id", ASCENDING), ("assignee_id", ASCENDING)]),
        IndexModel([("deadline", ASCENDING), ("deadline_notified_at", ASCENDING)]),
    ],
    "transactions": [IndexModel([("organization_id", ASCENDING), ("date", DESCENDING)])],
    "notifications": [IndexModel([("user_id", ASCENDING), ("created_at", DESCENDING)])],
    "evolution_instances": [IndexModel([("instance_name", ASCENDING)], unique=True)],
    "whatsapp_messages": [IndexModel([("message_id", ASCENDING)])],
    "whatsapp_chats": [IndexModel([("organization_id", ASCENDING), ("chat_id", ASCENDING)], unique=True)],
    "monthly_analytics": [IndexModel([("organization_id", ASCENDING), ("month", ASCENDING)], unique=True)],
}


class MongoDbContext(AbstractAsyncContextManager):
    """Owns the motor client for the API lifespan or a single worker run."""

    def __init__(self, uri: Optional[str] = None):
        self.uri = uri or settings.MONGODB_URI
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def __aenter__(self) -> "MongoDbContext":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    async def connect(self) -> None:
        if self.db is not None:
            return
        client = AsyncIOMotorClient(self.uri, uuidRepresentation="standard", serverSelectionTimeoutMS=5000, tz_aware=False)
        try:
            await client.admin.command("ping")
        except Exception as e:
            client.close()
            logger.critical(f"MongoDB is unreachable: {e}")
            raise ConnectionError(f"MongoDB connection failed: {e}") from e

        # Database named in the URI path, or the default one
        self.client = client
        self.db = client.get_default_database(DEFAULT_DB_NAME)
        logger.success(f"Connected to MongoDB database '{self.db.name}'.")
        await self.ensure_indexes()

    async def ensure_indexes(self) -> None:
        failed: List[Tuple[str, str]] = []
        for collection, indexes in INDEXES.items():
            try:
                await self.db[collection].create_indexes(indexes)
            except Exception as e:
                failed.append((collection, str(e)))
        for collection, error in failed:
            logger.warning(f"Index creation failed on '{collection}': {error}")

    async def disconnect(self) -> None:
        if self.client is None:
            return
        self.client.close()
        self.client = None
        self.db = None
        logger.info("MongoDB connection closed.")

    def get_db(self) -> AsyncIOMotorDatabase:
        if self.db is None:
            raise RuntimeError("MongoDB is not connected.")
        return self.db


mongo_manager = MongoDbContext()


class RedisContext(AbstractAsyncContextManager):
    """Optional Redis connection; only the health check depends on it."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self.client: Optional[redis.Redis] = None

    async def __aenter__(self) -> "RedisContext":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    async def connect(self) -> None:
        if self.client is not None:
            return
        client = redis.Redis.from_url(self.url, decode_responses=True, socket_connect_timeout=5, max_connections=20)
        try:
            await client.ping()
        except Exception as e:
            logger.error(f"Redis unavailable, continuing without it: {e}")
            await client.aclose()
            return
        self.client = client
        logger.success("Connected to Redis.")

    async def disconnect(self) -> None:
        if self.client is None:
            return
        client, self.client = self.client, None
        try:
            await client.aclose()
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}")

    def get_client(self) -> redis.Redis:
        if self.client is None:
            raise RuntimeError("Redis is not connected.")
        return self.client


redis_manager = RedisContext()


async def get_database() -> AsyncIOMotorDatabase:
    """Database of the running app; 503 while MongoDB is down."""
    try:
        return mongo_manager.get_db()
    except RuntimeError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Database unavailable: {e}")


async def get_redis_client() -> Optional[redis.Redis]:
    try:
        return redis_manager.get_client()
    except RuntimeError:
        return None

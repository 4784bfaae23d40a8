# agencyos/api/endpoints/status.py
import asyncio
import time
from datetime import datetime, timezone
from typing import Dict, Literal, Optional, Tuple

from celery.exceptions import OperationalError as CeleryOperationalError
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from loguru import logger
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, Field
from redis.asyncio import Redis

from agencyos.core.database import get_database, get_redis_client
from agencyos.core.repository import utcnow
from agencyos.modules.people.repository import UserRepository, get_user_repository
from agencyos.modules.tasks.repository import TaskRepository, get_task_repository
from agencyos.worker.celery_app import celery_app

STARTED_AT = time.monotonic()
CELERY_PING_TIMEOUT = 1.5


class ComponentStatus(BaseModel):
    status: Literal["ok", "error", "unavailable"] = "ok"
    message: Optional[str] = None


class HealthCheckResponse(BaseModel):
    overall_status: Literal["ok", "error"] = "ok"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    uptime_seconds: float
    components: Dict[str, ComponentStatus]


class BasicMetricsResponse(BaseModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    active_users: Optional[int] = None
    tasks_created_today: Optional[int] = None


router = APIRouter()


async def get_optional_database() -> Optional[AsyncIOMotorDatabase]:
    try:
        return await get_database()
    except HTTPException:
        return None


# Each check returns (status, critical failure?)
async def _check_mongo(db: Optional[AsyncIOMotorDatabase]) -> Tuple[ComponentStatus, bool]:
    if db is None:
        return ComponentStatus(status="error", message="DB Client not available"), True
    try:
        await db.command("ping")
    except Exception as e:
        return ComponentStatus(status="error", message=f"MongoDB ping failed: {e}"), True
    return ComponentStatus(), False


async def _check_redis(client: Optional[Redis]) -> Tuple[ComponentStatus, bool]:
    if client is None:
        return ComponentStatus(status="error", message="Redis Client not available"), True
    try:
        await client.ping()
    except Exception as e:
        return ComponentStatus(status="error", message=f"Redis ping failed: {e}"), True
    return ComponentStatus(), False


def _check_celery() -> Tuple[ComponentStatus, bool]:
    """Workers missing is not critical; an unreachable broker is."""
    try:
        replies = celery_app.control.inspect(timeout=CELERY_PING_TIMEOUT).ping()
    except CeleryOperationalError as e:
        return ComponentStatus(status="error", message=f"Broker connection error: {e}"), True
    except Exception as e:
        return ComponentStatus(status="error", message=f"Ping check error: {e}"), False
    if not replies:
        return ComponentStatus(status="unavailable", message="No workers responded to ping."), False
    return ComponentStatus(message=f"{len(replies)} worker(s) responded."), False


@router.get(
    "/healthcheck",
    response_model=HealthCheckResponse,
    tags=["Status & Health"],
    summary="Application Health and Component Status Check",
)
async def get_application_health(
    db: Optional[AsyncIOMotorDatabase] = Depends(get_optional_database),
    redis: Optional[Redis] = Depends(get_redis_client),
):
    mongo_result, redis_result = await asyncio.gather(_check_mongo(db), _check_redis(redis))
    # inspect().ping() blocks on the broker
    celery_result = await asyncio.to_thread(_check_celery)

    results = {
        "database_mongodb": mongo_result,
        "cache_broker_redis": redis_result,
        "celery_workers": celery_result,
    }
    healthy = not any(critical for _, critical in results.values())
    for name, (component, _) in results.items():
        if component.status != "ok":
            logger.bind(api_endpoint="/healthcheck", component=name).warning(component.message)

    payload = HealthCheckResponse(
        overall_status="ok" if healthy else "error",
        uptime_seconds=round(time.monotonic() - STARTED_AT, 3),
        components={name: component for name, (component, _) in results.items()},
    )
    return JSONResponse(
        content=payload.model_dump(mode="json", exclude_none=True),
        status_code=200 if healthy else 503,
    )


@router.get(
    "/metrics",
    response_model=BasicMetricsResponse,
    tags=["Status & Health"],
    summary="Platform-wide user and task counts",
)
async def get_basic_metrics(
    user_repo: UserRepository = Depends(get_user_repository),
    task_repo: TaskRepository = Depends(get_task_repository),
):
    metrics = BasicMetricsResponse()
    midnight = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    try:
        metrics.active_users = await user_repo.count({"is_active": True})
        metrics.tasks_created_today = await task_repo.count({"created_at": {"$gte": midnight}})
    except RuntimeError as e:
        logger.bind(api_endpoint="/metrics").warning(f"Metrics partially unavailable: {e}")
    return metrics

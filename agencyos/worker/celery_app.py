# agencyos/worker/celery_app.py
import asyncio
from datetime import timedelta
from typing import Awaitable, Callable, TypeVar

from celery import Celery
from celery.schedules import crontab
from motor.motor_asyncio import AsyncIOMotorDatabase

from agencyos.core.config import settings
from agencyos.core.database import MongoDbContext

T = TypeVar("T")

celery_app = Celery(
    "agencyos_tasks",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "agencyos.worker.tasks_whatsapp",
        "agencyos.worker.tasks_automation",
        "agencyos.worker.tasks_analytics",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_default_retry_delay=30,
    beat_schedule={
        "automation-check-deadlines": {
            "task": "automation.check_deadlines",
            "schedule": timedelta(minutes=30),
            "options": {"queue": "periodic"},
        },
        "analytics-refresh-monthly": {
            "task": "analytics.refresh_monthly",
            "schedule": crontab(hour=2, minute=0),
            "options": {"queue": "periodic"},
        },
    },
)


def run_with_database(handler: Callable[[AsyncIOMotorDatabase], Awaitable[T]]) -> T:
    """Runs an async job inside a sync task with its own Mongo connection.

    Motor clients are bound to the loop that created them, so every task
    run opens (and closes) a fresh connection on a fresh loop.
    """
    async def _main() -> T:
        async with MongoDbContext() as mongo:
            return await handler(mongo.get_db())
    return asyncio.run(_main())

# agencyos/worker/tasks_analytics.py
import uuid
from typing import Dict, Optional

from loguru import logger
from motor.motor_asyncio import AsyncIOMotorDatabase

from agencyos.core.logging_config import trace_id_var
from agencyos.modules.analytics.repository import MonthlyAnalyticsRepository
from agencyos.modules.analytics.services import AnalyticsService
from agencyos.modules.clients.repository import ClientRepository
from agencyos.modules.finance.repository import TransactionRepository
from agencyos.modules.organizations.repository import OrganizationRepository
from agencyos.modules.people.repository import UserRepository
from agencyos.modules.projects.repository import ProjectRepository
from agencyos.modules.tasks.repository import TaskRepository
from agencyos.worker.celery_app import celery_app, run_with_database


def build_analytics_service(db: AsyncIOMotorDatabase) -> AnalyticsService:
    return AnalyticsService(
        MonthlyAnalyticsRepository(db),
        ClientRepository(db),
        ProjectRepository(db),
        TaskRepository(db),
        TransactionRepository(db),
        UserRepository(db),
    )


async def refresh_all_organizations(db: AsyncIOMotorDatabase, organization_id: Optional[str] = None) -> Dict[str, int]:
    service = build_analytics_service(db)
    if organization_id:
        org_ids = [organization_id]
    else:
        org_ids = [org.id for org in await OrganizationRepository(db).list_by({"is_blocked": {"$ne": True}}, limit=0)]

    stats = {"organizations": 0, "months": 0, "failed": 0}
    for org_id in org_ids:
        try:
            stats["months"] += await service.refresh_monthly(org_id)
            stats["organizations"] += 1
        except Exception as e:
            stats["failed"] += 1
            logger.bind(organization_id=org_id).exception(f"Analytics refresh failed: {e}")
    return stats


@celery_app.task(bind=True, name="analytics.refresh_monthly", acks_late=True)
def refresh_monthly(self, organization_id: Optional[str] = None, trace_id: Optional[str] = None):
    """Recomputes the materialized monthly analytics of one or every organization."""
    current_trace_id = trace_id or f"task_{uuid.uuid4().hex[:12]}"
    token = trace_id_var.set(current_trace_id)
    log = logger.bind(trace_id=current_trace_id, task_name=self.name, job_id=self.request.id)
    log.info("Refreshing materialized monthly analytics...")
    try:
        stats = run_with_database(lambda db: refresh_all_organizations(db, organization_id))
        log.success(f"Analytics refresh finished: {stats}")
        return {"status": "success", **stats}
    except Exception as e:
        log.exception("Analytics refresh task failed.")
        return {"status": "failed", "error": str(e)}
    finally:
        trace_id_var.reset(token)

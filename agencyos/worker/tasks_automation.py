# agencyos/worker/tasks_automation.py
import math
import uuid
from datetime import timedelta
from typing import Dict

from fastapi import HTTPException
from loguru import logger
from motor.motor_asyncio import AsyncIOMotorDatabase

from agencyos.core.logging_config import trace_id_var
from agencyos.core.repository import utcnow
from agencyos.modules.automation.engine import AutomationEngine
from agencyos.modules.automation.repository import AutomationRuleRepository
from agencyos.modules.clients.repository import ClientRepository
from agencyos.modules.notifications.repository import NotificationRepository
from agencyos.modules.notifications.services import NotificationService
from agencyos.modules.people.repository import UserRepository
from agencyos.modules.tasks.repository import TaskRepository
from agencyos.modules.tasks.services import task_context
from agencyos.modules.whatsapp.repository import EvolutionInstanceRepository, EvolutionSettingsRepository
from agencyos.modules.whatsapp.services import EvolutionService
from agencyos.worker.celery_app import celery_app, run_with_database

DEADLINE_WINDOW = timedelta(hours=24)


async def check_deadlines_once(db: AsyncIOMotorDatabase) -> Dict[str, int]:
    """Reminds assignees of tasks due within 24 h and fires `deadline_approaching` rules.

    The task is marked as reminded before anything else runs, so a failing
    notification or rule never makes the next beat repeat it.
    """
    task_repo = TaskRepository(db)
    notification_service = NotificationService(NotificationRepository(db), UserRepository(db))
    engine = AutomationEngine(
        AutomationRuleRepository(db),
        task_repo,
        ClientRepository(db),
        notification_service,
        EvolutionService(EvolutionSettingsRepository(db), EvolutionInstanceRepository(db)),
    )

    now = utcnow()
    tasks = await task_repo.list_pending_deadline_reminders(now, now + DEADLINE_WINDOW)
    stats = {"tasks": len(tasks), "notified": 0, "rules_executed": 0, "failed": 0}
    for task in tasks:
        log = logger.bind(task_id=task.id, organization_id=task.organization_id)
        try:
            await task_repo.update(task.id, {"deadline_notified_at": now})
        except RuntimeError as e:
            stats["failed"] += 1
            log.error(f"Could not mark task as reminded, skipping it: {e}")
            continue

        hours_left = max(math.ceil((task.deadline - now).total_seconds() / 3600), 0)
        if task.assignee_id:
            try:
                await notification_service.deadline_approaching(
                    task.assignee_id, task.id, task.title, hours_left, organization_id=task.organization_id
                )
                stats["notified"] += 1
            except HTTPException as e:
                stats["failed"] += 1
                log.warning(f"Deadline reminder not delivered: {e.detail}")

        context = task_context(task)
        context["hours_left"] = hours_left
        try:
            stats["rules_executed"] += await engine.trigger_rules(task.organization_id, "deadline_approaching", context)
        except RuntimeError as e:
            stats["failed"] += 1
            log.error(f"deadline_approaching rules could not be loaded: {e}")
    return stats


@celery_app.task(bind=True, name="automation.check_deadlines", acks_late=True)
def check_deadlines(self, trace_id: str | None = None):
    current_trace_id = trace_id or f"task_{uuid.uuid4().hex[:12]}"
    token = trace_id_var.set(current_trace_id)
    log = logger.bind(trace_id=current_trace_id, task_name=self.name, job_id=self.request.id)
    log.info("Checking approaching task deadlines...")
    try:
        stats = run_with_database(check_deadlines_once)
        log.success(f"Deadline check finished: {stats}")
        return {"status": "success", **stats}
    except Exception as e:
        log.exception("Deadline check task failed.")
        return {"status": "failed", "error": str(e)}
    finally:
        trace_id_var.reset(token)

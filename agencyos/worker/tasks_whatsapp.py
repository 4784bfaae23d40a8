# agencyos/worker/tasks_whatsapp.py
import uuid
from typing import Optional

from fastapi import HTTPException
from loguru import logger
from motor.motor_asyncio import AsyncIOMotorDatabase

from agencyos.core.logging_config import trace_id_var
from agencyos.modules.whatsapp.repository import (
    EvolutionInstanceRepository,
    EvolutionSettingsRepository,
    WhatsAppMessageRepository,
)
from agencyos.modules.whatsapp.services import EvolutionService
from agencyos.worker.celery_app import celery_app, run_with_database


@celery_app.task(
    bind=True,
    name="whatsapp.send_message",
    max_retries=4,
    default_retry_delay=45,
    acks_late=True,
    reject_on_worker_lost=True,
)
def send_whatsapp_message(
    self,
    organization_id: str,
    number: str,
    text: str,
    message_db_id: Optional[str] = None,
    trace_id: Optional[str] = None,
):
    """Sends a text through the organization's connected Evolution instance."""
    current_trace_id = trace_id or f"task_{uuid.uuid4().hex[:12]}"
    token = trace_id_var.set(current_trace_id)
    log = logger.bind(
        trace_id=current_trace_id, task_name=self.name, job_id=self.request.id,
        organization_id=organization_id, message_db_id=message_db_id,
    )
    log.info("Executing task to send WhatsApp message via Evolution API...")

    async def _send(db: AsyncIOMotorDatabase) -> bool:
        service = EvolutionService(EvolutionSettingsRepository(db), EvolutionInstanceRepository(db))
        try:
            sent = await service.send_text_via_active_instance(organization_id, number, text)
        except HTTPException as e:
            log.error(f"Evolution send failed: {e.detail}")
            sent = False

        if message_db_id:
            await WhatsAppMessageRepository(db).update(message_db_id, {"status": "sent" if sent else "failed"})
        return sent

    try:
        if not run_with_database(_send):
            raise RuntimeError(f"Evolution API did not accept the message for {number}")
        log.success("WhatsApp message sent.")
        return {"status": "success"}
    except Exception as e:
        log.exception("Error executing send WhatsApp message task.")
        try:
            retry_countdown = int(self.default_retry_delay * (2 ** self.request.retries))
            log.warning(f"Retrying task in {retry_countdown}s (Attempt {self.request.retries + 1}/{self.max_retries}).")
            raise self.retry(exc=e, countdown=retry_countdown)
        except self.MaxRetriesExceededError:
            log.error("Max retries exceeded for WhatsApp send task.")
            return {"status": "failed", "reason": "max_retries_exceeded", "error": str(e)}
    finally:
        trace_id_var.reset(token)

"""
Cron trigger routes - guarded by the X-Cron-Secret header
"""

import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends

from app.api.deps import get_orchestration_service, get_reminder_service, get_store
from app.services.document_store import DocumentStore
from app.services.event_orchestration_service import EventOrchestrationService
from app.services.event_reminder_service import EventReminderService
from app.services.scheduler import run_event_queue_job, run_event_reminder_job
from app.utils.responses import success_response
from app.utils.security import verify_cron_secret

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_cron_secret)])

@router.post("/auto-organize-events")
def auto_organize_events(
    store: DocumentStore = Depends(get_store),
    orchestration: EventOrchestrationService = Depends(get_orchestration_service)
):
    """Batch queued pairs into new events"""
    logger.info("Starting event auto-organization")
    result = run_event_queue_job(store, orchestration)
    return success_response(
        message="Skipped: another run holds the lease" if result["skipped"] else "Event queues processed",
        data={**result, "timestamp": datetime.now(timezone.utc).isoformat()}
    )

@router.post("/event-reminders")
def send_event_reminders(
    store: DocumentStore = Depends(get_store),
    reminders: EventReminderService = Depends(get_reminder_service)
):
    """Send 48-hour reminders for finalized events"""
    logger.info("Starting event reminder run")
    result = run_event_reminder_job(store, reminders)
    return success_response(
        message="Skipped: another run holds the lease" if result["skipped"] else "Event reminders sent",
        data={**result, "timestamp": datetime.now(timezone.utc).isoformat()}
    )

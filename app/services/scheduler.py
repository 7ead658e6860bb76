"""
Periodic queue processing and reminder jobs.

Each run is guarded by a lease document in `schedulerLeases` so that several
app instances can run the schedulers without creating duplicate events or
sending duplicate reminders.
"""

import asyncio
import logging
import os
import socket
import uuid
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from app.core.config import settings
from app.schemas.common import SCHEMA_VERSION
from app.services.document_store import Collections, DocumentStore, Transaction, get_document_store
from app.services.event_orchestration_service import EventOrchestrationService
from app.services.event_reminder_service import EventReminderService
from app.utils.clock import parse_timestamp, to_iso, utc_now

logger = logging.getLogger(__name__)

EVENT_QUEUE_LEASE = "event_queue"
EVENT_REMINDER_LEASE = "event_reminders"

INSTANCE_ID = f"{socket.gethostname()}-{os.getpid()}-{uuid.uuid4().hex[:8]}"


class LeaseLock:
    """Claim record with a TTL; an expired claim can be taken over"""

    def __init__(
        self,
        store: DocumentStore,
        name: str,
        ttl_seconds: Optional[int] = None,
        owner: Optional[str] = None,
    ):
        self.store = store
        self.name = name
        self.ttl = timedelta(seconds=ttl_seconds or settings.SCHEDULER_LEASE_TTL_SECONDS)
        self.owner = owner or INSTANCE_ID

    def acquire(self, now: Optional[datetime] = None) -> bool:
        now = now or utc_now()

        def _claim(tx: Transaction) -> bool:
            current = tx.get(Collections.SCHEDULER_LEASES, self.name)
            if current and current.get("owner") != self.owner:
                expires_at = parse_timestamp(current.get("expiresAt"))
                if expires_at is not None and expires_at > now:
                    return False
            tx.set(Collections.SCHEDULER_LEASES, self.name, {
                "owner": self.owner,
                "acquiredAt": to_iso(now),
                "expiresAt": to_iso(now + self.ttl),
                "schemaVersion": SCHEMA_VERSION,
            })
            return True

        return self.store.run_transaction(_claim)

    def release(self) -> None:
        def _release(tx: Transaction) -> None:
            current = tx.get(Collections.SCHEDULER_LEASES, self.name)
            if current and current.get("owner") == self.owner:
                tx.delete(Collections.SCHEDULER_LEASES, self.name)

        self.store.run_transaction(_release)


def _run_guarded(store: DocumentStore, lease_name: str, job: Callable[[], Dict]) -> Dict:
    lock = LeaseLock(store, lease_name)
    if not lock.acquire():
        logger.warning(f"Skipping {lease_name} run: lease held by another worker")
        return {"skipped": True, "reason": "lease_held"}
    try:
        return {"skipped": False, **job()}
    finally:
        lock.release()


def run_event_queue_job(
    store: Optional[DocumentStore] = None,
    orchestration: Optional[EventOrchestrationService] = None,
) -> Dict:
    """Run one guarded pass over every event-type queue"""
    store = store or get_document_store()
    orchestration = orchestration or EventOrchestrationService(store)

    def _job() -> Dict:
        created = orchestration.process_all_queues()
        return {"created": {event_type.value: ids for event_type, ids in created.items()}}

    return _run_guarded(store, EVENT_QUEUE_LEASE, _job)


def run_event_reminder_job(
    store: Optional[DocumentStore] = None,
    reminders: Optional[EventReminderService] = None,
) -> Dict:
    """Run one guarded reminder pass"""
    store = store or get_document_store()
    reminders = reminders or EventReminderService(store)
    return _run_guarded(store, EVENT_REMINDER_LEASE, reminders.send_upcoming_event_reminders)


async def start_event_queue_scheduler(interval_seconds: Optional[int] = None):
    interval = interval_seconds or settings.EVENT_QUEUE_POLL_INTERVAL_SECONDS
    logger.info(f"Starting event queue scheduler (every {interval}s)")

    while True:
        try:
            result = await asyncio.to_thread(run_event_queue_job)
            if not result.get("skipped"):
                total = sum(len(ids) for ids in result["created"].values())
                logger.info(f"Event queue cycle completed: {total} event(s) created")
        except Exception as e:
            logger.error(f"Error in event queue scheduler: {e}")
        await asyncio.sleep(interval)


async def start_event_reminder_scheduler(interval_seconds: Optional[int] = None):
    interval = interval_seconds or settings.EVENT_REMINDER_POLL_INTERVAL_SECONDS
    logger.info(f"Starting event reminder scheduler (every {interval}s)")

    while True:
        try:
            result = await asyncio.to_thread(run_event_reminder_job)
            if not result.get("skipped"):
                logger.info(f"Event reminder cycle completed: {result['processed']} event(s) reminded")
        except Exception as e:
            logger.error(f"Error in event reminder scheduler: {e}")
        await asyncio.sleep(interval)

"""
48-hour reminders for finalized events
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Optional

from app.schemas.event import Event
from app.services.document_store import DocumentStore
from app.services.event_state import joined_user_ids
from app.services.notification_service import NotificationService
from app.services.repositories import EventRepo
from app.utils.clock import to_iso, utc_now

logger = logging.getLogger(__name__)

HOURS_BEFORE_EVENT = 48
WINDOW_IN_HOURS = 2


def reminder_payload(event: Event) -> Dict:
    return {
        "title": f"48-hour reminder for {event.title}",
        "body": f"Confirm your spot for {event.title}. Tap to view the final details.",
        "data": {
            "eventId": event.id,
            "eventType": event.event_type.value if event.event_type else "unknown",
            "venueId": event.final_venue_option_id or "unknown",
        },
    }


class EventReminderService:
    def __init__(self, store: DocumentStore, notifications: Optional[NotificationService] = None):
        self.store = store
        self.notifications = notifications or NotificationService(store)
        self.events = EventRepo(store)

    def send_upcoming_event_reminders(self, now: Optional[datetime] = None) -> Dict[str, int]:
        now = now or utc_now()
        window_start = now + timedelta(hours=HOURS_BEFORE_EVENT)
        window_end = window_start + timedelta(hours=WINDOW_IN_HOURS)

        due = self.events.list_due_for_reminder(to_iso(window_start), to_iso(window_end))
        processed = 0
        for event in due:
            try:
                self._remind(event)
                processed += 1
            except Exception as e:
                logger.error(f"Reminder for event {event.id} failed: {e}")

        if processed:
            logger.info(f"Sent reminders for {processed} event(s)")
        return {"processed": processed}

    def _remind(self, event: Event) -> None:
        payload = reminder_payload(event)
        recipients = joined_user_ids(event.participant_statuses)
        for user_id in recipients:
            self.notifications.send_event_reminder(user_id, payload)

        sent_at = to_iso(utc_now())
        self.events.update(event.id, {
            "reminderSent": True,
            "reminderSentAt": sent_at,
            "updatedAt": sent_at,
        })
        logger.info(f"Reminded {len(recipients)} participant(s) of event {event.id}")

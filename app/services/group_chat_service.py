"""
Group chat provisioning for finalized events
"""

import logging
from typing import Any, Dict, List, Optional

from app.schemas.common import SCHEMA_VERSION
from app.schemas.event import Event, VenueOption
from app.services.document_store import Collections, DocumentStore
from app.utils.clock import to_iso, utc_now

logger = logging.getLogger(__name__)


def venue_summary(venue: Optional[VenueOption]) -> Optional[Dict[str, Any]]:
    if venue is None:
        return None
    return venue.model_dump(
        by_alias=True,
        mode="json",
        include={"id", "name", "address", "description", "photos", "price_range", "duration_minutes", "additional_info"},
    )


class GroupChatService:
    def __init__(self, store: DocumentStore):
        self.store = store

    def create_or_update_chat_for_event(
        self,
        event: Event,
        participant_ids: List[str],
        final_venue: Optional[VenueOption] = None,
    ) -> str:
        """Return the event's chat room id, creating the room on first use"""
        now_iso = to_iso(utc_now())
        payload = {
            "eventId": event.id,
            "title": event.title,
            "eventType": event.event_type.value if event.event_type else None,
            "participantIds": list(participant_ids),
            "venue": venue_summary(final_venue),
            "suggestedTimes": [item.model_dump(mode="json") for item in event.suggested_times],
            "updatedAt": now_iso,
            "schemaVersion": SCHEMA_VERSION,
        }

        if event.chat_room_id:
            self.store.set(Collections.GROUP_CHATS, event.chat_room_id, payload, merge=True)
            logger.info(f"Updated chat {event.chat_room_id} for event {event.id}")
            return event.chat_room_id

        chat_id = self.store.add(Collections.GROUP_CHATS, {
            **payload,
            "createdAt": now_iso,
            "lastMessageAt": None,
        })
        logger.info(f"Created chat {chat_id} for event {event.id} with {len(participant_ids)} member(s)")
        return chat_id

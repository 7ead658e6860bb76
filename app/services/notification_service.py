"""
Notification delivery: in-app notification documents plus FCM push
"""

import logging
from typing import Any, Dict, List, Optional

from app.schemas.common import SCHEMA_VERSION
from app.services.document_store import Collections, DocumentStore
from app.services.firebase_client import get_messaging
from app.utils.clock import to_iso, utc_now

logger = logging.getLogger(__name__)

MAX_TOKENS_PER_BATCH = 500

EVENT_REMINDER = "event_reminder"


def sanitize_data(data: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """FCM data payloads only accept string values"""
    return {key: str(value) for key, value in (data or {}).items() if value is not None}


def chunk_tokens(tokens: List[str], size: int = MAX_TOKENS_PER_BATCH) -> List[List[str]]:
    return [tokens[i:i + size] for i in range(0, len(tokens), size)]


class NotificationService:
    """Fire-and-forget delivery; failures are logged, never raised"""

    def __init__(self, store: DocumentStore, messaging=None):
        self.store = store
        self._messaging = messaging

    @property
    def messaging(self):
        if self._messaging is None:
            self._messaging = get_messaging()
        return self._messaging

    def send_event_reminder(self, user_id: str, payload: Dict[str, Any]) -> None:
        self._dispatch(user_id, payload, EVENT_REMINDER)

    def _dispatch(self, user_id: str, payload: Dict[str, Any], notification_type: str) -> None:
        self._persist(user_id, payload, notification_type)
        tokens, push_enabled = self._fetch_target(user_id)
        if push_enabled and tokens:
            self._push(user_id, tokens, payload, notification_type)

    def _fetch_target(self, user_id: str):
        try:
            data = self.store.get(Collections.USERS, user_id)
        except Exception as e:
            logger.warning(f"Failed to load notification target for user {user_id}: {e}")
            return [], False
        if not data:
            return [], False

        push_enabled = ((data.get("preferences") or {}).get("notifications") or {}).get("push") is not False
        raw_tokens = data.get("notificationTokens") or data.get("deviceTokens") or []
        tokens = [token for token in raw_tokens if isinstance(token, str) and token.strip()]
        return tokens, push_enabled

    def _persist(self, user_id: str, payload: Dict[str, Any], notification_type: str) -> None:
        try:
            self.store.add(Collections.NOTIFICATIONS, {
                "userId": user_id,
                "type": notification_type,
                "title": payload.get("title"),
                "body": payload.get("body"),
                "data": sanitize_data(payload.get("data")),
                "read": False,
                "createdAt": to_iso(utc_now()),
                "schemaVersion": SCHEMA_VERSION,
            })
        except Exception as e:
            logger.error(f"Failed to persist {notification_type} notification for user {user_id}: {e}")

    def _push(self, user_id: str, tokens: List[str], payload: Dict[str, Any], notification_type: str) -> None:
        messaging = self.messaging
        if messaging is None:
            return

        data = sanitize_data(payload.get("data"))
        for batch in chunk_tokens(tokens):
            try:
                message = messaging.MulticastMessage(
                    tokens=batch,
                    notification=messaging.Notification(title=payload.get("title"), body=payload.get("body")),
                    data=data,
                )
                response = messaging.send_each_for_multicast(message)
                if response.failure_count > 0:
                    logger.warning(
                        f"Partial {notification_type} push failure for user {user_id}: "
                        f"{response.success_count} sent, {response.failure_count} failed"
                    )
            except Exception as e:
                logger.error(f"{notification_type} push dispatch failed for user {user_id}: {e}")

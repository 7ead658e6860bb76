"""
Repository layer: typed access to the document collections this service owns.

Every method has a plain variant and, where services need it, an `_in(tx, ...)`
variant that reads or writes through an open store transaction.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from app.schemas.enums import EventStatus, EventType, PairMatchStatus, QueueStatus
from app.schemas.event import Event, EventParticipant, participant_doc_id
from app.schemas.pair_match import PairMatch
from app.schemas.user import UserEventState
from app.services.document_store import Collections, DocumentStore, Transaction


def pair_key_for(user_id_a: str, user_id_b: str) -> str:
    return ":".join(sorted([user_id_a, user_id_b]))


# -------- PairMatch repository --------

class PairMatchRepo:
    collection = Collections.PAIR_MATCHES

    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self, pair_id: str) -> Optional[PairMatch]:
        data = self.store.get(self.collection, pair_id)
        return PairMatch.from_document(pair_id, data) if data is not None else None

    def get_in(self, tx: Transaction, pair_id: str) -> Optional[PairMatch]:
        data = tx.get(self.collection, pair_id)
        return PairMatch.from_document(pair_id, data) if data is not None else None

    def find_id_by_pair_key(self, pair_key: str) -> Optional[str]:
        docs = self.store.query(self.collection, [("pairKey", "==", pair_key)], limit=1)
        return docs[0][0] if docs else None

    def list_queued_for_event_type(self, event_type: EventType) -> List[PairMatch]:
        docs = self.store.query(
            self.collection,
            [
                ("queueStatus", "==", QueueStatus.QUEUED.value),
                ("queueEventType", "==", event_type.value),
            ],
        )
        return [PairMatch.from_document(doc_id, data) for doc_id, data in docs]

    def list_active_for_user(self, user_id: str) -> List[PairMatch]:
        docs = self.store.query(
            self.collection,
            [
                ("userIds", "array_contains", user_id),
                ("status", "==", PairMatchStatus.ACTIVE.value),
            ],
            order_by=("createdAt", "desc"),
        )
        return [PairMatch.from_document(doc_id, data) for doc_id, data in docs]

    def save_in(self, tx: Transaction, pair: PairMatch) -> None:
        tx.set(self.collection, pair.id, pair.to_document())

    def update(self, pair_id: str, fields: Dict[str, Any]) -> None:
        self.store.update(self.collection, pair_id, fields)

    def update_in(self, tx: Transaction, pair_id: str, fields: Dict[str, Any]) -> None:
        tx.update(self.collection, pair_id, fields)


# -------- Event repository --------

class EventRepo:
    collection = Collections.EVENTS

    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self, event_id: str) -> Optional[Event]:
        data = self.store.get(self.collection, event_id)
        return Event.from_document(event_id, data) if data is not None else None

    def get_in(self, tx: Transaction, event_id: str) -> Optional[Event]:
        data = tx.get(self.collection, event_id)
        return Event.from_document(event_id, data) if data is not None else None

    def save_in(self, tx: Transaction, event: Event) -> None:
        tx.set(self.collection, event.id, event.to_document())

    def update(self, event_id: str, fields: Dict[str, Any]) -> None:
        self.store.update(self.collection, event_id, fields)

    def list_due_for_reminder(self, window_start: str, window_end: str) -> List[Event]:
        docs = self.store.query(
            self.collection,
            [
                ("status", "==", EventStatus.READY.value),
                ("reminderSent", "==", False),
                ("date", ">=", window_start),
                ("date", "<", window_end),
            ],
        )
        return [Event.from_document(doc_id, data) for doc_id, data in docs]


# -------- EventParticipant repository --------

class ParticipantRepo:
    collection = Collections.EVENT_PARTICIPANTS

    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self, event_id: str, user_id: str) -> Optional[EventParticipant]:
        doc_id = participant_doc_id(event_id, user_id)
        data = self.store.get(self.collection, doc_id)
        return EventParticipant.from_document(doc_id, data) if data is not None else None

    def get_in(self, tx: Transaction, event_id: str, user_id: str) -> Optional[EventParticipant]:
        doc_id = participant_doc_id(event_id, user_id)
        data = tx.get(self.collection, doc_id)
        return EventParticipant.from_document(doc_id, data) if data is not None else None

    def save_in(self, tx: Transaction, participant: EventParticipant) -> None:
        participant.id = participant_doc_id(participant.event_id, participant.user_id)
        tx.set(self.collection, participant.id, participant.to_document(), merge=True)


# -------- User repository (external documents; only event fields are written) --------

class UserRepo:
    collection = Collections.USERS

    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self, user_id: str) -> Optional[UserEventState]:
        data = self.store.get(self.collection, user_id)
        return UserEventState.from_document(user_id, data) if data is not None else None

    def get_in(self, tx: Transaction, user_id: str) -> Optional[UserEventState]:
        data = tx.get(self.collection, user_id)
        return UserEventState.from_document(user_id, data) if data is not None else None

    def update_event_state_in(self, tx: Transaction, user: UserEventState, *fields: str) -> None:
        """Write back the named event bookkeeping fields of `user`"""
        payload = user.model_dump(by_alias=True, mode="json", include=set(fields))
        if "pending_events" in fields:
            payload["pendingEventCount"] = len(user.pending_events)
        tx.update(self.collection, user.id, payload)

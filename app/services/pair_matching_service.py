"""
Pair matching ledger: one PairMatch per mutually-liked pair of users
"""

import logging
from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple

from app.core.errors import InvalidInputError, NotFoundError
from app.schemas.enums import EventType, PairMatchStatus, QueueStatus
from app.schemas.pair_match import PairMatch
from app.schemas.user import UserEventState
from app.services.document_store import DocumentStore, Transaction
from app.services.repositories import PairMatchRepo, UserRepo, pair_key_for
from app.utils.availability import compute_availability_overlap, has_sufficient_availability
from app.utils.clock import to_iso, utc_now
from app.utils.event_mapping import get_shared_event_types

logger = logging.getLogger(__name__)

QueueState = Tuple[QueueStatus, Optional[EventType], Optional[EventType]]


def derive_queue_state(has_sufficient: bool, shared_event_types: Sequence[EventType]) -> QueueState:
    """(queueStatus, queueEventType, suggestedEventType) from availability and interests"""
    if not has_sufficient:
        return QueueStatus.AWAITING_AVAILABILITY, None, None
    if not shared_event_types:
        return QueueStatus.AWAITING_EVENT_TYPE, None, None
    primary = shared_event_types[0]
    return QueueStatus.QUEUED, primary, primary


class PairMatchingService:
    """Creates and recomputes pair matches; answers queue queries"""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.pairs = PairMatchRepo(store)
        self.users = UserRepo(store)

    def upsert_pair_match(
        self,
        user_a: UserEventState,
        user_b: UserEventState,
        now: Optional[datetime] = None,
        today: Optional[date] = None,
    ) -> PairMatch:
        if user_a.id == user_b.id:
            raise InvalidInputError("A pair match needs two different users")

        now_iso = to_iso(now or utc_now())
        pair_key = pair_key_for(user_a.id, user_b.id)

        overlap = compute_availability_overlap(
            user_a.profile.availability,
            user_b.profile.availability,
            today=today,
        )
        has_sufficient = has_sufficient_availability(overlap.total_segments)
        shared_types = get_shared_event_types(user_a.profile.interests, user_b.profile.interests)
        queue_status, queue_event_type, suggested_event_type = derive_queue_state(has_sufficient, shared_types)

        derived = {
            "shared_event_types": shared_types,
            "suggested_event_type": suggested_event_type,
            "availability_overlap_count": overlap.total_segments,
            "availability_overlap_segments": overlap.segments,
            "availability_computed_at": now_iso,
            "has_sufficient_availability": has_sufficient,
            "updated_at": now_iso,
            "last_activity_at": now_iso,
        }

        # Legacy records may live under an auto id; new ones are keyed by pairKey
        doc_id = self.pairs.find_id_by_pair_key(pair_key) or pair_key

        def _upsert(tx: Transaction) -> Tuple[PairMatch, bool]:
            existing = self.pairs.get_in(tx, doc_id)
            if existing is None:
                pair = PairMatch(
                    id=doc_id,
                    pair_key=pair_key,
                    user_ids=sorted([user_a.id, user_b.id]),
                    status=PairMatchStatus.ACTIVE,
                    queue_status=queue_status,
                    queue_event_type=queue_event_type,
                    pending_event_id=None,
                    created_at=now_iso,
                    **derived,
                )
                self.pairs.save_in(tx, pair)
                return pair, True

            if existing.pending_event_id:
                # Committed to an event: refresh the cached inputs only
                updates = dict(derived)
            else:
                updates = {
                    **derived,
                    "status": PairMatchStatus.ACTIVE,
                    "queue_status": queue_status,
                    "queue_event_type": queue_event_type,
                }
            pair = existing.model_copy(update=updates)
            self.pairs.save_in(tx, pair)
            return pair, False

        pair, created = self.store.run_transaction(_upsert)
        logger.info(
            f"{'Created' if created else 'Updated'} pair match {pair.id} "
            f"({pair.queue_status.value}, type={pair.queue_event_type.value if pair.queue_event_type else None})"
        )
        return pair

    def upsert_pair_match_for_user_ids(self, user_a_id: str, user_b_id: str) -> PairMatch:
        user_a = self.users.get(user_a_id)
        if user_a is None:
            raise NotFoundError(f"User {user_a_id} not found")
        user_b = self.users.get(user_b_id)
        if user_b is None:
            raise NotFoundError(f"User {user_b_id} not found")
        return self.upsert_pair_match(user_a, user_b)

    def get_queued_pairs_for_event_type(self, event_type: EventType) -> List[PairMatch]:
        return self.pairs.list_queued_for_event_type(event_type)

    def get_pair_matches_for_user(self, user_id: str) -> List[PairMatch]:
        return self.pairs.list_active_for_user(user_id)

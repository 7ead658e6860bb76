"""
Event orchestrator: batches queued pairs into events and backfills vacancies
"""

import logging
import re
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Set, Tuple

from app.core.event_catalog import EventCatalog, VenueConfig, default_catalog
from app.schemas.enums import (
    EVENT_TYPES,
    AssignmentStatus,
    EventStatus,
    EventType,
    ParticipantStatus,
    QueueStatus,
)
from app.schemas.event import (
    Coordinates,
    Event,
    EventLocation,
    Organizer,
    PendingEventAssignment,
    PriceRange,
    SuggestedTime,
    VenueOption,
)
from app.schemas.pair_match import PairMatch
from app.services.document_store import Collections, DocumentStore, Transaction
from app.services.event_state import confirmations_received
from app.services.pair_matching_service import PairMatchingService
from app.services.repositories import EventRepo, PairMatchRepo, UserRepo
from app.utils.clock import to_iso, utc_now

logger = logging.getLogger(__name__)

SYSTEM_ORGANIZER = Organizer(id="system-organizer", name="Community Events")
MAX_VENUE_OPTIONS = 3
MAX_SUGGESTED_DATES = 5
TENTATIVE_DATE_OFFSET = timedelta(days=7)


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def build_venue_option_id(event_type: EventType, index: int, venue: VenueConfig) -> str:
    return f"{event_type.value}-{index}-{slugify(venue.name)}"


def _venue_option(event_type: EventType, index: int, venue: VenueConfig) -> VenueOption:
    return VenueOption(
        id=build_venue_option_id(event_type, index, venue),
        name=venue.name,
        address=venue.address,
        coordinates=Coordinates(lat=venue.lat, lng=venue.lng),
        description=venue.description,
        photos=list(venue.photos),
        price_range=PriceRange(min=venue.price_range.min, max=venue.price_range.max) if venue.price_range else None,
        duration_minutes=venue.duration_minutes,
        additional_info=None,
    )


def build_venue_options(catalog: EventCatalog, event_type: EventType) -> List[VenueOption]:
    venues = catalog.get_venue_options_for_type(event_type)
    if not venues:
        return [_venue_option(event_type, 0, catalog.select_template(event_type).venue)]
    return [_venue_option(event_type, index, venue) for index, venue in enumerate(venues[:MAX_VENUE_OPTIONS])]


def aggregate_suggested_times(pairs: List[PairMatch]) -> List[SuggestedTime]:
    """Union of the pairs' overlap segments by date, earliest dates first"""
    by_date: Dict[str, Set[str]] = {}
    for pair in pairs:
        for overlap in pair.availability_overlap_segments:
            by_date.setdefault(overlap.date, set()).update(overlap.segments)

    return [
        SuggestedTime(date=day, segments=sorted(by_date[day]))
        for day in sorted(by_date)[:MAX_SUGGESTED_DATES]
    ]


def _unique_user_ids(pairs: List[PairMatch]) -> List[str]:
    seen: List[str] = []
    for pair in pairs:
        for user_id in pair.user_ids:
            if user_id not in seen:
                seen.append(user_id)
    return seen


class EventOrchestrationService:
    """Turns the pair queue into pending events"""

    def __init__(
        self,
        store: DocumentStore,
        catalog: Optional[EventCatalog] = None,
        pair_matching: Optional[PairMatchingService] = None,
    ):
        self.store = store
        self.catalog = catalog or default_catalog
        self.pair_matching = pair_matching or PairMatchingService(store)
        self.events = EventRepo(store)
        self.pairs = PairMatchRepo(store)
        self.users = UserRepo(store)

    # -------- queue processing --------

    def process_all_queues(self) -> Dict[EventType, List[str]]:
        created: Dict[EventType, List[str]] = {}
        for event_type in EVENT_TYPES:
            try:
                created[event_type] = self.process_queue_for_event_type(event_type)
            except Exception as e:
                logger.exception(f"Processing {event_type.value} queue failed: {e}")
                created[event_type] = []
        total = sum(len(ids) for ids in created.values())
        logger.info(f"Queue run complete: {total} event(s) created")
        return created

    def process_queue_for_event_type(self, event_type: EventType) -> List[str]:
        pairs_required = self.catalog.pairs_per_event(event_type)
        queued = self.pair_matching.get_queued_pairs_for_event_type(event_type)
        if len(queued) < pairs_required:
            return []

        eligible = sorted(
            (pair for pair in queued if not pair.pending_event_id),
            key=lambda pair: pair.availability_computed_at or "",
        )

        created_ids: List[str] = []
        now = utc_now()
        while len(eligible) >= pairs_required:
            batch = eligible[:pairs_required]
            event_id, stale_ids = self._create_event_for_pairs(event_type, batch, now)
            if event_id is None:
                # Another writer claimed some of these pairs; retry without them
                eligible = [pair for pair in eligible if pair.id not in stale_ids]
                continue
            eligible = eligible[pairs_required:]

            assignment = PendingEventAssignment(
                event_id=event_id,
                event_type=event_type,
                status=AssignmentStatus.PENDING_JOIN,
                assigned_at=to_iso(now),
                updated_at=to_iso(now),
            )
            for user_id in _unique_user_ids(batch):
                self._assign_pending_event_to_user(user_id, assignment)

            logger.info(f"Created {event_type.value} event {event_id} from pairs {[pair.id for pair in batch]}")
            created_ids.append(event_id)

        return created_ids

    def build_event(self, event_type: EventType, pairs: List[PairMatch], now: datetime) -> Event:
        template = self.catalog.select_template(event_type)
        participant_ids = _unique_user_ids(pairs)
        venue_options = build_venue_options(self.catalog, event_type)
        now_iso = to_iso(now)

        return Event(
            title=template.title,
            description=template.description,
            category=template.category,
            event_type=event_type,
            date=to_iso(now + TENTATIVE_DATE_OFFSET),
            location=EventLocation(
                name=template.venue.name,
                address=template.venue.address,
                coordinates=Coordinates(lat=template.venue.lat, lng=template.venue.lng),
            ),
            photos=list(template.venue.photos),
            organizer=SYSTEM_ORGANIZER,
            group_size=template.group_size,
            price_per_person=template.price_range.max,
            age_range={"min": template.age_range.min, "max": template.age_range.max},
            status=EventStatus.PENDING_JOIN,
            auto_organized=True,
            pending_pair_match_ids=[pair.id for pair in pairs],
            required_pair_count=self.catalog.pairs_per_event(event_type),
            participant_user_ids=participant_ids,
            participant_statuses={user_id: ParticipantStatus.PENDING_JOIN for user_id in participant_ids},
            venue_options=venue_options,
            venue_vote_totals={option.id: 0 for option in venue_options},
            votes_submitted_count=0,
            final_venue_option_id=None,
            suggested_times=aggregate_suggested_times(pairs),
            chat_room_id=None,
            reminder_sent=False,
            reminder_sent_at=None,
            confirmations_received=0,
            created_at=now_iso,
            updated_at=now_iso,
        )

    def _create_event_for_pairs(
        self,
        event_type: EventType,
        pairs: List[PairMatch],
        now: datetime,
    ) -> Tuple[Optional[str], Set[str]]:
        """Create the event and claim its pairs atomically.

        Returns (event_id, set()) on success, or (None, stale_pair_ids) when some
        pairs are no longer queued for this type.
        """
        event = self.build_event(event_type, pairs, now)
        event.id = self.store.new_id(Collections.EVENTS)
        now_iso = to_iso(now)

        def _create(tx: Transaction) -> Tuple[Optional[str], Set[str]]:
            current = [self.pairs.get_in(tx, pair.id) for pair in pairs]
            stale = {
                pair.id
                for pair, fresh in zip(pairs, current)
                if fresh is None
                or fresh.pending_event_id
                or fresh.queue_status != QueueStatus.QUEUED
                or fresh.queue_event_type != event_type
            }
            if stale:
                return None, stale

            self.events.save_in(tx, event)
            for pair in pairs:
                self.pairs.update_in(tx, pair.id, {
                    "queueStatus": QueueStatus.IN_EVENT.value,
                    "pendingEventId": event.id,
                    "updatedAt": now_iso,
                    "lastActivityAt": now_iso,
                })
            return event.id, set()

        return self.store.run_transaction(_create)

    def _assign_pending_event_to_user(self, user_id: str, assignment: PendingEventAssignment) -> bool:
        def _push(tx: Transaction) -> bool:
            user = self.users.get_in(tx, user_id)
            if user is None:
                return False
            user.replace_assignment(assignment.model_copy())
            self.users.update_event_state_in(tx, user, "pending_events")
            return True

        pushed = self.store.run_transaction(_push)
        if not pushed:
            logger.warning(f"User {user_id} not found; assignment for event {assignment.event_id} skipped")
        return pushed

    # -------- backfill --------

    def fill_event_vacancies(self, event_id: str) -> None:
        event = self.events.get(event_id)
        if event is None or event.event_type is None:
            return

        required = event.required_pair_count or self.catalog.pairs_per_event(event.event_type)
        remaining = required - len(event.pending_pair_match_ids)
        if remaining <= 0:
            return

        queued = sorted(
            self.pair_matching.get_queued_pairs_for_event_type(event.event_type),
            key=lambda pair: pair.availability_computed_at or "",
        )
        for pair in queued:
            if remaining <= 0:
                break
            if pair.pending_event_id:
                continue
            if self.assign_pair_to_existing_event(event_id, event.event_type, pair):
                remaining -= 1
                logger.info(f"Backfilled event {event_id} with pair {pair.id}")

    def assign_pair_to_existing_event(self, event_id: str, event_type: EventType, pair: PairMatch) -> bool:
        now = utc_now()
        now_iso = to_iso(now)

        def _assign(tx: Transaction) -> bool:
            event = self.events.get_in(tx, event_id)
            fresh_pair = self.pairs.get_in(tx, pair.id)
            users = [self.users.get_in(tx, user_id) for user_id in pair.user_ids]

            if event is None or fresh_pair is None or event.status == EventStatus.CANCELED:
                return False
            required = event.required_pair_count or self.catalog.pairs_per_event(event_type)
            if len(event.pending_pair_match_ids) >= required:
                return False
            if fresh_pair.pending_event_id:
                return False
            for user in users:
                if user is None or user.is_banned(now):
                    return False
                if user.has_open_assignment_of_type(event_type, excluding_event_id=event_id):
                    return False
                if user.id in event.participant_user_ids:
                    return False

            statuses = dict(event.participant_statuses)
            for user_id in pair.user_ids:
                statuses[user_id] = ParticipantStatus.PENDING_JOIN
            participant_ids = list(event.participant_user_ids)
            participant_ids.extend(uid for uid in pair.user_ids if uid not in participant_ids)

            self.events.save_in(tx, event.model_copy(update={
                "participant_statuses": statuses,
                "participant_user_ids": participant_ids,
                "pending_pair_match_ids": event.pending_pair_match_ids + [pair.id],
                "confirmations_received": confirmations_received(statuses),
                "updated_at": now_iso,
            }))
            self.pairs.update_in(tx, pair.id, {
                "queueStatus": QueueStatus.IN_EVENT.value,
                "pendingEventId": event_id,
                "updatedAt": now_iso,
                "lastActivityAt": now_iso,
            })
            return True

        assigned = self.store.run_transaction(_assign)
        if assigned:
            assignment = PendingEventAssignment(
                event_id=event_id,
                event_type=event_type,
                status=AssignmentStatus.PENDING_JOIN,
                assigned_at=now_iso,
                updated_at=now_iso,
            )
            for user_id in pair.user_ids:
                self._assign_pending_event_to_user(user_id, assignment)
        return assigned

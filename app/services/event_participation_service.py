"""
Event participation: join, vote, confirm and cancel.

Every operation reads the event, participant and user documents it needs,
validates against that snapshot and writes everything in one store
transaction. Work that needs other collaborators (group chat provisioning,
pair sidelining, backfill) runs after the transaction commits.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple, Union

from app.core.errors import ForbiddenError, InvalidInputError, InvalidStateError, NotFoundError
from app.schemas.enums import (
    AssignmentStatus,
    EventStatus,
    EventType,
    PairMatchStatus,
    ParticipantStatus,
    QueueStatus,
    ReminderAction,
)
from app.schemas.event import Event, EventParticipant, ParticipationResult
from app.schemas.user import AssignmentsView, AssignmentView, UserEventState
from app.services.document_store import DocumentStore, Transaction
from app.services.event_orchestration_service import EventOrchestrationService
from app.services.event_state import (
    confirmations_received,
    derive_status_after_cancellation,
    derive_status_after_confirmation,
    joined_user_ids,
    pick_winning_venue,
    remove_vote,
    should_finalize,
)
from app.services.group_chat_service import GroupChatService
from app.services.repositories import EventRepo, PairMatchRepo, ParticipantRepo, UserRepo
from app.utils.clock import to_iso, utc_now

logger = logging.getLogger(__name__)

CANCEL_BAN_THRESHOLD = 3
BAN_DURATION = timedelta(days=7)

UserRef = Union[str, UserEventState]


def _user_id(user: UserRef) -> str:
    return user if isinstance(user, str) else user.id


def _event_type(event: Event) -> EventType:
    return event.event_type or EventType.COFFEE


class EventParticipationService:
    def __init__(
        self,
        store: DocumentStore,
        orchestration: Optional[EventOrchestrationService] = None,
        group_chats: Optional[GroupChatService] = None,
    ):
        self.store = store
        self.orchestration = orchestration or EventOrchestrationService(store)
        self.group_chats = group_chats or GroupChatService(store)
        self.events = EventRepo(store)
        self.participants = ParticipantRepo(store)
        self.pairs = PairMatchRepo(store)
        self.users = UserRepo(store)

    # -------- reads --------

    def get_event(self, event_id: str) -> Event:
        event = self.events.get(event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return event

    def get_assignments(self, user: UserRef, now: Optional[datetime] = None) -> AssignmentsView:
        user_id = _user_id(user)
        state = self.users.get(user_id)
        if state is None:
            raise NotFoundError("User not found")

        items: List[AssignmentView] = []
        for assignment in state.pending_events:
            event = self.events.get(assignment.event_id)
            if event is None:
                continue
            items.append(AssignmentView(
                assignment=assignment,
                event=event,
                participant=self.participants.get(assignment.event_id, user_id),
            ))

        return AssignmentsView(
            assignments=items,
            pending_event_count=len(state.pending_events),
            can_join=not state.is_banned(now or utc_now()),
        )

    # -------- join --------

    def join_event(self, event_id: str, user: UserRef) -> ParticipationResult:
        user_id = _user_id(user)
        now = utc_now()
        now_iso = to_iso(now)

        def _join(tx: Transaction) -> ParticipationResult:
            event = self.events.get_in(tx, event_id)
            participant = self.participants.get_in(tx, event_id, user_id)
            state = self.users.get_in(tx, user_id)

            if event is None:
                raise NotFoundError("Event not found")
            if event.status not in (EventStatus.PENDING_JOIN, EventStatus.PUBLISHED):
                raise InvalidStateError("Event is not accepting joins")
            if user_id not in event.participant_user_ids:
                raise ForbiddenError("User is not assigned to this event")
            if state is None:
                raise NotFoundError("User not found")
            if state.is_banned(now):
                raise ForbiddenError("You are temporarily unable to join events.")

            if event.participant_statuses.get(user_id) == ParticipantStatus.JOINED:
                if participant is None:
                    participant = EventParticipant(
                        event_id=event_id,
                        user_id=user_id,
                        status=ParticipantStatus.JOINED,
                        joined_at=now_iso,
                        last_status_at=now_iso,
                    )
                return ParticipationResult(event=event, participant=participant)

            statuses = dict(event.participant_statuses)
            statuses[user_id] = ParticipantStatus.JOINED
            event = event.model_copy(update={
                "participant_statuses": statuses,
                "confirmations_received": confirmations_received(statuses),
                "updated_at": now_iso,
            })
            self.events.save_in(tx, event)

            state.upsert_assignment(event_id, _event_type(event), AssignmentStatus.JOINED, now_iso)
            if event_id not in state.joined_events:
                state.joined_events.append(event_id)
            self.users.update_event_state_in(tx, state, "pending_events", "joined_events")

            updates = {
                "status": ParticipantStatus.JOINED,
                "joined_at": now_iso,
                "last_status_at": now_iso,
            }
            if participant is not None and participant.status in (ParticipantStatus.CANCELED, ParticipantStatus.REMOVED):
                # Rejoining after a cancellation: the old vote was already reversed
                updates.update(vote_venue_option_id=None, vote_submitted_at=None, confirmed_at=None)
            participant = (participant or EventParticipant(
                event_id=event_id,
                user_id=user_id,
                status=ParticipantStatus.JOINED,
            )).model_copy(update=updates)
            self.participants.save_in(tx, participant)
            return ParticipationResult(event=event, participant=participant)

        result = self.store.run_transaction(_join)
        logger.info(f"User {user_id} joined event {event_id}")
        return result

    # -------- vote --------

    def submit_vote(self, event_id: str, user_id: str, venue_option_id: str) -> ParticipationResult:
        now_iso = to_iso(utc_now())

        def _vote(tx: Transaction) -> Tuple[ParticipationResult, bool]:
            event = self.events.get_in(tx, event_id)
            participant = self.participants.get_in(tx, event_id, user_id)

            if event is None:
                raise NotFoundError("Event not found")
            if participant is None:
                raise NotFoundError("Participant not found")
            if participant.status != ParticipantStatus.JOINED:
                raise InvalidStateError("Only joined participants can vote")
            if event.venue_option(venue_option_id) is None:
                raise InvalidInputError("Invalid venue option")

            previous = participant.vote_venue_option_id
            if previous == venue_option_id:
                return ParticipationResult(event=event, participant=participant), False

            totals = dict(event.venue_vote_totals)
            votes_submitted = event.votes_submitted_count
            if not remove_vote(totals, previous):
                votes_submitted += 1
            totals[venue_option_id] = totals.get(venue_option_id, 0) + 1

            final_id = event.final_venue_option_id
            finalized = False
            if should_finalize(final_id, votes_submitted, event.participant_statuses):
                final_id = pick_winning_venue(event.venue_options, totals) or venue_option_id
                finalized = True

            event = event.model_copy(update={
                "venue_vote_totals": totals,
                "votes_submitted_count": votes_submitted,
                "final_venue_option_id": final_id,
                "updated_at": now_iso,
            })
            self.events.save_in(tx, event)

            participant = participant.model_copy(update={
                "vote_venue_option_id": venue_option_id,
                "vote_submitted_at": now_iso,
                "last_status_at": now_iso,
            })
            self.participants.save_in(tx, participant)
            return ParticipationResult(event=event, participant=participant), finalized

        result, finalized = self.store.run_transaction(_vote)
        if finalized:
            logger.info(f"Event {event_id} finalized at venue {result.event.final_venue_option_id}")
            result = ParticipationResult(event=self._open_group_chat(result.event), participant=result.participant)
        return result

    def _open_group_chat(self, event: Event) -> Event:
        """Provision the chat for a finalized event and mark it ready"""
        refreshed = self.events.get(event.id) or event
        final_venue = refreshed.venue_option(refreshed.final_venue_option_id or event.final_venue_option_id)
        chat_room_id = self.group_chats.create_or_update_chat_for_event(
            refreshed,
            joined_user_ids(refreshed.participant_statuses),
            final_venue,
        )

        def _mark_ready(tx: Transaction) -> Event:
            current = self.events.get_in(tx, event.id) or refreshed
            updates = {"chat_room_id": chat_room_id, "updated_at": to_iso(utc_now())}
            # A confirm or cancel may have moved the event on since the vote; never demote
            if current.status in (EventStatus.PENDING_JOIN, EventStatus.PUBLISHED):
                updates["status"] = EventStatus.READY
            current = current.model_copy(update=updates)
            self.events.save_in(tx, current)
            return current

        return self.store.run_transaction(_mark_ready)

    # -------- reminder response --------

    def respond_to_reminder(
        self,
        event_id: str,
        user: UserRef,
        action: ReminderAction = ReminderAction.CONFIRM,
    ) -> ParticipationResult:
        if action == ReminderAction.CANCEL:
            return self.cancel_participation(event_id, user)

        user_id = _user_id(user)
        now_iso = to_iso(utc_now())

        def _confirm(tx: Transaction) -> ParticipationResult:
            event = self.events.get_in(tx, event_id)
            participant = self.participants.get_in(tx, event_id, user_id)
            state = self.users.get_in(tx, user_id)

            if event is None:
                raise NotFoundError("Event not found")
            if participant is None:
                raise NotFoundError("Participant not found")
            current = event.participant_statuses.get(user_id)
            if current not in (ParticipantStatus.JOINED, ParticipantStatus.CONFIRMED):
                raise InvalidStateError("You are not able to confirm for this event.")

            statuses = dict(event.participant_statuses)
            statuses[user_id] = ParticipantStatus.CONFIRMED
            event = event.model_copy(update={
                "participant_statuses": statuses,
                "confirmations_received": confirmations_received(statuses),
                "status": derive_status_after_confirmation(event.status, statuses),
                "updated_at": now_iso,
            })
            self.events.save_in(tx, event)

            if state is not None:
                state.upsert_assignment(event_id, _event_type(event), AssignmentStatus.CONFIRMED, now_iso)
                self.users.update_event_state_in(tx, state, "pending_events")

            participant = participant.model_copy(update={
                "status": ParticipantStatus.CONFIRMED,
                "confirmed_at": now_iso,
                "last_status_at": now_iso,
            })
            self.participants.save_in(tx, participant)
            return ParticipationResult(event=event, participant=participant)

        result = self.store.run_transaction(_confirm)
        logger.info(f"User {user_id} confirmed event {event_id} ({result.event.status.value})")
        return result

    # -------- cancel --------

    def cancel_participation(self, event_id: str, user: UserRef) -> ParticipationResult:
        user_id = _user_id(user)
        now = utc_now()
        now_iso = to_iso(now)

        def _cancel(tx: Transaction):
            # Reads first: event, participant, user, the user's pair, then the partner's docs
            event = self.events.get_in(tx, event_id)
            participant = self.participants.get_in(tx, event_id, user_id)
            state = self.users.get_in(tx, user_id)

            if event is None:
                raise NotFoundError("Event not found")
            if participant is None:
                raise NotFoundError("Participant not found")
            if user_id not in event.participant_statuses:
                raise ForbiddenError("User is not part of this event")

            pair_id: Optional[str] = None
            partner_id: Optional[str] = None
            for candidate_id in event.pending_pair_match_ids:
                pair = self.pairs.get_in(tx, candidate_id)
                if pair is not None and user_id in pair.user_ids:
                    pair_id = pair.id
                    partner_id = pair.partner_of(user_id)
                    break

            partner_state = self.users.get_in(tx, partner_id) if partner_id else None
            partner_participant = self.participants.get_in(tx, event_id, partner_id) if partner_id else None

            totals = dict(event.venue_vote_totals)
            votes_submitted = event.votes_submitted_count
            statuses = dict(event.participant_statuses)
            participant_ids = [uid for uid in event.participant_user_ids if uid != user_id]
            event_type = _event_type(event)

            if remove_vote(totals, participant.vote_venue_option_id):
                votes_submitted = max(0, votes_submitted - 1)
            statuses[user_id] = ParticipantStatus.CANCELED

            if partner_id:
                participant_ids = [uid for uid in participant_ids if uid != partner_id]
                statuses[partner_id] = ParticipantStatus.REMOVED
                if partner_participant is not None and remove_vote(totals, partner_participant.vote_venue_option_id):
                    votes_submitted = max(0, votes_submitted - 1)

            event = event.model_copy(update={
                "participant_statuses": statuses,
                "participant_user_ids": participant_ids,
                "pending_pair_match_ids": [pid for pid in event.pending_pair_match_ids if pid != pair_id],
                "venue_vote_totals": totals,
                "votes_submitted_count": votes_submitted,
                "confirmations_received": confirmations_received(statuses),
                "status": derive_status_after_cancellation(event.status, statuses, event.final_venue_option_id),
                "updated_at": now_iso,
            })
            self.events.save_in(tx, event)

            banned = False
            if state is not None:
                state.upsert_assignment(event_id, event_type, AssignmentStatus.CANCELED, now_iso)
                state.joined_events = [eid for eid in state.joined_events if eid != event_id]
                state.event_cancel_count += 1
                if state.event_cancel_count >= CANCEL_BAN_THRESHOLD:
                    state.event_ban_until = to_iso(now + BAN_DURATION)
                    state.event_cancel_count = 0
                    banned = True
                self.users.update_event_state_in(
                    tx, state, "pending_events", "joined_events", "event_cancel_count", "event_ban_until"
                )

            if partner_state is not None:
                # Involuntary removal: bookkeeping only, no cancel penalty
                partner_state.upsert_assignment(event_id, event_type, AssignmentStatus.CANCELED, now_iso)
                partner_state.joined_events = [eid for eid in partner_state.joined_events if eid != event_id]
                self.users.update_event_state_in(tx, partner_state, "pending_events", "joined_events")

            if partner_participant is not None:
                self.participants.save_in(tx, partner_participant.model_copy(update={
                    "status": ParticipantStatus.REMOVED,
                    "vote_venue_option_id": None,
                    "vote_submitted_at": None,
                    "last_status_at": now_iso,
                }))

            participant = participant.model_copy(update={
                "status": ParticipantStatus.CANCELED,
                "canceled_at": now_iso,
                "vote_venue_option_id": None,
                "vote_submitted_at": None,
                "last_status_at": now_iso,
            })
            self.participants.save_in(tx, participant)
            return ParticipationResult(event=event, participant=participant), pair_id, banned

        result, pair_id, banned = self.store.run_transaction(_cancel)
        logger.info(f"User {user_id} canceled event {event_id}")
        if banned:
            logger.info(f"User {user_id} reached {CANCEL_BAN_THRESHOLD} cancellations; banned for {BAN_DURATION.days} days")

        if pair_id:
            self.pairs.update(pair_id, {
                "queueStatus": QueueStatus.SIDELINED.value,
                "status": PairMatchStatus.INACTIVE.value,
                "pendingEventId": None,
                "updatedAt": to_iso(utc_now()),
            })
            logger.info(f"Pair {pair_id} sidelined after cancellation on event {event_id}")

        if result.event.event_type:
            self.orchestration.fill_event_vacancies(event_id)

        return result

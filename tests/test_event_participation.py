"""
Tests for the join / vote / confirm / cancel lifecycle
"""

import pytest
from datetime import datetime, timedelta, timezone

from app.core.errors import ForbiddenError, InvalidInputError, InvalidStateError, NotFoundError
from app.schemas.enums import (
    AssignmentStatus,
    EventStatus,
    PairMatchStatus,
    ParticipantStatus,
    QueueStatus,
    ReminderAction,
)
from app.services.document_store import Collections
from app.services.repositories import EventRepo, PairMatchRepo, UserRepo
from app.utils.clock import parse_timestamp, to_iso

MEMBERS = ("u1", "u2", "u3", "u4")

def _join_all(participation, event_id, user_ids=MEMBERS):
    for user_id in user_ids:
        participation.join_event(event_id, user_id)

def _options(store, event_id):
    return [option.id for option in EventRepo(store).get(event_id).venue_options]

def _finalize(store, participation, event_id):
    """Everyone joins and votes; the first option wins 3 to 1"""
    _join_all(participation, event_id)
    first, second = _options(store, event_id)[:2]
    participation.submit_vote(event_id, "u1", first)
    participation.submit_vote(event_id, "u2", first)
    participation.submit_vote(event_id, "u3", second)
    return participation.submit_vote(event_id, "u4", first)

# -------- join --------

def test_join_event(store, participation, hiking_event):
    """Joining flips the status and records the assignment"""
    result = participation.join_event(hiking_event, "u1")

    assert result.event.participant_statuses["u1"] == ParticipantStatus.JOINED
    assert result.participant.status == ParticipantStatus.JOINED
    assert result.participant.id == f"{hiking_event}_u1"

    user = UserRepo(store).get("u1")
    assert [(a.event_id, a.status) for a in user.pending_events] == [(hiking_event, AssignmentStatus.JOINED)]
    assert user.joined_events == [hiking_event]
    assert store.get(Collections.EVENT_PARTICIPANTS, f"{hiking_event}_u1")["status"] == "joined"

def test_join_event_is_idempotent(store, participation, hiking_event):
    """A second join changes nothing and adds no assignment"""
    first = participation.join_event(hiking_event, "u1")
    second = participation.join_event(hiking_event, "u1")

    assert second.participant.status == first.participant.status == ParticipantStatus.JOINED
    assert second.participant.joined_at == first.participant.joined_at
    user = UserRepo(store).get("u1")
    assert len(user.pending_events) == 1
    assert user.pending_event_count == 1
    assert user.joined_events == [hiking_event]

def test_join_rejections(store, participation, hiking_event, make_user):
    """Unknown event, unassigned user, banned user, closed event"""
    with pytest.raises(NotFoundError):
        participation.join_event("missing", "u1")

    make_user("outsider")
    with pytest.raises(ForbiddenError):
        participation.join_event(hiking_event, "outsider")

    store.update(Collections.USERS, "u2", {
        "eventBanUntil": to_iso(datetime.now(timezone.utc) + timedelta(days=1)),
    })
    with pytest.raises(ForbiddenError):
        participation.join_event(hiking_event, "u2")

    store.update(Collections.EVENTS, hiking_event, {"status": "ready"})
    with pytest.raises(InvalidStateError):
        participation.join_event(hiking_event, "u1")

def test_expired_ban_allows_join(store, participation, hiking_event):
    """A ban in the past no longer blocks"""
    store.update(Collections.USERS, "u1", {
        "eventBanUntil": to_iso(datetime.now(timezone.utc) - timedelta(minutes=1)),
    })

    assert participation.join_event(hiking_event, "u1").participant.status == ParticipantStatus.JOINED

# -------- vote --------

def test_vote_requires_joined_participant_and_known_option(store, participation, hiking_event):
    """Voting before joining or for an unknown option is rejected"""
    option = _options(store, hiking_event)[0]
    with pytest.raises(NotFoundError):
        participation.submit_vote(hiking_event, "u1", option)

    participation.join_event(hiking_event, "u1")
    with pytest.raises(InvalidInputError):
        participation.submit_vote(hiking_event, "u1", "nowhere")

def test_same_vote_is_noop_and_switch_moves_one_unit(store, participation, hiking_event):
    """Resubmitting is free; switching keeps the submitted count"""
    _join_all(participation, hiking_event)
    first, second = _options(store, hiking_event)[:2]

    participation.submit_vote(hiking_event, "u1", first)
    again = participation.submit_vote(hiking_event, "u1", first)
    assert again.event.votes_submitted_count == 1
    assert again.event.venue_vote_totals[first] == 1

    switched = participation.submit_vote(hiking_event, "u1", second)
    assert switched.event.votes_submitted_count == 1
    assert switched.event.venue_vote_totals[first] == 0
    assert switched.event.venue_vote_totals[second] == 1
    assert switched.participant.vote_venue_option_id == second

def test_last_vote_finalizes_venue_and_opens_chat(store, participation, hiking_event):
    """Scenario: 3 votes beat 1 once every joined participant voted"""
    first = _options(store, hiking_event)[0]

    result = _finalize(store, participation, hiking_event)

    event = result.event
    assert event.votes_submitted_count == 4
    assert event.final_venue_option_id == first
    assert event.status == EventStatus.READY
    assert event.chat_room_id

    chat = store.get(Collections.GROUP_CHATS, event.chat_room_id)
    assert sorted(chat["participantIds"]) == list(MEMBERS)
    assert chat["venue"]["id"] == first
    assert EventRepo(store).get(hiking_event).status == EventStatus.READY

def test_no_finalization_until_everyone_voted(store, participation, hiking_event):
    """Three of four votes leave the venue open"""
    _join_all(participation, hiking_event)
    first = _options(store, hiking_event)[0]
    for user_id in ("u1", "u2", "u3"):
        result = participation.submit_vote(hiking_event, user_id, first)

    assert result.event.final_venue_option_id is None
    assert result.event.status == EventStatus.PENDING_JOIN

def test_final_venue_never_changes(store, participation, hiking_event):
    """Later vote switches move tallies but not the final choice"""
    _finalize(store, participation, hiking_event)
    first, second, third = _options(store, hiking_event)

    for user_id in ("u1", "u2", "u4"):
        result = participation.submit_vote(hiking_event, user_id, third)

    assert result.event.venue_vote_totals[third] == 3
    assert result.event.final_venue_option_id == first

# -------- confirm --------

def test_confirm_promotes_event_when_everyone_confirmed(store, participation, hiking_event):
    """The event becomes confirmed only with the last confirmation"""
    _finalize(store, participation, hiking_event)

    for user_id in ("u1", "u2", "u3"):
        partial = participation.respond_to_reminder(hiking_event, user_id, ReminderAction.CONFIRM)
    assert partial.event.status == EventStatus.READY
    assert partial.event.confirmations_received == 3

    final = participation.respond_to_reminder(hiking_event, "u4")
    assert final.event.status == EventStatus.CONFIRMED
    assert final.event.confirmations_received == 4
    assert final.participant.status == ParticipantStatus.CONFIRMED
    assert UserRepo(store).get("u4").assignment_for(hiking_event).status == AssignmentStatus.CONFIRMED

def test_confirm_requires_joined_or_confirmed(store, participation, hiking_event):
    """A pending participant cannot confirm"""
    participation.join_event(hiking_event, "u1")
    store.update(Collections.EVENTS, hiking_event, {
        "participantStatuses": {"u1": "pending_join", "u2": "pending_join", "u3": "pending_join", "u4": "pending_join"},
    })

    with pytest.raises(InvalidStateError):
        participation.respond_to_reminder(hiking_event, "u1", ReminderAction.CONFIRM)

def test_reminder_cancel_delegates_to_cancellation(store, participation, hiking_event):
    """action=cancel behaves like leaving"""
    participation.join_event(hiking_event, "u1")

    result = participation.respond_to_reminder(hiking_event, "u1", ReminderAction.CANCEL)

    assert result.participant.status == ParticipantStatus.CANCELED
    assert "u1" not in result.event.participant_user_ids

# -------- cancel --------

def test_cancel_removes_partner_sidelines_pair_and_backfills(store, participation, hiking_event, make_pair):
    """Scenario: U cancels a confirmed spot, V is removed, W's pair takes the slot"""
    _finalize(store, participation, hiking_event)
    participation.respond_to_reminder(hiking_event, "u1", ReminderAction.CONFIRM)
    replacement = make_pair("w1", "w2")

    result = participation.cancel_participation(hiking_event, "u1")

    assert result.participant.status == ParticipantStatus.CANCELED
    assert result.event.participant_statuses["u1"] == ParticipantStatus.CANCELED
    assert result.event.participant_statuses["u2"] == ParticipantStatus.REMOVED
    assert result.event.status == EventStatus.READY
    assert result.event.votes_submitted_count == 2
    assert result.event.confirmations_received == 0
    assert store.get(Collections.EVENT_PARTICIPANTS, f"{hiking_event}_u2")["status"] == "removed"

    freed = PairMatchRepo(store).get("u1:u2")
    assert freed.queue_status == QueueStatus.SIDELINED
    assert freed.status == PairMatchStatus.INACTIVE
    assert freed.pending_event_id is None

    event = EventRepo(store).get(hiking_event)
    assert event.final_venue_option_id == result.event.final_venue_option_id
    assert sorted(event.participant_user_ids) == ["u3", "u4", "w1", "w2"]
    assert event.pending_pair_match_ids == ["u3:u4", replacement.id]
    assert set(event.participant_user_ids) <= set(event.participant_statuses)

def test_cancel_reverses_both_votes(store, participation, hiking_event):
    """The canceller's and partner's tallies are taken back"""
    _join_all(participation, hiking_event)
    first, second = _options(store, hiking_event)[:2]
    participation.submit_vote(hiking_event, "u1", first)
    participation.submit_vote(hiking_event, "u2", second)
    participation.submit_vote(hiking_event, "u3", second)

    result = participation.cancel_participation(hiking_event, "u1")

    assert result.event.venue_vote_totals[first] == 0
    assert result.event.venue_vote_totals[second] == 1
    assert result.event.votes_submitted_count == 1
    assert result.event.status == EventStatus.PENDING_JOIN

def test_partner_bookkeeping_without_penalty(store, participation, hiking_event):
    """The removed partner's assignment is closed but their count is untouched"""
    _join_all(participation, hiking_event)

    participation.cancel_participation(hiking_event, "u2")

    users = UserRepo(store)
    canceller, partner = users.get("u2"), users.get("u1")
    assert canceller.event_cancel_count == 1
    assert partner.event_cancel_count == 0
    assert partner.assignment_for(hiking_event).status == AssignmentStatus.CANCELED
    assert hiking_event not in partner.joined_events
    assert hiking_event not in canceller.joined_events

def test_third_cancellation_bans_for_a_week(store, participation, hiking_event):
    """Count resets to zero with a 7-day ban; the next cancel starts over"""
    participation.join_event(hiking_event, "u1")
    store.update(Collections.USERS, "u1", {"eventCancelCount": 2})

    participation.cancel_participation(hiking_event, "u1")

    user = UserRepo(store).get("u1")
    assert user.event_cancel_count == 0
    ban_until = parse_timestamp(user.event_ban_until)
    expected = datetime.now(timezone.utc) + timedelta(days=7)
    assert abs((ban_until - expected).total_seconds()) < 60

    view = participation.get_assignments("u1")
    assert view.can_join is False

    participation.cancel_participation(hiking_event, "u1")
    again = UserRepo(store).get("u1")
    assert again.event_cancel_count == 1
    assert parse_timestamp(again.event_ban_until) == ban_until

def test_cancel_requires_participant_record(participation, hiking_event):
    """Never-joined users have nothing to cancel"""
    with pytest.raises(NotFoundError):
        participation.cancel_participation(hiking_event, "u1")

# -------- reads --------

def test_get_assignments(store, participation, hiking_event):
    """Assignments come back with their event and participant docs"""
    participation.join_event(hiking_event, "u1")
    user = UserRepo(store).get("u1")
    store.update(Collections.USERS, "u1", {
        "pendingEvents": [a.model_dump(by_alias=True, mode="json") for a in user.pending_events]
        + [{"eventId": "deleted-event", "eventType": "hiking", "status": "pending_join"}],
    })

    view = participation.get_assignments("u1")

    assert [item.event.id for item in view.assignments] == [hiking_event]
    assert view.assignments[0].participant.status == ParticipantStatus.JOINED
    assert view.pending_event_count == 2
    assert view.can_join is True

    response = view.to_response()
    assert response["canJoin"] is True
    assert response["assignments"][0]["event"]["id"] == hiking_event

def test_get_event_missing(participation):
    with pytest.raises(NotFoundError):
        participation.get_event("missing")

def test_cancel_clears_votes_on_both_participant_records(store, participation, hiking_event):
    """Reversed votes do not linger on the canceller or the removed partner"""
    _join_all(participation, hiking_event)
    first, second = _options(store, hiking_event)[:2]
    participation.submit_vote(hiking_event, "u1", first)
    participation.submit_vote(hiking_event, "u2", second)

    participation.cancel_participation(hiking_event, "u1")

    for user_id in ("u1", "u2"):
        doc = store.get(Collections.EVENT_PARTICIPANTS, f"{hiking_event}_{user_id}")
        assert doc["voteVenueOptionId"] is None
        assert doc["voteSubmittedAt"] is None

def test_rejoin_after_cancel_and_backfill_can_finalize(store, participation, pair_matching, hiking_event):
    """Cancel, re-queue the pair, backfill it into the same event, rejoin and vote"""
    _join_all(participation, hiking_event)
    first = _options(store, hiking_event)[0]
    participation.submit_vote(hiking_event, "u1", first)
    participation.cancel_participation(hiking_event, "u1")

    users = UserRepo(store)
    requeued = pair_matching.upsert_pair_match(users.get("u1"), users.get("u2"))
    assert requeued.queue_status == QueueStatus.QUEUED
    participation.orchestration.fill_event_vacancies(hiking_event)
    assert sorted(EventRepo(store).get(hiking_event).pending_pair_match_ids) == ["u1:u2", "u3:u4"]

    participation.join_event(hiking_event, "u1")
    participation.join_event(hiking_event, "u2")
    assert store.get(Collections.EVENT_PARTICIPANTS, f"{hiking_event}_u1")["voteVenueOptionId"] is None
    for user_id in MEMBERS:
        result = participation.submit_vote(hiking_event, user_id, first)

    assert result.event.votes_submitted_count == 4
    assert result.event.venue_vote_totals[first] == 4
    assert result.event.final_venue_option_id == first
    assert result.event.status == EventStatus.READY

def test_chat_provisioning_does_not_demote_status(store, participation, hiking_event, monkeypatch):
    """A status change committed while the chat is created is kept"""
    provision = participation.group_chats.create_or_update_chat_for_event

    def _provision_after_confirmation(event, participant_ids, final_venue=None):
        store.update(Collections.EVENTS, hiking_event, {"status": "confirmed"})
        return provision(event, participant_ids, final_venue)

    monkeypatch.setattr(participation.group_chats, "create_or_update_chat_for_event", _provision_after_confirmation)

    result = _finalize(store, participation, hiking_event)

    assert result.event.chat_room_id
    assert result.event.status == EventStatus.CONFIRMED
    assert EventRepo(store).get(hiking_event).status == EventStatus.CONFIRMED

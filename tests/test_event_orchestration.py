"""
Tests for queue processing and vacancy backfill
"""

from datetime import datetime, timedelta, timezone

from app.core.event_catalog import EVENT_TEMPLATES, EventCatalog
from app.schemas.enums import EventType, ParticipantStatus, QueueStatus
from app.services.document_store import Collections
from app.services.event_orchestration_service import (
    EventOrchestrationService,
    aggregate_suggested_times,
    slugify,
)
from app.services.repositories import EventRepo, PairMatchRepo, UserRepo
from app.utils.clock import parse_timestamp, to_iso
from conftest import future_date

def test_three_queued_pairs_make_one_event(store, make_pair, orchestration):
    """Scenario: groupSize 4 needs two pairs; the newest pair keeps waiting"""
    p1 = make_pair("u1", "u2")
    p2 = make_pair("u3", "u4")
    p3 = make_pair("u5", "u6")

    created = orchestration.process_queue_for_event_type(EventType.HIKING)

    assert len(created) == 1
    event = EventRepo(store).get(created[0])
    assert event.pending_pair_match_ids == [p1.id, p2.id]
    assert event.required_pair_count == 2
    assert sorted(event.participant_user_ids) == ["u1", "u2", "u3", "u4"]

    pairs = PairMatchRepo(store)
    for pair_id in (p1.id, p2.id):
        claimed = pairs.get(pair_id)
        assert claimed.queue_status == QueueStatus.IN_EVENT
        assert claimed.pending_event_id == created[0]
    leftover = pairs.get(p3.id)
    assert leftover.queue_status == QueueStatus.QUEUED
    assert leftover.pending_event_id is None

def test_batches_are_full_and_remainder_stays_queued(store, make_pair, orchestration):
    """N queued, R required: N // R events of R pairs, N % R left"""
    for i in range(7):
        make_pair(f"a{i}", f"b{i}")

    created = orchestration.process_queue_for_event_type(EventType.HIKING)

    assert len(created) == 3
    events = EventRepo(store)
    assert all(len(events.get(event_id).pending_pair_match_ids) == 2 for event_id in created)
    remaining = orchestration.pair_matching.get_queued_pairs_for_event_type(EventType.HIKING)
    assert len(remaining) == 1

def test_not_enough_pairs_creates_nothing(make_pair, orchestration):
    """One hiking pair waits for a second"""
    make_pair("u1", "u2")

    assert orchestration.process_queue_for_event_type(EventType.HIKING) == []

def test_event_payload(store, hiking_event):
    """Created event carries template details, venue options and suggested times"""
    event = EventRepo(store).get(hiking_event)

    assert event.title == "Canyon Sunrise Hike"
    assert event.event_type == EventType.HIKING
    assert event.auto_organized is True
    assert event.group_size == 4
    assert event.price_per_person == 15
    assert event.status.value == "pending_join"
    option_ids = [option.id for option in event.venue_options]
    assert len(option_ids) == 3
    assert option_ids[:2] == ["hiking-0-carbon-canyon-regional-park", "hiking-1-peters-canyon-regional-park"]
    assert option_ids[2].startswith("hiking-2-")
    assert event.venue_vote_totals == {option.id: 0 for option in event.venue_options}
    assert event.votes_submitted_count == 0
    assert event.final_venue_option_id is None
    assert set(event.participant_statuses.values()) == {ParticipantStatus.PENDING_JOIN}
    assert [(slot.date, slot.segments) for slot in event.suggested_times] == [
        (future_date(3), ["evening", "morning"]),
    ]

    tentative = parse_timestamp(event.date)
    expected = datetime.now(timezone.utc) + timedelta(days=7)
    assert abs((tentative - expected).total_seconds()) < 60

def test_users_receive_pending_assignment(store, hiking_event):
    """Every participant gets exactly one pending_join assignment"""
    users = UserRepo(store)
    for user_id in ("u1", "u2", "u3", "u4"):
        user = users.get(user_id)
        assert [item.event_id for item in user.pending_events] == [hiking_event]
        assert user.pending_events[0].status.value == "pending_join"
        assert user.pending_event_count == 1

def test_suggested_times_keep_five_earliest_dates():
    """Union by date, segments de-duplicated and sorted"""
    from app.schemas.pair_match import AvailabilityOverlapSegment, PairMatch

    def pair(pair_id, segments):
        return PairMatch(
            id=pair_id,
            pair_key=pair_id,
            user_ids=["x", "y"],
            queue_status=QueueStatus.QUEUED,
            availability_overlap_segments=[AvailabilityOverlapSegment(date=d, segments=s) for d, s in segments],
        )

    first = pair("p1", [("2025-10-20", ["morning", "evening"]), ("2025-10-25", ["night"]), ("2025-10-30", ["morning"])])
    second = pair("p2", [
        ("2025-10-20", ["evening", "afternoon"]),
        ("2025-10-18", ["morning"]),
        ("2025-10-21", ["night"]),
        ("2025-10-22", ["night"]),
    ])

    times = aggregate_suggested_times([first, second])

    assert [slot.date for slot in times] == ["2025-10-18", "2025-10-20", "2025-10-21", "2025-10-22", "2025-10-25"]
    assert times[1].segments == ["afternoon", "evening", "morning"]

def test_slugify():
    assert slugify("Dog Park @ Tri-City!") == "dog-park-tri-city"
    assert slugify("  Peters Canyon  ") == "peters-canyon"

def test_catalog_without_venues_uses_template_venue(store, make_pair):
    """A single-pair template and no venue list give one fallback option"""
    template = EVENT_TEMPLATES[0].model_copy(update={"group_size": 2})
    catalog = EventCatalog(templates=[template], venue_options={})
    orchestration = EventOrchestrationService(store, catalog)
    make_pair("u1", "u2", interests=("Coffee Date",))

    created = orchestration.process_queue_for_event_type(EventType.COFFEE)

    event = EventRepo(store).get(created[0])
    assert event.required_pair_count == 1
    assert [option.id for option in event.venue_options] == ["coffee-0-hidden-house-coffee"]

def test_type_without_template_uses_fallback(store, make_pair):
    """Restaurant pairs are sized by the catalog's first template"""
    catalog = EventCatalog(templates=[EVENT_TEMPLATES[0]])
    orchestration = EventOrchestrationService(store, catalog)

    assert orchestration.catalog.pairs_per_event(EventType.RESTAURANT) == 2

def test_process_all_queues_continues_after_failure(make_pair, orchestration, monkeypatch):
    """One failing type does not abort the others"""
    make_pair("u1", "u2")
    make_pair("u3", "u4")
    original = orchestration.pair_matching.get_queued_pairs_for_event_type

    def flaky(event_type):
        if event_type == EventType.BAR:
            raise RuntimeError("index missing")
        return original(event_type)

    monkeypatch.setattr(orchestration.pair_matching, "get_queued_pairs_for_event_type", flaky)

    created = orchestration.process_all_queues()

    assert created[EventType.BAR] == []
    assert len(created[EventType.HIKING]) == 1
    assert set(created) == set(EventType)

def _open_slot(store, event_id, pair_id):
    """Simulate a pair leaving so the event has one vacancy"""
    event = EventRepo(store).get(event_id)
    store.update(Collections.EVENTS, event_id, {
        "pendingPairMatchIds": [pid for pid in event.pending_pair_match_ids if pid != pair_id],
    })

def test_fill_vacancies_attaches_queued_pair(store, hiking_event, make_pair, orchestration):
    """A free slot is filled from the queue"""
    _open_slot(store, hiking_event, "u1:u2")
    replacement = make_pair("w1", "w2")

    orchestration.fill_event_vacancies(hiking_event)

    event = EventRepo(store).get(hiking_event)
    assert event.pending_pair_match_ids == ["u3:u4", replacement.id]
    assert event.participant_statuses["w1"] == ParticipantStatus.PENDING_JOIN
    assert "w2" in event.participant_user_ids
    assert PairMatchRepo(store).get(replacement.id).pending_event_id == hiking_event
    assert UserRepo(store).get("w1").pending_events[0].event_id == hiking_event

def test_fill_vacancies_never_exceeds_required(store, hiking_event, make_pair, orchestration):
    """Extra queued pairs stay queued once the event is full"""
    _open_slot(store, hiking_event, "u1:u2")
    make_pair("w1", "w2")
    make_pair("x1", "x2")

    orchestration.fill_event_vacancies(hiking_event)
    orchestration.fill_event_vacancies(hiking_event)

    event = EventRepo(store).get(hiking_event)
    assert len(event.pending_pair_match_ids) == event.required_pair_count == 2
    assert PairMatchRepo(store).get("x1:x2").queue_status == QueueStatus.QUEUED

def test_full_event_rejects_direct_assignment(store, hiking_event, make_pair, orchestration):
    """assign_pair_to_existing_event refuses when the event is full"""
    extra = make_pair("w1", "w2")

    assert orchestration.assign_pair_to_existing_event(hiking_event, EventType.HIKING, extra) is False

def test_fill_vacancies_skips_banned_and_double_booked_users(store, hiking_event, make_pair, make_user, orchestration):
    """Banned users and users already holding a hiking event are passed over"""
    _open_slot(store, hiking_event, "u1:u2")
    banned = make_pair("b1", "b2")
    store.update(Collections.USERS, "b1", {
        "eventBanUntil": to_iso(datetime.now(timezone.utc) + timedelta(days=2)),
    })
    busy = make_pair("c1", "c2")
    store.update(Collections.USERS, "c2", {
        "pendingEvents": [{"eventId": "other", "eventType": "hiking", "status": "joined"}],
    })
    good = make_pair("d1", "d2")

    orchestration.fill_event_vacancies(hiking_event)

    event = EventRepo(store).get(hiking_event)
    assert event.pending_pair_match_ids == ["u3:u4", good.id]
    pairs = PairMatchRepo(store)
    assert pairs.get(banned.id).queue_status == QueueStatus.QUEUED
    assert pairs.get(busy.id).queue_status == QueueStatus.QUEUED

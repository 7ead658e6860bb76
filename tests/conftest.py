"""
Shared fixtures: a SQL-backed document store on a throwaway SQLite database
"""

import pytest
from datetime import date, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.db import Base
from app.core.event_catalog import EventCatalog
from app.schemas.enums import EventType
from app.schemas.user import UserEventState
from app.services.document_store import Collections, SqlDocumentStore
from app.services.event_orchestration_service import EventOrchestrationService
from app.services.event_participation_service import EventParticipationService
from app.services.pair_matching_service import PairMatchingService

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_event_engine.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def future_date(days: int) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


@pytest.fixture
def store():
    """Create a fresh document store per test"""
    Base.metadata.create_all(bind=engine)
    try:
        yield SqlDocumentStore(TestingSessionLocal)
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def catalog():
    return EventCatalog()


@pytest.fixture
def pair_matching(store):
    return PairMatchingService(store)


@pytest.fixture
def orchestration(store, catalog, pair_matching):
    return EventOrchestrationService(store, catalog, pair_matching)


@pytest.fixture
def participation(store, orchestration):
    return EventParticipationService(store, orchestration)


@pytest.fixture
def make_user(store):
    """Write a user document; defaults give any two users enough shared availability"""
    def _make(user_id, interests=("Hiking",), availability=None, **fields):
        if availability is None:
            availability = {future_date(3): {"morning": True, "evening": True}}
        store.set(Collections.USERS, user_id, {
            "profile": {"interests": list(interests), "availability": availability},
            **fields,
        })
        return UserEventState.from_document(user_id, store.get(Collections.USERS, user_id))
    return _make


@pytest.fixture
def make_pair(make_user, pair_matching):
    """Create two users and their queued pair match"""
    def _make(user_a_id, user_b_id, interests=("Hiking",), availability=None):
        user_a = make_user(user_a_id, interests, availability)
        user_b = make_user(user_b_id, interests, availability)
        return pair_matching.upsert_pair_match(user_a, user_b)
    return _make


@pytest.fixture
def hiking_event(make_pair, orchestration):
    """A pending hiking event built from pairs (u1, u2) and (u3, u4)"""
    make_pair("u1", "u2")
    make_pair("u3", "u4")
    event_ids = orchestration.process_queue_for_event_type(EventType.HIKING)
    assert len(event_ids) == 1
    return event_ids[0]

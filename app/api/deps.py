"""
Request-scoped dependencies shared by the routers
"""

from fastapi import Depends, Request

from app.core.event_catalog import EventCatalog, default_catalog
from app.services.document_store import DocumentStore, get_document_store
from app.services.event_orchestration_service import EventOrchestrationService
from app.services.event_participation_service import EventParticipationService
from app.services.event_reminder_service import EventReminderService
from app.services.pair_matching_service import PairMatchingService
from app.utils.responses import rate_limit_error
from app.utils.security import get_client_ip, rate_limit_check

def get_store() -> DocumentStore:
    return get_document_store()

def get_catalog() -> EventCatalog:
    return default_catalog

def get_pair_matching_service(store: DocumentStore = Depends(get_store)) -> PairMatchingService:
    return PairMatchingService(store)

def get_orchestration_service(
    store: DocumentStore = Depends(get_store),
    catalog: EventCatalog = Depends(get_catalog),
) -> EventOrchestrationService:
    return EventOrchestrationService(store, catalog)

def get_participation_service(
    store: DocumentStore = Depends(get_store),
    orchestration: EventOrchestrationService = Depends(get_orchestration_service),
) -> EventParticipationService:
    return EventParticipationService(store, orchestration)

def get_reminder_service(store: DocumentStore = Depends(get_store)) -> EventReminderService:
    return EventReminderService(store)

def enforce_rate_limit(request: Request) -> None:
    if not rate_limit_check(get_client_ip(request)):
        rate_limit_error()

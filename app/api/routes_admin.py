"""
Admin API routes - requires authentication
"""

from fastapi import APIRouter, Depends

from app.api.deps import get_orchestration_service, get_pair_matching_service
from app.schemas.pair_match import PairMatchCreate
from app.services.event_orchestration_service import EventOrchestrationService
from app.services.pair_matching_service import PairMatchingService
from app.utils.responses import error_response, success_response
from app.utils.security import verify_admin_token

router = APIRouter()

@router.post("/pair-matches")
def upsert_pair_match(
    pair_data: PairMatchCreate,
    service: PairMatchingService = Depends(get_pair_matching_service),
    token: str = Depends(verify_admin_token)
):
    """Record (or recompute) the pair match for two mutually-liked users"""
    pair = service.upsert_pair_match_for_user_ids(pair_data.user_a_id, pair_data.user_b_id)
    return success_response(
        message=f"Pair match {pair.queue_status.value}",
        data=pair.to_response()
    )

@router.get("/users/{user_id}/pair-matches")
def list_user_pair_matches(
    user_id: str,
    service: PairMatchingService = Depends(get_pair_matching_service),
    token: str = Depends(verify_admin_token)
):
    """List a user's active pair matches, newest first"""
    pairs = service.get_pair_matches_for_user(user_id)
    return success_response(
        message=f"{len(pairs)} active pair match(es)",
        data=[pair.to_response() for pair in pairs]
    )

@router.post("/events/{event_id}/fill-vacancies")
def fill_event_vacancies(
    event_id: str,
    service: EventOrchestrationService = Depends(get_orchestration_service),
    token: str = Depends(verify_admin_token)
):
    """Backfill an event's open pair slots from the queue"""
    service.fill_event_vacancies(event_id)

    event = service.events.get(event_id)
    if not event:
        return error_response(
            message="Event not found",
            error_code="not_found",
            status_code=404
        )

    return success_response(
        message="Vacancy backfill complete",
        data={
            "eventId": event.id,
            "requiredPairCount": event.required_pair_count,
            "pendingPairMatchIds": event.pending_pair_match_ids,
            "participantUserIds": event.participant_user_ids,
        }
    )

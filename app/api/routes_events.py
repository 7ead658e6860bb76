"""
Participant-facing event routes.

The caller is identified by the X-User-Id header set by the upstream auth layer.
"""

from typing import Optional
from fastapi import APIRouter, Depends

from app.api.deps import enforce_rate_limit, get_participation_service
from app.schemas.enums import ReminderAction
from app.schemas.event import JoinRequest, ReminderResponseRequest, VoteRequest
from app.services.event_participation_service import EventParticipationService
from app.utils.responses import success_response
from app.utils.security import get_current_user_id

router = APIRouter(dependencies=[Depends(enforce_rate_limit)])

@router.get("/assignments/me")
def get_my_assignments(
    user_id: str = Depends(get_current_user_id),
    service: EventParticipationService = Depends(get_participation_service)
):
    """List the caller's event assignments"""
    view = service.get_assignments(user_id)
    return success_response(
        message="Assignments retrieved",
        data=view.to_response()
    )

@router.get("/{event_id}")
def get_event(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    service: EventParticipationService = Depends(get_participation_service)
):
    """Get event details"""
    event = service.get_event(event_id)
    return success_response(
        message="Event retrieved",
        data=event.to_response()
    )

@router.post("/{event_id}/join")
def join_event(
    event_id: str,
    join_data: Optional[JoinRequest] = None,
    user_id: str = Depends(get_current_user_id),
    service: EventParticipationService = Depends(get_participation_service)
):
    """Join an assigned event, optionally voting for a venue in the same call"""
    result = service.join_event(event_id, user_id)

    venue_option_id = join_data.venue_option_id if join_data else None
    if venue_option_id:
        result = service.submit_vote(event_id, user_id, venue_option_id)

    return success_response(
        message="Joined event and recorded vote" if venue_option_id else "Joined event",
        data=result.to_response()
    )

@router.post("/{event_id}/votes")
def vote_on_event(
    event_id: str,
    vote_data: VoteRequest,
    user_id: str = Depends(get_current_user_id),
    service: EventParticipationService = Depends(get_participation_service)
):
    """Vote for one of the event's venue options"""
    result = service.submit_vote(event_id, user_id, vote_data.venue_option_id)
    return success_response(
        message="Vote recorded",
        data=result.to_response()
    )

@router.post("/{event_id}/confirm")
def respond_to_reminder(
    event_id: str,
    response_data: Optional[ReminderResponseRequest] = None,
    user_id: str = Depends(get_current_user_id),
    service: EventParticipationService = Depends(get_participation_service)
):
    """Confirm attendance (or cancel) in response to the 48-hour reminder"""
    action = response_data.action if response_data else ReminderAction.CONFIRM
    result = service.respond_to_reminder(event_id, user_id, action)
    return success_response(
        message="Attendance confirmed" if action == ReminderAction.CONFIRM else "Participation canceled",
        data=result.to_response()
    )

@router.delete("/{event_id}/leave")
def leave_event(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    service: EventParticipationService = Depends(get_participation_service)
):
    """Cancel participation; the caller's pair partner is removed as well"""
    result = service.cancel_participation(event_id, user_id)
    return success_response(
        message="Left event",
        data=result.to_response()
    )

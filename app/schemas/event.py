"""
Event-related Pydantic schemas
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel

from app.schemas.common import CamelModel, DocumentModel
from app.schemas.enums import (
    AssignmentStatus,
    EventStatus,
    EventType,
    ParticipantStatus,
    ReminderAction,
)

class PriceRange(BaseModel):
    min: int
    max: int

class Coordinates(BaseModel):
    lat: float
    lng: float

class EventLocation(BaseModel):
    name: str
    address: str
    coordinates: Coordinates

class VenueOption(CamelModel):
    """One of up to three candidate venues participants vote on"""
    id: str
    name: str
    address: str
    coordinates: Coordinates
    description: Optional[str] = None
    photos: List[str] = []
    price_range: Optional[PriceRange] = None
    duration_minutes: Optional[int] = None
    additional_info: Optional[str] = None

class SuggestedTime(BaseModel):
    date: str
    segments: List[str]

class Organizer(BaseModel):
    id: str
    name: str

class Event(DocumentModel):
    """System-organized social event"""
    title: str
    description: str = ""
    category: str = "date_activity"
    event_type: Optional[EventType] = None
    date: Optional[str] = None
    location: Optional[EventLocation] = None
    photos: List[str] = []
    organizer: Optional[Organizer] = None
    group_size: Optional[int] = None
    price_per_person: Optional[int] = None
    age_range: Optional[Dict[str, int]] = None
    status: EventStatus = EventStatus.PENDING_JOIN
    auto_organized: bool = True
    pending_pair_match_ids: List[str] = []
    required_pair_count: int = 1
    participant_user_ids: List[str] = []
    participant_statuses: Dict[str, ParticipantStatus] = {}
    venue_options: List[VenueOption] = []
    venue_vote_totals: Dict[str, int] = {}
    votes_submitted_count: int = 0
    final_venue_option_id: Optional[str] = None
    suggested_times: List[SuggestedTime] = []
    chat_room_id: Optional[str] = None
    reminder_sent: bool = False
    reminder_sent_at: Optional[str] = None
    confirmations_received: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def venue_option(self, venue_option_id: Optional[str]) -> Optional[VenueOption]:
        if not venue_option_id:
            return None
        return next((option for option in self.venue_options if option.id == venue_option_id), None)

class EventParticipant(DocumentModel):
    """Per (event, user) record; source of truth for who voted for what"""
    event_id: str
    user_id: str
    status: ParticipantStatus
    vote_venue_option_id: Optional[str] = None
    vote_submitted_at: Optional[str] = None
    joined_at: Optional[str] = None
    confirmed_at: Optional[str] = None
    canceled_at: Optional[str] = None
    last_status_at: Optional[str] = None

def participant_doc_id(event_id: str, user_id: str) -> str:
    return f"{event_id}_{user_id}"

class PendingEventAssignment(CamelModel):
    """Per-user bookkeeping entry for one event"""
    event_id: str
    event_type: EventType
    status: AssignmentStatus
    assigned_at: Optional[str] = None
    updated_at: Optional[str] = None

class JoinRequest(CamelModel):
    venue_option_id: Optional[str] = None

class VoteRequest(CamelModel):
    venue_option_id: str

class ReminderResponseRequest(CamelModel):
    action: ReminderAction = ReminderAction.CONFIRM

class ParticipationResult(BaseModel):
    event: Event
    participant: EventParticipant

    def to_response(self) -> Dict[str, Any]:
        return {
            "event": self.event.to_response(),
            "participant": self.participant.to_response(),
        }

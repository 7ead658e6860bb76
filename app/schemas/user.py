"""
The slice of the external user document this service reads and writes
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field

from app.schemas.common import CamelModel
from app.schemas.enums import AssignmentStatus, EventType
from app.schemas.event import Event, EventParticipant, PendingEventAssignment
from app.utils.clock import parse_timestamp

class UserProfile(CamelModel):
    interests: List[str] = []
    availability: Dict[str, Any] = {}

class UserEventState(CamelModel):
    """Event bookkeeping fields on a user document; other fields are ignored"""
    id: str
    profile: UserProfile = Field(default_factory=UserProfile)
    pending_events: List[PendingEventAssignment] = []
    pending_event_count: int = 0
    joined_events: List[str] = []
    event_cancel_count: int = 0
    event_ban_until: Optional[Union[datetime, str]] = None

    @classmethod
    def from_document(cls, doc_id: str, data: Optional[Dict[str, Any]]):
        payload = dict(data or {})
        payload.pop("id", None)
        return cls.model_validate({**payload, "id": doc_id})

    def is_banned(self, now: datetime) -> bool:
        ban_until = parse_timestamp(self.event_ban_until)
        return ban_until is not None and ban_until > now

    def assignment_for(self, event_id: str) -> Optional[PendingEventAssignment]:
        return next((item for item in self.pending_events if item.event_id == event_id), None)

    def upsert_assignment(
        self,
        event_id: str,
        event_type: EventType,
        status: AssignmentStatus,
        now_iso: str,
    ) -> None:
        """Set the assignment for event_id, keeping its original assignedAt"""
        existing = self.assignment_for(event_id)
        if existing is not None:
            existing.event_type = event_type
            existing.status = status
            existing.updated_at = now_iso
        else:
            self.pending_events.append(
                PendingEventAssignment(
                    event_id=event_id,
                    event_type=event_type,
                    status=status,
                    assigned_at=now_iso,
                    updated_at=now_iso,
                )
            )
        self.pending_event_count = len(self.pending_events)

    def replace_assignment(self, assignment: PendingEventAssignment) -> None:
        """Drop any entry for the same event, then append"""
        self.pending_events = [
            item for item in self.pending_events if item.event_id != assignment.event_id
        ] + [assignment]
        self.pending_event_count = len(self.pending_events)

    def has_open_assignment_of_type(self, event_type: EventType, excluding_event_id: str) -> bool:
        return any(
            item.event_id != excluding_event_id
            and item.event_type == event_type
            and item.status in (AssignmentStatus.PENDING_JOIN, AssignmentStatus.JOINED)
            for item in self.pending_events
        )

class AssignmentView(BaseModel):
    assignment: PendingEventAssignment
    event: Event
    participant: Optional[EventParticipant] = None

class AssignmentsView(BaseModel):
    assignments: List[AssignmentView]
    pending_event_count: int
    can_join: bool

    def to_response(self) -> Dict[str, Any]:
        return {
            "assignments": [
                {
                    "assignment": item.assignment.model_dump(by_alias=True, mode="json"),
                    "event": item.event.to_response(),
                    "participant": item.participant.to_response() if item.participant else None,
                }
                for item in self.assignments
            ],
            "pendingEventCount": self.pending_event_count,
            "canJoin": self.can_join,
        }

"""
Pair match document schema
"""

from typing import List, Optional
from pydantic import BaseModel

from app.schemas.common import CamelModel, DocumentModel
from app.schemas.enums import EventType, PairMatchStatus, QueueStatus

class AvailabilityOverlapSegment(BaseModel):
    """Segments two users are both free for on one date"""
    date: str
    segments: List[str]

class PairMatch(DocumentModel):
    """Two mutually-liked users queued toward an event"""
    pair_key: str
    user_ids: List[str]
    status: PairMatchStatus = PairMatchStatus.ACTIVE
    queue_status: QueueStatus
    queue_event_type: Optional[EventType] = None
    suggested_event_type: Optional[EventType] = None
    shared_event_types: List[EventType] = []
    availability_overlap_count: int = 0
    availability_overlap_segments: List[AvailabilityOverlapSegment] = []
    availability_computed_at: Optional[str] = None
    has_sufficient_availability: bool = False
    pending_event_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_activity_at: Optional[str] = None

    def partner_of(self, user_id: str) -> Optional[str]:
        if user_id not in self.user_ids:
            return None
        return next((uid for uid in self.user_ids if uid != user_id), None)

class PairMatchCreate(CamelModel):
    """Admin request to record a mutual like between two users"""
    user_a_id: str
    user_b_id: str

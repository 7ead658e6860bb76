"""
Pydantic schemas package
"""

from .common import *
from .enums import *
from .event import *
from .pair_match import *
from .user import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "DocumentModel",
    "EventType",
    "EventStatus",
    "ParticipantStatus",
    "AssignmentStatus",
    "QueueStatus",
    "PairMatchStatus",
    "ReminderAction",
    "Event",
    "EventParticipant",
    "VenueOption",
    "PendingEventAssignment",
    "ParticipationResult",
    "PairMatch",
    "AvailabilityOverlapSegment",
    "UserEventState",
    "AssignmentsView",
]

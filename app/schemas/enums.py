"""
Status and category enums shared by pair matches, events and participants
"""

from enum import Enum


class EventType(str, Enum):
    COFFEE = "coffee"
    BAR = "bar"
    RESTAURANT = "restaurant"
    TENNIS = "tennis"
    DOG_WALKING = "dog_walking"
    HIKING = "hiking"


# Processing order for the orchestrator
EVENT_TYPES = [
    EventType.COFFEE,
    EventType.BAR,
    EventType.RESTAURANT,
    EventType.TENNIS,
    EventType.DOG_WALKING,
    EventType.HIKING,
]


class PairMatchStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class QueueStatus(str, Enum):
    AWAITING_AVAILABILITY = "awaiting_availability"
    AWAITING_EVENT_TYPE = "awaiting_event_type"
    QUEUED = "queued"
    IN_EVENT = "in_event"
    SIDELINED = "sidelined"


class EventStatus(str, Enum):
    PENDING_JOIN = "pending_join"
    READY = "ready"
    CONFIRMED = "confirmed"
    CANCELED = "canceled"
    # Only produced by manually created events outside the orchestration flow
    PUBLISHED = "published"


class ParticipantStatus(str, Enum):
    PENDING_JOIN = "pending_join"
    JOINED = "joined"
    CONFIRMED = "confirmed"
    CANCELED = "canceled"
    REMOVED = "removed"
    COMPLETED = "completed"


INACTIVE_PARTICIPANT_STATUSES = {ParticipantStatus.CANCELED, ParticipantStatus.REMOVED}


class AssignmentStatus(str, Enum):
    PENDING_JOIN = "pending_join"
    JOINED = "joined"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELED = "canceled"


class ReminderAction(str, Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"

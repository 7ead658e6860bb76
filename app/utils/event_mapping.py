"""
Interest to event type mapping
"""

from typing import Iterable, List

from app.schemas.enums import EventType

INTEREST_TO_EVENT_TYPE = {
    "Hiking": EventType.HIKING,
    "Dog Walking": EventType.DOG_WALKING,
    "Tennis": EventType.TENNIS,
    "Coffee Date": EventType.COFFEE,
    "Bars": EventType.BAR,
    "Restaurant": EventType.RESTAURANT,
}


def get_event_types_for_interests(interests: Iterable[str] = ()) -> List[EventType]:
    """Event types derivable from interests, de-duplicated in first-seen order"""
    event_types: List[EventType] = []
    for interest in interests or ():
        mapped = INTEREST_TO_EVENT_TYPE.get(interest)
        if mapped and mapped not in event_types:
            event_types.append(mapped)
    return event_types


def get_shared_event_types(
    interests_a: Iterable[str] = (),
    interests_b: Iterable[str] = (),
) -> List[EventType]:
    types_b = set(get_event_types_for_interests(interests_b))
    return [event_type for event_type in get_event_types_for_interests(interests_a) if event_type in types_b]

"""
Pure functions deriving Event fields from participant statuses and vote tallies.

Kept free of storage access so the state machine can be checked in isolation.
"""

from typing import Dict, List, Mapping, Optional

from app.schemas.enums import EventStatus, INACTIVE_PARTICIPANT_STATUSES, ParticipantStatus
from app.schemas.event import VenueOption

Statuses = Mapping[str, ParticipantStatus]


def confirmations_received(statuses: Statuses) -> int:
    return sum(1 for status in statuses.values() if status == ParticipantStatus.CONFIRMED)


def joined_count(statuses: Statuses) -> int:
    return sum(1 for status in statuses.values() if status == ParticipantStatus.JOINED)


def joined_user_ids(statuses: Statuses) -> List[str]:
    return [user_id for user_id, status in statuses.items() if status == ParticipantStatus.JOINED]


def active_statuses(statuses: Statuses) -> List[ParticipantStatus]:
    return [status for status in statuses.values() if status not in INACTIVE_PARTICIPANT_STATUSES]


def all_active_confirmed(statuses: Statuses) -> bool:
    active = active_statuses(statuses)
    return bool(active) and all(
        status in (ParticipantStatus.CONFIRMED, ParticipantStatus.COMPLETED) for status in active
    )


def derive_status_after_confirmation(current: EventStatus, statuses: Statuses) -> EventStatus:
    """Promote to confirmed once every active participant confirmed; never demote"""
    return EventStatus.CONFIRMED if all_active_confirmed(statuses) else current


def derive_status_after_cancellation(
    current: EventStatus,
    statuses: Statuses,
    final_venue_option_id: Optional[str],
) -> EventStatus:
    if not active_statuses(statuses):
        return EventStatus.PENDING_JOIN
    if all_active_confirmed(statuses):
        return EventStatus.CONFIRMED
    if final_venue_option_id:
        return EventStatus.READY
    return current


def should_finalize(final_venue_option_id: Optional[str], votes_submitted: int, statuses: Statuses) -> bool:
    joined = joined_count(statuses)
    return not final_venue_option_id and joined > 0 and votes_submitted >= joined


def pick_winning_venue(
    venue_options: List[VenueOption],
    vote_totals: Dict[str, int],
) -> Optional[str]:
    """Highest tally wins; ties go to the option listed first"""
    best_id: Optional[str] = None
    best_votes = -1
    for option in venue_options:
        votes = vote_totals.get(option.id, 0)
        if votes > best_votes:
            best_id, best_votes = option.id, votes
    return best_id


def remove_vote(vote_totals: Dict[str, int], venue_option_id: Optional[str]) -> bool:
    """Decrement a tally (floored at 0); returns whether a vote was removed"""
    if not venue_option_id:
        return False
    vote_totals[venue_option_id] = max(0, vote_totals.get(venue_option_id, 0) - 1)
    return True

"""
Weekly availability normalization and pairwise overlap
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from app.schemas.pair_match import AvailabilityOverlapSegment

SEGMENTS = ("morning", "afternoon", "evening", "night")

# Minimum shared segments before a pair can be queued for any event type
MIN_OVERLAP_SEGMENTS = 2


@dataclass
class AvailabilityOverlapResult:
    segments: List[AvailabilityOverlapSegment] = field(default_factory=list)
    total_segments: int = 0


def _parse_date(raw: str) -> Optional[date]:
    try:
        return date.fromisoformat(raw[:10])
    except (TypeError, ValueError):
        pass
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except (AttributeError, ValueError):
        return None


def normalize_availability_map(
    availability: Optional[Dict[str, Any]],
    today: Optional[date] = None,
) -> Dict[str, Dict[str, bool]]:
    """Drop past or unparseable dates, coerce flags to bool, key by ISO date."""
    if not availability:
        return {}

    today = today or date.today()
    normalized: Dict[str, Dict[str, bool]] = {}

    for raw_date, entry in availability.items():
        if not entry:
            continue
        parsed = _parse_date(str(raw_date))
        if parsed is None or parsed < today:
            continue

        normalized[parsed.isoformat()] = {
            **{segment: bool(entry.get(segment)) for segment in SEGMENTS},
            "blocked": bool(entry.get("blocked")),
        }

    return normalized


def compute_availability_overlap(
    availability_a: Optional[Dict[str, Any]],
    availability_b: Optional[Dict[str, Any]],
    today: Optional[date] = None,
) -> AvailabilityOverlapResult:
    if not availability_a or not availability_b:
        return AvailabilityOverlapResult()

    normalized_a = normalize_availability_map(availability_a, today)
    normalized_b = normalize_availability_map(availability_b, today)

    overlap: List[AvailabilityOverlapSegment] = []
    for date_key in sorted(normalized_a.keys() & normalized_b.keys()):
        entry_a = normalized_a[date_key]
        entry_b = normalized_b[date_key]
        if entry_a["blocked"] or entry_b["blocked"]:
            continue

        shared = [segment for segment in SEGMENTS if entry_a[segment] and entry_b[segment]]
        if shared:
            overlap.append(AvailabilityOverlapSegment(date=date_key, segments=shared))

    return AvailabilityOverlapResult(
        segments=overlap,
        total_segments=sum(len(item.segments) for item in overlap),
    )


def has_sufficient_availability(total_segments: int) -> bool:
    return total_segments >= MIN_OVERLAP_SEGMENTS

"""
Progress percentage and status classification for BOQ activities.

Progress is actual units over planned units, in percent, and is not capped:
over-performance (e.g. 120%) is reported as-is.

Status is the first matching rule, in this order:
    1. progress < 0.1 and no actual start  -> Not Started
    2. progress >= 100                     -> Completed
    3. progress < 50 and actual start      -> Delayed
    4. 50 <= progress < 100                -> On Track
    5. otherwise                           -> In Progress
"""
from enum import Enum
from typing import Dict, Iterable, Optional


NOT_STARTED_BELOW = 0.1
COMPLETED_AT = 100.0
ON_TRACK_FROM = 50.0


class ActivityStatus(Enum):
    """Report status of a BOQ activity."""
    NOT_STARTED = "Not Started"
    COMPLETED = "Completed"
    DELAYED = "Delayed"
    ON_TRACK = "On Track"
    IN_PROGRESS = "In Progress"


def calculate_progress(actual_units: float, planned_units: float) -> float:
    """Percent complete; 0 when nothing is planned, never negative."""
    if not planned_units or planned_units <= 0:
        return 0.0
    return max(0.0, (actual_units / planned_units) * 100)


def classify_status(progress: float, actual_start: Optional[str]) -> ActivityStatus:
    """Apply the fixed-priority status table."""
    started = bool(actual_start and str(actual_start).strip() and actual_start != 'N/A')

    if progress < NOT_STARTED_BELOW and not started:
        return ActivityStatus.NOT_STARTED
    if progress >= COMPLETED_AT:
        return ActivityStatus.COMPLETED
    if progress < ON_TRACK_FROM and started:
        return ActivityStatus.DELAYED
    if ON_TRACK_FROM <= progress < COMPLETED_AT:
        return ActivityStatus.ON_TRACK
    return ActivityStatus.IN_PROGRESS


def count_by_status(statuses: Iterable[ActivityStatus]) -> Dict[str, int]:
    """Status label -> count, with every label present."""
    counts = {status.value: 0 for status in ActivityStatus}
    for status in statuses:
        counts[status.value] += 1
    return counts

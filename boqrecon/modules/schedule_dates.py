"""
Planned/actual start and end dates per BOQ activity.

Each date is taken from the matching KPI records first (earliest date for a
start, latest for an end) and falls back to the activity's own date columns
when no KPI date resolves. An activity with no actual start never has an
actual end.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from ..config import get_config
from ..domain.entities import Activity, InputType, KPIRecord
from .dates import resolve_date, to_date
from .fields import is_blank
from .matching import MatchCache, resolve_cache

logger = logging.getLogger(__name__)


# Record date columns in order of preference for each derived date
PLANNED_START_FIELDS = ('activity_date', 'date')
PLANNED_END_FIELDS = ('target_date', 'activity_date', 'date')
ACTUAL_START_FIELDS = ('activity_date', 'date')
ACTUAL_END_FIELDS = ('actual_date', 'activity_date', 'target_date', 'date')


@dataclass(frozen=True)
class DateRange:
    """The four derived dates of an activity ('' when unknown)."""
    planned_start: str = ""
    planned_end: str = ""
    actual_start: str = ""
    actual_end: str = ""

    @property
    def has_started(self) -> bool:
        return bool(self.actual_start)


def _preferred_cell(record: KPIRecord, fields: Tuple[str, ...]) -> Any:
    """First populated date cell of the record in preference order."""
    null_tokens = get_config().date_null_tokens
    for name in fields:
        value = getattr(record, name, None)
        if is_blank(value):
            continue
        if str(value).strip() in null_tokens:
            continue
        return value
    return None


def _record_dates(records: Iterable[KPIRecord], fields: Tuple[str, ...]) -> List[date]:
    resolved = []
    for record in records:
        cell = _preferred_cell(record, fields)
        if cell is None:
            continue
        parsed = to_date(cell)
        if parsed is not None:
            resolved.append(parsed)
    return resolved


def _fallback(value: Any) -> str:
    return resolve_date(value) or ""


def _extract(
    activity: Activity,
    kpis: Sequence[KPIRecord],
    cache: Optional[MatchCache],
    kind: InputType,
    fields: Tuple[str, ...],
    latest: bool,
    fallback: Any,
    label: str,
) -> str:
    try:
        if len(kpis) > 0:
            records = resolve_cache(kpis, cache).matches(activity, kind)
            dates = _record_dates(records, fields)
            if dates:
                chosen = max(dates) if latest else min(dates)
                return chosen.isoformat()
        return _fallback(fallback)
    except Exception as e:
        logger.error(f"Error resolving {label} for '{activity.name}': {e}")
        return ""


def planned_start_date(
    activity: Activity,
    kpis: Sequence[KPIRecord],
    cache: Optional[MatchCache] = None,
) -> str:
    """Earliest Planned KPI date, else the activity's planned start."""
    return _extract(
        activity, kpis, cache, InputType.PLANNED, PLANNED_START_FIELDS,
        latest=False, fallback=activity.planned_start, label="planned start",
    )


def planned_end_date(
    activity: Activity,
    kpis: Sequence[KPIRecord],
    cache: Optional[MatchCache] = None,
) -> str:
    """Latest Planned KPI date, else the activity's deadline / planned completion."""
    return _extract(
        activity, kpis, cache, InputType.PLANNED, PLANNED_END_FIELDS,
        latest=True, fallback=activity.planned_end, label="planned end",
    )


def actual_start_date(
    activity: Activity,
    kpis: Sequence[KPIRecord],
    cache: Optional[MatchCache] = None,
) -> str:
    """Earliest Actual KPI date, else the activity's actual start."""
    return _extract(
        activity, kpis, cache, InputType.ACTUAL, ACTUAL_START_FIELDS,
        latest=False, fallback=activity.actual_start, label="actual start",
    )


def actual_end_date(
    activity: Activity,
    kpis: Sequence[KPIRecord],
    cache: Optional[MatchCache] = None,
    actual_start: Optional[str] = None,
) -> str:
    """
    Latest Actual KPI date, else the activity's actual completion.

    Empty whenever the actual start is empty. Deadline columns are never a
    fallback here: they are planned dates.
    """
    if actual_start is None:
        actual_start = actual_start_date(activity, kpis, cache)
    if not actual_start:
        return ""
    return _extract(
        activity, kpis, cache, InputType.ACTUAL, ACTUAL_END_FIELDS,
        latest=True, fallback=activity.actual_end, label="actual end",
    )


def date_range(
    activity: Activity,
    kpis: Sequence[KPIRecord],
    cache: Optional[MatchCache] = None,
) -> DateRange:
    """All four derived dates with a single partition of the KPI set."""
    cache = resolve_cache(kpis, cache)
    start = actual_start_date(activity, kpis, cache)
    return DateRange(
        planned_start=planned_start_date(activity, kpis, cache),
        planned_end=planned_end_date(activity, kpis, cache),
        actual_start=start,
        actual_end=actual_end_date(activity, kpis, cache, actual_start=start),
    )

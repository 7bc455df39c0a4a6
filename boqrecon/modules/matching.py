"""
Record Matcher - ties KPI records to the BOQ activity they report against.

A record belongs to an activity when, after normalization:
1. Names are equal or one contains the other (both non-empty)
2. Project codes agree under the 4-way rule (code/full code on either side)
3. Zones agree by extracted zone number (only when the activity has a zone)
4. The record kind matches, when a kind is requested

Every qualifying record is returned; there is no ranking. Unmatched records
are an expected steady state and are simply left out.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

from ..domain.entities import Activity, InputType, KPIRecord
from .normalize import normalize_code, zones_match

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchPartition:
    """Matched records for one activity, split by kind."""
    planned: Tuple[KPIRecord, ...] = ()
    actual: Tuple[KPIRecord, ...] = ()

    def of_kind(self, kind: Optional[InputType]) -> Tuple[KPIRecord, ...]:
        if kind is InputType.PLANNED:
            return self.planned
        if kind is InputType.ACTUAL:
            return self.actual
        return self.planned + self.actual


def names_match(activity_name: str, kpi_name: str) -> bool:
    """Equality or substring containment in either direction, on normalized names."""
    if not activity_name or not kpi_name:
        return False
    return (
        activity_name == kpi_name
        or activity_name in kpi_name
        or kpi_name in activity_name
    )


def _codes_equal(left: str, right: str) -> bool:
    return bool(left) and bool(right) and left == right


def projects_match(activity: Activity, record: KPIRecord) -> bool:
    """4-way project rule: either code of the record against either code of the activity."""
    act_code = normalize_code(activity.project_code)
    act_full = normalize_code(activity.project_full_code)
    kpi_code = normalize_code(record.project_code)
    kpi_full = normalize_code(record.project_full_code)
    return (
        _codes_equal(kpi_code, act_code)
        or _codes_equal(kpi_full, act_full)
        or _codes_equal(kpi_code, act_full)
        or _codes_equal(kpi_full, act_code)
    )


def record_matches(activity: Activity, record: KPIRecord, kind: Optional[InputType] = None) -> bool:
    """True if `record` reports progress against `activity`."""
    if kind is not None and record.kind is not kind:
        return False
    if not names_match(activity.normalized_name, record.normalized_name):
        return False
    if not projects_match(activity, record):
        return False
    return zones_match(activity.zone, record.normalized_zone)


def match(
    activity: Activity,
    kpis: Sequence[KPIRecord],
    kind: Union[InputType, str, None] = None,
) -> List[KPIRecord]:
    """
    Return every KPI record that reports against `activity`.

    Args:
        activity: BOQ activity
        kpis: Full KPI record collection
        kind: Optional InputType (or 'Planned'/'Actual', any case) filter

    Returns:
        Matching records in input order
    """
    if kind is not None and not isinstance(kind, InputType):
        parsed = InputType.parse(kind)
        if parsed is None:
            return []
        kind = parsed
    return [record for record in kpis if record_matches(activity, record, kind)]


def partition(activity: Activity, kpis: Sequence[KPIRecord]) -> MatchPartition:
    """Single scan of the KPI set, split into planned and actual matches."""
    planned: List[KPIRecord] = []
    actual: List[KPIRecord] = []
    for record in kpis:
        kind = record.kind
        if kind is None or not record_matches(activity, record):
            continue
        if kind is InputType.PLANNED:
            planned.append(record)
        else:
            actual.append(record)
    return MatchPartition(planned=tuple(planned), actual=tuple(actual))


class MatchCache:
    """
    Per-pass memo of activity -> MatchPartition.

    Keyed by the activity's normalized identity, so duplicate BOQ lines share
    one scan. Bound to a single KPI collection object: use for_kpis() to get
    a cache that is reset whenever the collection reference changes.
    """

    def __init__(self, kpis: Sequence[KPIRecord]):
        self.kpis = kpis
        self._partitions: Dict[tuple, MatchPartition] = {}
        self.hits = 0
        self.misses = 0

    def for_kpis(self, kpis: Sequence[KPIRecord]) -> "MatchCache":
        """Return self if bound to `kpis`, otherwise a fresh cache."""
        if kpis is self.kpis:
            return self
        logger.debug("KPI collection changed, discarding %d cached partitions", len(self))
        return MatchCache(kpis)

    def partition(self, activity: Activity) -> MatchPartition:
        key = activity.identity
        cached = self._partitions.get(key)
        if cached is not None:
            self.hits += 1
            return cached
        self.misses += 1
        result = partition(activity, self.kpis)
        self._partitions[key] = result
        return result

    def matches(self, activity: Activity, kind: Optional[InputType] = None) -> Tuple[KPIRecord, ...]:
        return self.partition(activity).of_kind(kind)

    def __len__(self) -> int:
        return len(self._partitions)


def resolve_cache(kpis: Sequence[KPIRecord], cache: Optional[MatchCache]) -> MatchCache:
    """Reuse `cache` when it is bound to `kpis`, else build one."""
    if cache is None:
        return MatchCache(kpis)
    return cache.for_kpis(kpis)

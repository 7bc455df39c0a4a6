"""
Reconciliation Module - BOQ activity report rows and totals.

For every activity in a report view this computes, from the KPI snapshot:
- actual units and earned value
- progress % and status
- planned/actual start and end dates

Totals are folded from the computed rows, so any rendered or exported
figure ties out exactly to the per-row values.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..domain.entities import Activity, KPIRecord
from .earned_value import actual_units, earned_value
from .matching import MatchCache, resolve_cache
from .progress import ActivityStatus, calculate_progress, classify_status, count_by_status
from .schedule_dates import DateRange, date_range

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActivityReportRow:
    """Derived figures for one activity. Never written back to the activity."""
    activity: Activity
    actual_units: float
    earned_value: float
    progress: float
    status: ActivityStatus
    dates: DateRange

    @property
    def planned_start(self) -> str:
        return self.dates.planned_start

    @property
    def planned_end(self) -> str:
        return self.dates.planned_end

    @property
    def actual_start(self) -> str:
        return self.dates.actual_start

    @property
    def actual_end(self) -> str:
        return self.dates.actual_end

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        activity = self.activity
        return {
            'activity_name': activity.name,
            'project_code': activity.project_code,
            'project_full_code': activity.project_full_code,
            'zone': activity.zone_display,
            'division': activity.division,
            'unit': activity.unit,
            'rate': activity.rate,
            'total_units': activity.total_units,
            'planned_units': activity.planned_units,
            'actual_units': self.actual_units,
            'total_value': activity.total_value,
            'planned_value': activity.planned_value,
            'earned_value': self.earned_value,
            'progress_pct': self.progress,
            'status': self.status.value,
            'planned_start_date': self.planned_start,
            'planned_end_date': self.planned_end,
            'actual_start_date': self.actual_start,
            'actual_end_date': self.actual_end,
        }


@dataclass
class ReportTotals:
    """Column sums over a set of report rows."""
    total_units: float = 0.0
    planned_units: float = 0.0
    actual_units: float = 0.0
    total_value: float = 0.0
    planned_value: float = 0.0
    earned_value: float = 0.0
    activity_count: int = 0

    def add(self, row: ActivityReportRow) -> None:
        activity = row.activity
        self.total_units += activity.total_units
        self.planned_units += activity.planned_units
        self.actual_units += row.actual_units
        self.total_value += activity.total_value
        self.planned_value += activity.planned_value
        self.earned_value += row.earned_value
        self.activity_count += 1

    def to_dict(self) -> Dict:
        return {
            'total_units': self.total_units,
            'planned_units': self.planned_units,
            'actual_units': self.actual_units,
            'total_value': self.total_value,
            'planned_value': self.planned_value,
            'earned_value': self.earned_value,
            'activity_count': self.activity_count,
        }


@dataclass
class ActivityReport:
    """Rows plus totals for one report pass."""
    rows: List[ActivityReportRow] = field(default_factory=list)
    totals: ReportTotals = field(default_factory=ReportTotals)

    @property
    def status_counts(self) -> Dict[str, int]:
        return count_by_status(row.status for row in self.rows)

    def to_dict(self) -> Dict:
        return {
            'rows': [row.to_dict() for row in self.rows],
            'totals': self.totals.to_dict(),
            'status_counts': self.status_counts,
        }


def compute_activity_row(
    activity: Activity,
    kpis: Sequence[KPIRecord],
    cache: Optional[MatchCache] = None,
) -> ActivityReportRow:
    """
    Compute every derived field for one activity.

    Each underlying calculation handles its own failures (cached value,
    0 or '' fallback), so this never raises for dirty records.
    """
    cache = resolve_cache(kpis, cache)

    units = actual_units(activity, kpis, cache)
    value = earned_value(activity, kpis, cache)
    dates = date_range(activity, kpis, cache)
    progress = calculate_progress(units, activity.planned_units)
    status = classify_status(progress, dates.actual_start)

    return ActivityReportRow(
        activity=activity,
        actual_units=units,
        earned_value=value,
        progress=progress,
        status=status,
        dates=dates,
    )


def compute_totals(rows: Sequence[ActivityReportRow]) -> ReportTotals:
    """Fold report rows into column totals."""
    totals = ReportTotals()
    for row in rows:
        totals.add(row)
    return totals


def compute_report(
    activities: Sequence[Activity],
    kpis: Sequence[KPIRecord],
    cache: Optional[MatchCache] = None,
) -> ActivityReport:
    """
    Compute the activity report for a snapshot.

    Args:
        activities: Activities in the report view, in display order
        kpis: Full KPI record collection
        cache: Optional match cache to reuse across calls on the same KPI set

    Returns:
        ActivityReport whose totals are the sum of its rows
    """
    cache = resolve_cache(kpis, cache)
    rows = [compute_activity_row(activity, kpis, cache) for activity in activities]
    totals = compute_totals(rows)

    logger.info(
        f"Computed report for {len(rows)} activities against {len(kpis)} KPI records "
        f"({len(cache)} distinct match keys)"
    )
    return ActivityReport(rows=rows, totals=totals)

"""
BOQ Activity / KPI reconciliation and earned-value engine.

Matches logged KPI progress records to contracted BOQ activities and derives
actual units, earned value, progress %, status and schedule dates per
activity, with report totals folded from the rows.
"""
from .domain.entities import Activity, InputType, KPIRecord, Snapshot
from .domain.exceptions import (
    DomainError, ConfigurationError, SnapshotLoadError,
    InvalidRecordError, UnknownProjectError,
)
from .modules.dates import resolve_date
from .modules.earned_value import actual_units, earned_value
from .modules.matching import MatchCache, match
from .modules.progress import ActivityStatus, calculate_progress, classify_status
from .modules.reconciliation import (
    ActivityReport, ActivityReportRow, ReportTotals,
    compute_activity_row, compute_report, compute_totals,
)
from .modules.schedule_dates import DateRange, date_range

__version__ = "1.0.0"

__all__ = [
    'Activity', 'InputType', 'KPIRecord', 'Snapshot',
    'DomainError', 'ConfigurationError', 'SnapshotLoadError',
    'InvalidRecordError', 'UnknownProjectError',
    'resolve_date',
    'actual_units', 'earned_value',
    'MatchCache', 'match',
    'ActivityStatus', 'calculate_progress', 'classify_status',
    'ActivityReport', 'ActivityReportRow', 'ReportTotals',
    'compute_activity_row', 'compute_report', 'compute_totals',
    'DateRange', 'date_range',
]

"""
Rollups Module - project and zone summaries over computed report rows.

Summaries are built from ActivityReportRow objects only; nothing here
re-derives actual units or earned value, so project and zone figures always
cross-foot to the report totals.
"""
import logging
from typing import Dict, List, Sequence

import pandas as pd

from .normalize import extract_zone_number
from .reconciliation import ActivityReport, ActivityReportRow

logger = logging.getLogger(__name__)


SUM_COLUMNS = [
    'total_units', 'planned_units', 'actual_units',
    'total_value', 'planned_value', 'earned_value',
]


def safe_divide(numerator: float, denominator: float) -> float:
    """Safe division that returns 0 on divide by zero."""
    if not denominator:
        return 0.0
    return numerator / denominator


def clamp_pct(value: float) -> float:
    """Clamp a percentage to [0, 100]."""
    return max(0.0, min(100.0, value))


def rows_to_frame(rows: Sequence[ActivityReportRow]) -> pd.DataFrame:
    """Flatten report rows into a DataFrame with grouping keys."""
    records = []
    for row in rows:
        activity = row.activity
        records.append({
            'project_code': activity.project_code,
            'project_full_code': activity.project_full_code or activity.project_code,
            'zone_key': extract_zone_number(activity.zone),
            'zone': activity.zone_display,
            'status': row.status.value,
            'total_units': activity.total_units,
            'planned_units': activity.planned_units,
            'actual_units': row.actual_units,
            'total_value': activity.total_value,
            'planned_value': activity.planned_value,
            'earned_value': row.earned_value,
        })
    columns = ['project_code', 'project_full_code', 'zone_key', 'zone', 'status'] + SUM_COLUMNS
    return pd.DataFrame(records, columns=columns)


def summarize_by_project(rows: Sequence[ActivityReportRow]) -> List[Dict]:
    """
    Totals per project full code with work-value progress.

    Returns list of dicts with:
    - project_full_code, project_code, activity_count
    - the six summed unit/value columns
    - planned_progress_pct: planned value / total value, clamped to [0, 100]
    - actual_progress_pct: earned value / total value, clamped to [0, 100]
    - variance_pct: actual - planned progress
    """
    df = rows_to_frame(rows)
    if df.empty:
        return []

    agg = df.groupby('project_full_code', sort=True).agg(
        project_code=('project_code', 'first'),
        activity_count=('status', 'count'),
        **{col: (col, 'sum') for col in SUM_COLUMNS}
    ).reset_index()

    summaries = []
    for _, row in agg.iterrows():
        planned_pct = clamp_pct(safe_divide(row['planned_value'], row['total_value']) * 100)
        actual_pct = clamp_pct(safe_divide(row['earned_value'], row['total_value']) * 100)
        summary = {
            'project_full_code': row['project_full_code'],
            'project_code': row['project_code'],
            'activity_count': int(row['activity_count']),
            'planned_progress_pct': planned_pct,
            'actual_progress_pct': actual_pct,
            'variance_pct': actual_pct - planned_pct,
        }
        for col in SUM_COLUMNS:
            summary[col] = float(row[col])
        summaries.append(summary)

    logger.debug(f"Summarized {len(df)} rows into {len(summaries)} projects")
    return summaries


def summarize_by_zone(rows: Sequence[ActivityReportRow]) -> List[Dict]:
    """
    Totals and activity counts per (project, zone number).

    Activities without a zone are grouped under an empty zone key.
    """
    df = rows_to_frame(rows)
    if df.empty:
        return []

    agg = df.groupby(['project_full_code', 'zone_key'], sort=True).agg(
        activity_count=('status', 'count'),
        **{col: (col, 'sum') for col in SUM_COLUMNS}
    ).reset_index()

    summaries = []
    for _, row in agg.iterrows():
        summary = {
            'project_full_code': row['project_full_code'],
            'zone_key': row['zone_key'],
            'activity_count': int(row['activity_count']),
            'progress_pct': safe_divide(row['actual_units'], row['planned_units']) * 100,
        }
        for col in SUM_COLUMNS:
            summary[col] = float(row[col])
        summaries.append(summary)
    return summaries


def validate_tie_outs(report: ActivityReport, tolerance: float = 1e-6) -> List[Dict]:
    """
    Check that project rollups cross-foot to the report totals.

    Returns list of validation results with pass/fail status.
    """
    projects = summarize_by_project(report.rows)
    totals = report.totals.to_dict()

    results = []
    for col in SUM_COLUMNS:
        rolled = sum(p[col] for p in projects)
        expected = totals[col]
        results.append({
            'name': f'Project rollup {col} = report total',
            'passed': abs(rolled - expected) <= tolerance * max(1.0, abs(expected)),
            'expected': expected,
            'actual': rolled,
            'difference': rolled - expected,
        })
    return results

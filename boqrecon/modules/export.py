"""
Export Module - tabular activity report for CSV/XLSX download.

One row per activity in report order, then a TOTAL row whose figures are the
report totals. Missing dates are written as 'N/A'; the Actual End Date of an
activity that has not started reads 'Not Started'.
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

from ..config import get_config
from .reconciliation import ActivityReport, ActivityReportRow

logger = logging.getLogger(__name__)


NOT_AVAILABLE = 'N/A'
NOT_STARTED = 'Not Started'
TOTAL_LABEL = 'TOTAL'

SUPPORTED_FORMATS = ('csv', 'xlsx')


def _date_cell(value: str) -> str:
    return value or NOT_AVAILABLE


def _actual_end_cell(row: ActivityReportRow) -> str:
    if not row.actual_start:
        return NOT_STARTED
    return row.actual_end or NOT_AVAILABLE


def export_row(row: ActivityReportRow) -> Dict:
    """Export cells for one activity, keyed by column header."""
    activity = row.activity
    return {
        'Activity Name': activity.name or NOT_AVAILABLE,
        'Project': activity.project_full_code or activity.project_code or NOT_AVAILABLE,
        'Zone': activity.zone_display,
        'Division': activity.division or NOT_AVAILABLE,
        'Unit': activity.unit or NOT_AVAILABLE,
        'Total Units': activity.total_units,
        'Planned Units': activity.planned_units,
        'Actual Units': row.actual_units,
        'Rate': activity.rate,
        'Total Value': activity.total_value,
        'Planned Value': activity.planned_value,
        'Earned Value': row.earned_value,
        'Progress %': row.progress,
        'Planned Start Date': _date_cell(row.planned_start),
        'Planned End Date': _date_cell(row.planned_end),
        'Actual Start Date': _date_cell(row.actual_start),
        'Actual End Date': _actual_end_cell(row),
        'Status': row.status.value,
    }


def totals_row(report: ActivityReport) -> Dict:
    """TOTAL row; text and per-row-only columns are left blank."""
    totals = report.totals
    return {
        'Activity Name': TOTAL_LABEL,
        'Project': '',
        'Zone': '',
        'Division': '',
        'Unit': '',
        'Total Units': totals.total_units,
        'Planned Units': totals.planned_units,
        'Actual Units': totals.actual_units,
        'Rate': '',
        'Total Value': totals.total_value,
        'Planned Value': totals.planned_value,
        'Earned Value': totals.earned_value,
        'Progress %': '',
        'Planned Start Date': '',
        'Planned End Date': '',
        'Actual Start Date': '',
        'Actual End Date': '',
        'Status': '',
    }


def build_export_rows(report: ActivityReport, include_totals: bool = True) -> List[Dict]:
    """Activity rows in report order, then the TOTAL row."""
    rows = [export_row(row) for row in report.rows]
    if include_totals:
        rows.append(totals_row(report))
    return rows


def export_columns() -> List[str]:
    """Configured export headers that the exporter knows how to fill."""
    known = set(totals_row(ActivityReport()))
    columns = []
    for column in get_config().export_columns:
        if column in known:
            columns.append(column)
        else:
            logger.warning(f"Ignoring unknown export column '{column}'")
    return columns


def report_to_dataframe(report: ActivityReport, include_totals: bool = True) -> pd.DataFrame:
    """Export rows as a DataFrame in configured column order."""
    columns = export_columns()
    return pd.DataFrame(build_export_rows(report, include_totals), columns=columns)


def write_report(
    report: ActivityReport,
    path: Union[str, Path],
    fmt: Optional[str] = None,
    include_totals: bool = True,
) -> Path:
    """
    Write the activity report to CSV or XLSX.

    Args:
        report: Computed activity report
        path: Output file path
        fmt: 'csv' or 'xlsx'; inferred from the file suffix when omitted

    Returns:
        Path written
    """
    path = Path(path)
    fmt = (fmt or path.suffix.lstrip('.')).lower()
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported export format '{fmt}' (expected one of {SUPPORTED_FORMATS})")

    df = report_to_dataframe(report, include_totals)
    if fmt == 'csv':
        df.to_csv(path, index=False)
    else:
        df.to_excel(path, index=False, sheet_name='Activities', engine='openpyxl')

    logger.info(f"Wrote {len(report.rows)} activity rows to {path}")
    return path

"""
ETL Module for BOQ/KPI reconciliation.
Loads BOQ activity and KPI exports (CSV or Excel) into raw row dicts and
snapshots. Column names are left as exported; the entities map them through
the configured aliases.
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

from ..domain.entities import Snapshot

logger = logging.getLogger(__name__)


PathLike = Union[str, Path]

EXCEL_SUFFIXES = ('.xlsx', '.xlsm', '.xls')


def read_table(path: PathLike, sheet_name: Optional[str] = None) -> pd.DataFrame:
    """
    Read a CSV or Excel export with every cell kept as-is.

    Cells are read as objects so codes like '007' and raw date text survive;
    Excel date cells arrive as Timestamps, which the date resolver accepts.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    if path.suffix.lower() in EXCEL_SUFFIXES:
        df = pd.read_excel(path, sheet_name=sheet_name or 0, dtype=object)
    else:
        df = pd.read_csv(path, encoding='utf-8-sig', dtype=object, keep_default_na=False)

    # Strip stray whitespace from headers
    df.columns = [str(c).strip() for c in df.columns]
    logger.debug(f"Read {len(df)} rows from {path.name}")
    return df


def frame_to_rows(df: pd.DataFrame) -> List[Dict]:
    """DataFrame -> list of raw row dicts, NaN cells mapped to None."""
    if df.empty:
        return []
    cleaned = df.astype(object).where(pd.notna(df), None)
    return cleaned.to_dict(orient='records')


def load_activity_rows(path: PathLike, sheet_name: Optional[str] = None) -> List[Dict]:
    """Load BOQ activity rows from a CSV or Excel export."""
    return frame_to_rows(read_table(path, sheet_name))


def load_kpi_rows(path: PathLike, sheet_name: Optional[str] = None) -> List[Dict]:
    """Load KPI rows from a CSV or Excel export."""
    return frame_to_rows(read_table(path, sheet_name))


def load_snapshot(
    activities_path: PathLike,
    kpis_path: Optional[PathLike] = None,
) -> Snapshot:
    """
    Build a snapshot from an activity export and an optional KPI export.

    Without a KPI file the KPI collection is empty, so reports fall back to
    the cached actual units / earned value on each activity.
    """
    activity_rows = load_activity_rows(activities_path)
    kpi_rows = load_kpi_rows(kpis_path) if kpis_path else []
    snapshot = Snapshot.from_rows(activity_rows, kpi_rows)
    logger.info(
        f"Loaded snapshot: {len(snapshot.activities)} activities, {len(snapshot.kpis)} KPI records"
    )
    return snapshot

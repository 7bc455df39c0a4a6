"""
Reports API Endpoints - BOQ activity report, rollups and diagnostics.

Implements:
- GET  /api/v1/reports/activities - Activity rows with totals and status counts
- GET  /api/v1/reports/projects   - Per-project rollup with work-value progress
- GET  /api/v1/reports/zones      - Per-zone totals
- GET  /api/v1/reports/unmatched  - KPI records no activity claims
- GET  /api/v1/reports/export     - CSV/XLSX download of the activity report
- POST /api/v1/reports/import     - Store raw activity/KPI rows
"""
import io
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ...domain.entities import Snapshot
from ...domain.exceptions import (
    DomainError, InvalidRecordError, SnapshotLoadError, UnknownProjectError,
)
from ...infrastructure.repositories import SnapshotRepository
from ...models import get_db
from ...modules.diagnostics import find_unmatched_records
from ...modules.export import report_to_dataframe
from ...modules.matching import projects_match
from ...modules.reconciliation import compute_report
from ...modules.rollups import summarize_by_project, summarize_by_zone

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Pydantic Models
# =============================================================================

class ActivityRowResponse(BaseModel):
    """One activity in the report."""
    activity_name: str
    project_code: str
    project_full_code: str
    zone: str
    division: str
    unit: str
    rate: float
    total_units: float
    planned_units: float
    actual_units: float
    total_value: float
    planned_value: float
    earned_value: float
    progress_pct: float
    status: str
    planned_start_date: str
    planned_end_date: str
    actual_start_date: str
    actual_end_date: str


class ReportTotalsResponse(BaseModel):
    """Column totals, folded from the rows."""
    total_units: float
    planned_units: float
    actual_units: float
    total_value: float
    planned_value: float
    earned_value: float
    activity_count: int


class ActivityReportResponse(BaseModel):
    """Full activity report."""
    rows: List[ActivityRowResponse]
    totals: ReportTotalsResponse
    status_counts: Dict[str, int]


class ProjectSummaryResponse(BaseModel):
    """Per-project rollup."""
    project_full_code: str
    project_code: str
    activity_count: int
    total_units: float
    planned_units: float
    actual_units: float
    total_value: float
    planned_value: float
    earned_value: float
    planned_progress_pct: float
    actual_progress_pct: float
    variance_pct: float


class ZoneSummaryResponse(BaseModel):
    """Per-zone totals within a project."""
    project_full_code: str
    zone_key: str
    activity_count: int
    total_units: float
    planned_units: float
    actual_units: float
    total_value: float
    planned_value: float
    earned_value: float
    progress_pct: float


class NameSuggestionResponse(BaseModel):
    activity_name: str
    score: float
    zone: str


class UnmatchedRecordResponse(BaseModel):
    """KPI record that contributes to no activity."""
    index: int
    activity_name: str
    project_code: str
    project_full_code: str
    zone: str
    input_type: str
    quantity: float
    reason: str
    suggestions: List[NameSuggestionResponse]


class ImportRequest(BaseModel):
    """Raw source rows, with any supported column spelling."""
    activities: List[Dict[str, Any]] = Field(default_factory=list)
    kpis: List[Dict[str, Any]] = Field(default_factory=list)
    replace: bool = False


class ImportResponse(BaseModel):
    activities_imported: int
    kpis_imported: int


# =============================================================================
# Dependencies / helpers
# =============================================================================

def get_snapshot_repository(db: Session = Depends(get_db)) -> SnapshotRepository:
    return SnapshotRepository(db)


def _http_error(e: DomainError) -> HTTPException:
    if isinstance(e, UnknownProjectError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, InvalidRecordError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(e, SnapshotLoadError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail={'code': e.code, 'message': e.message})


def _load(repo: SnapshotRepository, project_code: Optional[str]) -> Snapshot:
    try:
        snapshot = repo.load_snapshot(project_code)
        if project_code and not snapshot.activities:
            raise UnknownProjectError(project_code)
        return snapshot
    except DomainError as e:
        logger.warning(f"Report request failed: {e.message}")
        raise _http_error(e)


# =============================================================================
# Endpoints
# =============================================================================

@router.get(
    "/activities",
    response_model=ActivityReportResponse,
    summary="Get the BOQ activity report",
    description="Actual units, earned value, progress, status and dates per activity, with totals"
)
def get_activity_report(
    project_code: Optional[str] = Query(None, description="Short or full project code"),
    repo: SnapshotRepository = Depends(get_snapshot_repository),
):
    """Get the activity report."""
    snapshot = _load(repo, project_code)
    return compute_report(snapshot.activities, snapshot.kpis).to_dict()


@router.get(
    "/projects",
    response_model=List[ProjectSummaryResponse],
    summary="Get per-project rollups",
    description="Unit/value totals and work-value progress per project full code"
)
def get_project_rollup(
    repo: SnapshotRepository = Depends(get_snapshot_repository),
):
    """Get project rollups."""
    snapshot = _load(repo, None)
    report = compute_report(snapshot.activities, snapshot.kpis)
    return summarize_by_project(report.rows)


@router.get(
    "/zones",
    response_model=List[ZoneSummaryResponse],
    summary="Get per-zone totals"
)
def get_zone_breakdown(
    project_code: Optional[str] = Query(None, description="Short or full project code"),
    repo: SnapshotRepository = Depends(get_snapshot_repository),
):
    """Get zone breakdown."""
    snapshot = _load(repo, project_code)
    report = compute_report(snapshot.activities, snapshot.kpis)
    return summarize_by_zone(report.rows)


@router.get(
    "/unmatched",
    response_model=List[UnmatchedRecordResponse],
    summary="List unmatched KPI records",
    description="KPI records no activity claims, with closest activity-name suggestions"
)
def get_unmatched_records(
    project_code: Optional[str] = Query(None, description="Short or full project code"),
    min_score: Optional[float] = Query(None, ge=0, le=100),
    repo: SnapshotRepository = Depends(get_snapshot_repository),
):
    """Get unmatched KPI records."""
    snapshot = _load(repo, project_code)
    kpis = snapshot.kpis
    if project_code:
        # Only records that belong to one of the scoped activities' projects
        kpis = tuple(
            k for k in kpis
            if any(projects_match(a, k) for a in snapshot.activities)
        )
    unmatched = find_unmatched_records(snapshot.activities, kpis, min_score=min_score)
    return [u.to_dict() for u in unmatched]


@router.get(
    "/export",
    summary="Download the activity report",
    description="CSV or XLSX with one row per activity and a TOTAL row"
)
def export_activity_report(
    project_code: Optional[str] = Query(None, description="Short or full project code"),
    format: str = Query("csv", pattern="^(csv|xlsx)$"),
    repo: SnapshotRepository = Depends(get_snapshot_repository),
):
    """Download the activity report."""
    snapshot = _load(repo, project_code)
    report = compute_report(snapshot.activities, snapshot.kpis)
    df = report_to_dataframe(report)

    filename = f"activities_{project_code or 'all'}.{format}"
    if format == "csv":
        buffer = io.StringIO()
        df.to_csv(buffer, index=False)
        content = io.BytesIO(buffer.getvalue().encode("utf-8"))
        media_type = "text/csv"
    else:
        content = io.BytesIO()
        df.to_excel(content, index=False, sheet_name="Activities", engine="openpyxl")
        content.seek(0)
        media_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

    return StreamingResponse(
        content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "/import",
    response_model=ImportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Import raw activity and KPI rows"
)
def import_rows(
    payload: ImportRequest,
    repo: SnapshotRepository = Depends(get_snapshot_repository),
):
    """Store raw rows for later reports."""
    try:
        activities, kpis = repo.import_snapshot(
            payload.activities, payload.kpis, replace=payload.replace
        )
    except DomainError as e:
        logger.warning(f"Import failed: {e.message}")
        raise _http_error(e)
    return ImportResponse(activities_imported=activities, kpis_imported=kpis)

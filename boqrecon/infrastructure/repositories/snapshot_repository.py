"""
Snapshot Repository - loads and imports the activity/KPI snapshot.

A snapshot is read once per report pass; later changes to the store are
only seen by the next load.
"""
import logging
from typing import Iterable, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from ...domain.entities import Activity, KPIRecord, Snapshot
from ...domain.exceptions import InvalidRecordError
from ...models import BOQActivityEntity, KPIRecordEntity, dump_raw
from ..retry import RetryPolicy
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ActivityRepository(BaseRepository[BOQActivityEntity]):
    """Repository for stored BOQ activities."""

    def __init__(self, session: Session):
        super().__init__(session, BOQActivityEntity)

    def get_for_project(self, project_code: str) -> List[BOQActivityEntity]:
        return self.session.query(BOQActivityEntity).filter(
            self._project_filter(project_code)
        ).order_by(BOQActivityEntity.id).all()


class KPIRecordRepository(BaseRepository[KPIRecordEntity]):
    """
    Repository for stored KPI records.

    No project-scoped read: the matcher applies the project rule to every
    record, so project-scoped loads keep all KPIs.
    """

    def __init__(self, session: Session):
        super().__init__(session, KPIRecordEntity)


def _require_mapping(row, record_type: str, index: int) -> Mapping:
    if not isinstance(row, Mapping):
        raise InvalidRecordError(record_type, index, f"expected a mapping, got {type(row).__name__}")
    return row


class SnapshotRepository:
    """
    Storage boundary for report snapshots.

    Usage:
        repo = SnapshotRepository(db)
        snapshot = repo.load_snapshot(project_code='P5066')
    """

    def __init__(self, session: Session, retry_policy: Optional[RetryPolicy] = None):
        self.session = session
        self.activities = ActivityRepository(session)
        self.kpis = KPIRecordRepository(session)
        self.retry_policy = retry_policy or RetryPolicy.from_config()

    # =========================================================================
    # Load
    # =========================================================================

    def _read(self, project_code: Optional[str]) -> Snapshot:
        if project_code:
            activity_rows = self.activities.get_for_project(project_code)
        else:
            activity_rows = self.activities.get_all()
        # KPI records stay whole: the matcher applies the project rule itself.
        kpi_rows = self.kpis.get_all()

        return Snapshot(
            activities=tuple(Activity.from_raw(e.raw_row()) for e in activity_rows),
            kpis=tuple(KPIRecord.from_raw(e.raw_row()) for e in kpi_rows),
        )

    def load_snapshot(self, project_code: Optional[str] = None) -> Snapshot:
        """
        Load an immutable snapshot, optionally scoped to one project.

        Raises:
            SnapshotLoadError: When the store stays unreachable after retries
        """
        def attempt() -> Snapshot:
            try:
                return self._read(project_code)
            except Exception:
                self.session.rollback()
                raise

        snapshot = self.retry_policy.run(attempt, description="Snapshot load")
        logger.info(
            f"Loaded snapshot: {len(snapshot.activities)} activities, "
            f"{len(snapshot.kpis)} KPI records"
            + (f" (project {project_code})" if project_code else "")
        )
        return snapshot

    # =========================================================================
    # Import
    # =========================================================================

    def _activity_entities(self, rows: Iterable[Mapping]) -> List[BOQActivityEntity]:
        entities = []
        for index, row in enumerate(rows):
            activity = Activity.from_raw(_require_mapping(row, "activity", index))
            entities.append(BOQActivityEntity(
                activity_name=activity.name,
                project_code=activity.project_code,
                project_full_code=activity.project_full_code,
                zone_ref=activity.zone_ref,
                zone_number=activity.zone_number,
                raw_json=dump_raw(row),
            ))
        return entities

    def _kpi_entities(self, rows: Iterable[Mapping]) -> List[KPIRecordEntity]:
        # Unknown input types are stored; the report never counts them.
        entities = []
        for index, row in enumerate(rows):
            record = KPIRecord.from_raw(_require_mapping(row, "kpi", index))
            entities.append(KPIRecordEntity(
                activity_name=record.activity_name,
                project_code=record.project_code,
                project_full_code=record.project_full_code,
                zone=record.zone,
                input_type=record.input_type,
                raw_json=dump_raw(row),
            ))
        return entities

    def import_snapshot(
        self,
        activities: Optional[Iterable[Mapping]] = None,
        kpis: Optional[Iterable[Mapping]] = None,
        replace: bool = False,
    ) -> Tuple[int, int]:
        """
        Store raw activity and KPI rows in a single transaction.

        Either both tables change or neither does. A side passed as None is
        left untouched, even with `replace`.

        Args:
            activities: Source activity rows with any supported column spelling
            kpis: Source KPI rows
            replace: Delete the existing rows of each given side first

        Returns:
            (activities stored, KPI records stored)

        Raises:
            InvalidRecordError: When a row is not a mapping; nothing is written
        """
        activity_entities = self._activity_entities(activities) if activities is not None else None
        kpi_entities = self._kpi_entities(kpis) if kpis is not None else None

        try:
            if activity_entities is not None:
                if replace:
                    self.activities.delete_all()
                self.activities.add_all(activity_entities)
            if kpi_entities is not None:
                if replace:
                    self.kpis.delete_all()
                self.kpis.add_all(kpi_entities)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        activity_count = len(activity_entities or [])
        kpi_count = len(kpi_entities or [])
        logger.info(f"Imported {activity_count} activities and {kpi_count} KPI records")
        return activity_count, kpi_count


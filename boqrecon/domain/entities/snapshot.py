"""
Snapshot - the immutable (activities, KPI records) pair a report runs on.
"""
from dataclasses import dataclass
from typing import Iterable, Mapping, Tuple

from .activity import Activity
from .kpi_record import KPIRecord


@dataclass(frozen=True)
class Snapshot:
    """Both collections as loaded at report-open time."""
    activities: Tuple[Activity, ...] = ()
    kpis: Tuple[KPIRecord, ...] = ()

    @classmethod
    def from_rows(
        cls,
        activity_rows: Iterable[Mapping],
        kpi_rows: Iterable[Mapping],
    ) -> "Snapshot":
        """Build a snapshot from raw source rows."""
        return cls(
            activities=tuple(Activity.from_raw(row) for row in activity_rows),
            kpis=tuple(KPIRecord.from_raw(row) for row in kpi_rows),
        )

    def for_project(self, project_code: str) -> "Snapshot":
        """
        Narrow the activities to one project (short or full code).

        KPI records are kept whole: the matcher applies its own project rule.
        """
        code = (project_code or '').strip().upper()
        activities = tuple(
            a for a in self.activities
            if code in (a.project_code.strip().upper(), a.project_full_code.strip().upper())
        )
        return Snapshot(activities=activities, kpis=self.kpis)

    @property
    def is_empty(self) -> bool:
        return not self.activities and not self.kpis

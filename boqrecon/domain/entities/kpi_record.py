"""
KPI Record Entity - a logged Planned target or Actual achievement.

Records arrive loosely structured; construction reads every field through
the alias map and never raises, so a malformed row degrades to blanks/zeros
instead of aborting the import.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ...config import get_config
from ...modules.fields import first_present, read_number, read_text
from ...modules.normalize import normalize_name, normalize_zone


class InputType(Enum):
    """KPI record kind."""
    PLANNED = "Planned"
    ACTUAL = "Actual"

    @classmethod
    def parse(cls, value) -> Optional["InputType"]:
        """Case-insensitive lookup; None for anything unrecognized."""
        if isinstance(value, cls):
            return value
        text = str(value or '').strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return None


@dataclass(frozen=True)
class KPIRecord:
    """
    Progress log entry.

    Attributes:
        activity_name: Activity the entry reports against (free text)
        project_code / project_full_code: Project keys
        zone: Zone label as entered (may carry a project-code prefix)
        input_type: 'Planned' or 'Actual' as entered
        quantity: Reported quantity
        value: Direct monetary figure, None when absent
        actual_value: Secondary monetary figure, None when absent
        activity_date / target_date / actual_date / date: Raw date cells
        raw: Original source row
    """

    activity_name: str = ""
    project_code: str = ""
    project_full_code: str = ""
    zone: str = ""
    input_type: str = ""
    quantity: float = 0.0
    value: Any = None
    actual_value: Any = None
    activity_date: Any = None
    target_date: Any = None
    actual_date: Any = None
    date: Any = None
    raw: Mapping = field(default_factory=dict, compare=False, hash=False, repr=False)

    @classmethod
    def from_raw(cls, row: Mapping) -> "KPIRecord":
        """Build a KPIRecord from a source row using the configured aliases."""
        config = get_config()

        def text(name: str) -> str:
            return read_text(row, config.get_kpi_aliases(name))

        def cell(name: str) -> Any:
            return first_present(row, config.get_kpi_aliases(name))

        return cls(
            activity_name=text("activity_name"),
            project_code=text("project_code"),
            project_full_code=text("project_full_code"),
            zone=text("zone"),
            input_type=text("input_type"),
            quantity=read_number(row, config.get_kpi_aliases("quantity")),
            value=cell("value"),
            actual_value=cell("actual_value"),
            activity_date=cell("activity_date"),
            target_date=cell("target_date"),
            actual_date=cell("actual_date"),
            date=cell("date"),
            raw=dict(row) if row is not None else {},
        )

    @property
    def kind(self) -> Optional[InputType]:
        return InputType.parse(self.input_type)

    @property
    def normalized_name(self) -> str:
        return normalize_name(self.activity_name)

    @property
    def normalized_zone(self) -> str:
        return normalize_zone(self.zone, self.project_code)

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        return {
            'activity_name': self.activity_name,
            'project_code': self.project_code,
            'project_full_code': self.project_full_code,
            'zone': self.zone,
            'input_type': self.input_type,
            'quantity': self.quantity,
            'value': self.value,
            'actual_value': self.actual_value,
            'activity_date': self.activity_date,
            'target_date': self.target_date,
            'actual_date': self.actual_date,
            'date': self.date,
        }

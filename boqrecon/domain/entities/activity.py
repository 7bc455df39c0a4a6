"""
Activity Entity - a contracted BOQ (Bill of Quantities) line item.

Activities are read-only inputs to a report pass. Derived figures (actual
units, earned value, progress, status, dates) are never written back here.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from ...config import get_config
from ...modules.fields import read_number, read_optional_number, read_text
from ...modules.normalize import extract_zone_number, normalize_code, normalize_name, normalize_zone


@dataclass(frozen=True)
class Activity:
    """
    BOQ activity line item.

    Attributes:
        name: Activity name as written in the BOQ
        project_code: Short project code (e.g., 'P5066')
        project_full_code: Full project code (e.g., 'P5066-R4'); falls back to project_code
        zone_ref: Zone reference label
        zone_number: Zone number label
        rate: Contract rate per unit
        total_units / planned_units: Contracted and planned quantities
        total_value / planned_value: Contracted and planned amounts
        actual_units / earned_value: Cached upstream figures, last-resort fallback only
        planned_start / planned_end / actual_start / actual_end: Raw activity-level dates
        raw: Original source row
    """

    name: str = ""
    project_code: str = ""
    project_full_code: str = ""
    zone_ref: str = ""
    zone_number: str = ""
    unit: str = ""
    division: str = ""
    rate: float = 0.0
    total_units: float = 0.0
    planned_units: float = 0.0
    total_value: float = 0.0
    planned_value: float = 0.0
    actual_units: Optional[float] = None
    earned_value: Optional[float] = None
    planned_start: Any = None
    planned_end: Any = None
    actual_start: Any = None
    actual_end: Any = None
    raw: Mapping = field(default_factory=dict, compare=False, hash=False, repr=False)

    @classmethod
    def from_raw(cls, row: Mapping) -> "Activity":
        """Build an Activity from a source row using the configured aliases."""
        config = get_config()

        def text(name: str) -> str:
            return read_text(row, config.get_activity_aliases(name))

        def number(name: str) -> float:
            return read_number(row, config.get_activity_aliases(name))

        def raw_value(name: str) -> Any:
            aliases = config.get_activity_aliases(name)
            value = read_text(row, aliases)
            return value or None

        project_code = text("project_code")
        return cls(
            name=text("name"),
            project_code=project_code,
            project_full_code=text("project_full_code") or project_code,
            zone_ref=text("zone_ref"),
            zone_number=text("zone_number"),
            unit=text("unit"),
            division=text("division"),
            rate=number("rate"),
            total_units=number("total_units"),
            planned_units=number("planned_units"),
            total_value=number("total_value"),
            planned_value=number("planned_value"),
            actual_units=read_optional_number(row, config.get_activity_aliases("actual_units")),
            earned_value=read_optional_number(row, config.get_activity_aliases("earned_value")),
            planned_start=raw_value("planned_start"),
            planned_end=raw_value("planned_end"),
            actual_start=raw_value("actual_start"),
            actual_end=raw_value("actual_end"),
            raw=dict(row) if row is not None else {},
        )

    # =========================================================================
    # Matching keys
    # =========================================================================

    @property
    def normalized_name(self) -> str:
        return normalize_name(self.name)

    @property
    def zone(self) -> str:
        """Normalized zone: zone number first, zone ref otherwise, code prefix removed."""
        zone_value = self.zone_number or self.zone_ref
        return normalize_zone(zone_value, self.project_code)

    @property
    def zone_key(self) -> str:
        return extract_zone_number(self.zone)

    @property
    def identity(self) -> tuple:
        """Everything the matcher looks at, in normalized form."""
        return (
            self.normalized_name,
            normalize_code(self.project_code),
            normalize_code(self.project_full_code),
            self.zone,
            self.zone_key,
        )

    @property
    def cached_actual_units(self) -> float:
        return self.actual_units or 0.0

    @property
    def cached_earned_value(self) -> float:
        return self.earned_value or 0.0

    @property
    def zone_display(self) -> str:
        """Zone label for reports: 'Zone Ref - Zone Number' or 'N/A'."""
        if self.zone_ref and self.zone_ref.lower() not in get_config().no_zone_labels:
            if self.zone_number:
                return f"{self.zone_ref} - {self.zone_number}"
            return self.zone_ref
        return self.zone_number or 'N/A'

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        return {
            'name': self.name,
            'project_code': self.project_code,
            'project_full_code': self.project_full_code,
            'zone_ref': self.zone_ref,
            'zone_number': self.zone_number,
            'unit': self.unit,
            'division': self.division,
            'rate': self.rate,
            'total_units': self.total_units,
            'planned_units': self.planned_units,
            'total_value': self.total_value,
            'planned_value': self.planned_value,
            'actual_units': self.actual_units,
            'earned_value': self.earned_value,
        }

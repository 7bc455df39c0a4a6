"""
Configuration loader for the BOQ/KPI reconciliation engine.

Loads settings from recon_config.yaml and provides typed access
to all configuration sections.
"""
from pathlib import Path
from typing import Any, Optional
from functools import lru_cache

import yaml

from .domain.exceptions import ConfigurationError


# Default config ships inside the package
DEFAULT_CONFIG_PATH = Path(__file__).parent / "recon_config.yaml"

DEFAULT_ACTIVITY_ALIASES = {
    "name": ["activity_name", "Activity Name", "activity", "Activity"],
    "project_code": ["project_code", "Project Code"],
    "project_full_code": ["project_full_code", "Project Full Code"],
    "zone_ref": ["zone_ref", "Zone Ref"],
    "zone_number": ["zone_number", "Zone Number", "Zone #"],
    "unit": ["unit", "Unit"],
    "division": ["activity_division", "Activity Division", "Division"],
    "rate": ["rate", "Rate"],
    "total_units": ["total_units", "Total Units"],
    "planned_units": ["planned_units", "Planned Units"],
    "total_value": ["total_value", "Total Value"],
    "planned_value": ["planned_value", "Planned Value"],
    "actual_units": ["actual_units", "Actual Units"],
    "earned_value": ["earned_value", "Earned Value"],
    "planned_start": [
        "planned_activity_start_date", "activity_planned_start_date",
        "Planned Activity Start Date", "Planned Start Date", "Activity Planned Start Date",
    ],
    "planned_end": [
        "deadline", "activity_planned_completion_date",
        "Deadline", "Planned Completion Date", "Activity Planned Completion Date",
    ],
    "actual_start": [
        "actual_start_date", "Actual Start Date", "Actual Start", "Activity Actual Start Date",
    ],
    "actual_end": [
        "actual_completion_date", "Actual Completion Date", "Actual Completion",
        "Activity Actual Completion Date",
    ],
}

DEFAULT_KPI_ALIASES = {
    "activity_name": ["activity_name", "Activity Name"],
    "project_code": ["project_code", "Project Code"],
    "project_full_code": ["project_full_code", "Project Full Code"],
    "zone": ["zone", "Zone", "Zone Number", "Zone Ref"],
    "input_type": ["input_type", "Input Type"],
    "quantity": ["quantity", "Quantity"],
    "value": ["Value", "value"],
    "actual_value": ["actual_value", "Actual Value"],
    "activity_date": ["activity_date", "Activity Date"],
    "target_date": ["target_date", "Target Date"],
    "actual_date": ["actual_date", "Actual Date"],
    "date": ["Date", "date"],
}

DEFAULT_EXPORT_COLUMNS = [
    "Activity Name", "Project", "Zone", "Division", "Unit",
    "Total Units", "Planned Units", "Actual Units", "Rate",
    "Total Value", "Planned Value", "Earned Value", "Progress %",
    "Planned Start Date", "Planned End Date", "Actual Start Date", "Actual End Date",
    "Status",
]


class ReconConfig:
    """
    Configuration manager for the reconciliation engine.

    Loads YAML configuration and provides typed access to all sections.
    Use get_config() to obtain the singleton instance.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self._config_path = config_path or DEFAULT_CONFIG_PATH
        self._config: dict = {}
        self._load()

    def _load(self) -> None:
        """Load configuration from YAML file."""
        if not self._config_path.exists():
            raise ConfigurationError(f"Config file not found: {self._config_path}")

        try:
            with open(self._config_path, 'r') as f:
                self._config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")

        if not isinstance(self._config, dict):
            raise ConfigurationError("Config file must contain a YAML mapping")

    def reload(self) -> None:
        """Reload configuration from disk."""
        self._load()
        get_config.cache_clear()

    @property
    def version(self) -> str:
        """Configuration file version."""
        return self._config.get("version", "unknown")

    # =========================================================================
    # Field Aliases
    # =========================================================================

    @property
    def field_aliases(self) -> dict:
        """Alias lists for activity and KPI fields."""
        return self._config.get("field_aliases", {})

    def get_activity_aliases(self, field_name: str) -> list[str]:
        """
        Get the ordered alias list for an activity field.

        Args:
            field_name: Logical field name (e.g., 'total_units')
        """
        configured = self.field_aliases.get("activity", {}).get(field_name)
        return configured or DEFAULT_ACTIVITY_ALIASES.get(field_name, [field_name])

    def get_kpi_aliases(self, field_name: str) -> list[str]:
        """
        Get the ordered alias list for a KPI record field.

        Args:
            field_name: Logical field name (e.g., 'input_type')
        """
        configured = self.field_aliases.get("kpi", {}).get(field_name)
        return configured or DEFAULT_KPI_ALIASES.get(field_name, [field_name])

    # =========================================================================
    # Dates
    # =========================================================================

    @property
    def dates(self) -> dict:
        """Date parsing configuration."""
        return self._config.get("dates", {})

    @property
    def date_null_tokens(self) -> frozenset:
        """Strings that mean 'no date'."""
        tokens = self.dates.get("null_tokens", ["", "N/A"])
        return frozenset(str(t).strip() for t in tokens)

    @property
    def min_year(self) -> int:
        return int(self.dates.get("min_year", 1900))

    @property
    def max_year(self) -> int:
        return int(self.dates.get("max_year", 2100))

    @property
    def serial_max(self) -> float:
        """Exclusive upper bound for spreadsheet serial dates."""
        return float(self.dates.get("serial_max", 1_000_000))

    # =========================================================================
    # Zones
    # =========================================================================

    @property
    def no_zone_labels(self) -> frozenset:
        """Lower-cased zone labels treated as 'no zone'."""
        labels = self._config.get("zones", {}).get("no_zone_labels", []) or []
        return frozenset(str(label).strip().lower() for label in labels)

    # =========================================================================
    # Diagnostics
    # =========================================================================

    @property
    def diagnostics(self) -> dict:
        """Unmatched-record diagnostics configuration."""
        return self._config.get("diagnostics", {})

    @property
    def suggestion_min_score(self) -> int:
        """Minimum rapidfuzz score (0-100) for an activity suggestion."""
        return int(self.diagnostics.get("suggestion_min_score", 80))

    @property
    def max_suggestions(self) -> int:
        return int(self.diagnostics.get("max_suggestions", 3))

    # =========================================================================
    # Storage
    # =========================================================================

    @property
    def database_url(self) -> str:
        return self._config.get("database", {}).get("url", "sqlite:///./boqrecon.db")

    @property
    def retry(self) -> dict:
        """Retry policy settings for snapshot loads."""
        return self._config.get("retry", {
            "attempts": 3,
            "base_delay": 0.5,
            "max_delay": 5.0
        })

    # =========================================================================
    # Export / Logging
    # =========================================================================

    @property
    def export_columns(self) -> list[str]:
        return self._config.get("export", {}).get("columns", DEFAULT_EXPORT_COLUMNS)

    @property
    def log_level(self) -> str:
        return self._config.get("logging", {}).get("level", "INFO")

    # =========================================================================
    # Raw Access
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """Get a top-level config value by key."""
        return self._config.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self._config[key]

    def __contains__(self, key: str) -> bool:
        return key in self._config


@lru_cache(maxsize=1)
def get_config(config_path: Optional[str] = None) -> ReconConfig:
    """
    Get the singleton configuration instance.

    Args:
        config_path: Optional path to config file. Only used on first call.

    Returns:
        ReconConfig singleton instance
    """
    path = Path(config_path) if config_path else None
    return ReconConfig(path)


def reload_config() -> ReconConfig:
    """Reload configuration from disk and return new instance."""
    get_config.cache_clear()
    return get_config()

"""
Domain Exceptions for BOQ/KPI reconciliation.

The computation engine itself never raises for dirty input; these
exceptions belong to the boundaries around it:
- Configuration loading
- Snapshot loading from the store
- Record import
- Report scoping
"""


class DomainError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


class ConfigurationError(DomainError):
    """Raised when configuration loading or validation fails."""

    def __init__(self, message: str):
        super().__init__(message, code="CONFIGURATION_ERROR")


# =============================================================================
# Storage Boundary Exceptions
# =============================================================================

class SnapshotLoadError(DomainError):
    """Raised when the activity/KPI snapshot cannot be loaded after retries."""

    def __init__(self, attempts: int, cause: Exception):
        message = f"Snapshot load failed after {attempts} attempt(s): {cause}"
        super().__init__(message, code="SNAPSHOT_LOAD_FAILED")
        self.attempts = attempts
        self.cause = cause


class InvalidRecordError(DomainError):
    """Raised when an imported row cannot be stored at all."""

    def __init__(self, record_type: str, index: int, reason: str):
        message = f"Invalid {record_type} row at index {index}: {reason}"
        super().__init__(message, code="INVALID_RECORD")
        self.record_type = record_type
        self.index = index
        self.reason = reason


class UnknownProjectError(DomainError):
    """Raised when a report is requested for a project with no activities."""

    def __init__(self, project_code: str):
        message = f"No activities found for project '{project_code}'"
        super().__init__(message, code="UNKNOWN_PROJECT")
        self.project_code = project_code

"""
Domain Entities - Read-only inputs to a report pass.
"""

from .activity import Activity
from .kpi_record import KPIRecord, InputType
from .snapshot import Snapshot

__all__ = [
    'Activity',
    'KPIRecord', 'InputType',
    'Snapshot',
]

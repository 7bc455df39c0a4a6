"""
Repository implementations for data access layer.
"""
from .base_repository import BaseRepository
from .snapshot_repository import ActivityRepository, KPIRecordRepository, SnapshotRepository

__all__ = [
    'BaseRepository',
    'ActivityRepository',
    'KPIRecordRepository',
    'SnapshotRepository',
]

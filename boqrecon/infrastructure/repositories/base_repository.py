"""
Base Repository - shared data access for stored source rows.

Both stored tables keep indexed project keys plus the raw source row; this
base class provides the common read/write helpers over them.
"""
from abc import ABC
from typing import Generic, TypeVar, List, Optional, Type

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Base

T = TypeVar('T', bound=Base)


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base repository over one stored row table.

    Type Parameters:
        T: The SQLAlchemy model type this repository manages
    """

    def __init__(self, session: Session, model_class: Type[T]):
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy database session
            model_class: The model class this repository manages
        """
        self.session = session
        self.model_class = model_class

    def get_all(self, limit: Optional[int] = None, offset: int = 0) -> List[T]:
        """
        Retrieve all rows in insertion order with optional pagination.

        Args:
            limit: Maximum number of rows to return
            offset: Number of rows to skip
        """
        query = self.session.query(self.model_class).order_by(self.model_class.id).offset(offset)
        if limit:
            query = query.limit(limit)
        return query.all()

    def count(self) -> int:
        return self.session.query(self.model_class).count()

    def add_all(self, entities: List[T]) -> List[T]:
        self.session.add_all(entities)
        return entities

    def delete_all(self) -> int:
        """Delete every row; returns the number deleted."""
        return self.session.query(self.model_class).delete()

    def _project_filter(self, project_code: str):
        """Match either stored project key, trimmed and case-insensitive."""
        code = (project_code or '').strip().upper()
        return or_(
            func.upper(func.trim(self.model_class.project_code)) == code,
            func.upper(func.trim(self.model_class.project_full_code)) == code,
        )

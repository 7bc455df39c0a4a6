"""
Database models and SQLAlchemy setup for the BOQ/KPI reconciliation engine.

Rows are stored with a few indexed key columns plus the full source row as
JSON text; entities are rebuilt from the raw row on load so the alias
mapping stays the single place that interprets source columns.
"""
import json
from datetime import datetime
from typing import Any, Dict, Mapping

from sqlalchemy import create_engine, Column, Integer, String, DateTime, Text
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import get_config

DATABASE_URL = get_config().database_url


def _connect_args(url: str) -> Dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(DATABASE_URL, connect_args=_connect_args(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def dump_raw(row: Mapping) -> str:
    """Serialize a source row; dates and other odd cells become strings."""
    return json.dumps(dict(row), default=str)


def load_raw(raw_json: str) -> Dict[str, Any]:
    if not raw_json:
        return {}
    return json.loads(raw_json)


class BOQActivityEntity(Base):
    """Stored BOQ activity line item."""
    __tablename__ = "boq_activities"

    id = Column(Integer, primary_key=True, index=True)
    activity_name = Column(String(500), nullable=True)
    project_code = Column(String(100), nullable=True, index=True)
    project_full_code = Column(String(100), nullable=True, index=True)
    zone_ref = Column(String(200), nullable=True)
    zone_number = Column(String(100), nullable=True)
    raw_json = Column(Text, nullable=False, default="{}")  # Full source row
    created_at = Column(DateTime, default=datetime.utcnow)

    def raw_row(self) -> Dict[str, Any]:
        return load_raw(self.raw_json)


class KPIRecordEntity(Base):
    """Stored KPI progress log entry (Planned or Actual)."""
    __tablename__ = "kpi_records"

    id = Column(Integer, primary_key=True, index=True)
    activity_name = Column(String(500), nullable=True)
    project_code = Column(String(100), nullable=True, index=True)
    project_full_code = Column(String(100), nullable=True, index=True)
    zone = Column(String(200), nullable=True)
    input_type = Column(String(20), nullable=True, index=True)
    raw_json = Column(Text, nullable=False, default="{}")  # Full source row
    created_at = Column(DateTime, default=datetime.utcnow)

    def raw_row(self) -> Dict[str, Any]:
        return load_raw(self.raw_json)


def init_db():
    """Initialize the database and create all tables."""
    Base.metadata.create_all(bind=engine)


def get_db():
    """Database session dependency for FastAPI."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

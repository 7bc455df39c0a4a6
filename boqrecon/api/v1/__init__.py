"""
API v1 - REST endpoints for BOQ/KPI reconciliation reports.

- Reports endpoints (activity report, rollups, diagnostics, export, import)
"""
from fastapi import APIRouter

from .reports import router as reports_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(reports_router, prefix="/reports", tags=["Reports"])

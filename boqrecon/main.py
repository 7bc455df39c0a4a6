"""
Main FastAPI Application for BOQ/KPI reconciliation reports.
"""
import logging

from fastapi import FastAPI

from .api.v1 import api_router as v1_router
from .config import get_config
from .models import init_db

logging.basicConfig(
    level=getattr(logging, get_config().log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# Initialize FastAPI app
app = FastAPI(
    title="BOQ Activity Reconciliation",
    description="Reconcile KPI progress logs against BOQ activities and report earned value",
    version=get_config().version,
)

app.include_router(v1_router)


@app.on_event("startup")
def startup():
    init_db()
    logger.info("Database initialized")


@app.get("/health")
def health():
    return {"status": "ok"}

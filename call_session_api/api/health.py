"""Health check and service info endpoints."""

import logging
import time
from typing import Any

from fastapi import APIRouter, Depends

from .. import __version__
from ..models import HealthResponse
from ..storage import Database, get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Track service start time
_start_time = time.time()


def _format_uptime(seconds_total: float) -> str:
    days, remainder = divmod(int(seconds_total), 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"Days: {days}, Hours: {hours}, Minutes: {minutes}, Seconds: {seconds}"


@router.get("/health", response_model=HealthResponse)
async def health_check(db: Database = Depends(get_db)) -> HealthResponse:
    """Health check endpoint."""
    db_connected = False
    try:
        db_connected = await db.ping()
    except Exception as e:
        logger.error(f"Database health check failed: {e}")

    return HealthResponse(
        status="healthy" if db_connected else "degraded",
        version=__version__,
        uptime=_format_uptime(time.time() - _start_time),
        database_connected=db_connected,
    )


@router.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with service information."""
    return {
        "service": "Call Session Management API",
        "version": __version__,
        "description": "Tracks call sessions and the events inside them",
        "docs": "/docs",
        "health": "/health",
    }

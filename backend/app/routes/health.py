"""
Inkwell Backend — Health Check Route
=====================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Runs SELECT 1 against the database and reports whether the trash
       sweeper task is alive.

Status levels:
    healthy:   database reachable, sweeper running (or disabled)   → 200
    degraded:  database reachable, sweeper task died               → 200
    unhealthy: database unreachable                                → 503
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app import __version__
from app.database import engine
from app.schemas.common import HealthResponse
from app.services.trash_sweeper import trash_sweeper

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Set once when the module loads
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Database connectivity and background sweeper status.",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    if trash_sweeper.interval_seconds <= 0:
        sweeper_status = "disabled"
    elif trash_sweeper.running:
        sweeper_status = "running"
    else:
        sweeper_status = "stopped"
        if overall == "healthy":
            overall = "degraded"

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        trash_sweeper=sweeper_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )

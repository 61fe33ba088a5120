"""
Inkwell Backend — Health Check Route
======================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Runs SELECT 1 against the database and reports how many chat sessions
       are live on this instance.

Status levels:
    - healthy:   database reachable
    - unhealthy: database unreachable (messages cannot be persisted)
"""

import logging
import time

from fastapi import APIRouter, Request
from sqlalchemy import text

from app import __version__
from app.database import engine
from app.schemas.message import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        connected_sessions=request.app.state.registry.session_count,
        uptime_seconds=round(time.time() - _start_time, 2),
    )

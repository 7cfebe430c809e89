"""
Zoo Registry API: Health Check Route
=====================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Pings the document store once (no retries) and reports the result.
Who:   Called by container health checks, load balancers and monitoring.

Status levels:
    - healthy:   store reachable
    - unhealthy: store unreachable; the process is up but cannot serve data
"""

import logging
import time

from fastapi import APIRouter

from zoo_api import __version__
from zoo_api.database import database
from zoo_api.exceptions import StoreError
from zoo_api.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Module-level: set once when the module loads
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Returns the health status of the service and its document store.",
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        await database.ping(attempts=1)
    except StoreError:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: document store unreachable")

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )

"""
Recuerdos Backend — Health Check Route
=======================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Asks the configured RecordStore whether it is reachable.
Who:   Docker health checks, load balancers, the client's check_health().
When:  Periodically (e.g., every 30 seconds by Docker).

Status levels:
    - healthy:   store reachable (HTTP 200)
    - unhealthy: store unreachable (HTTP 503, stop routing traffic)
"""

import logging
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from recuerdos import __version__
from recuerdos.schemas.memory import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Store unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(request: Request):
    """
    Probe the record store with a lightweight call (SELECT 1, a file read,
    or the remote service's own /health).
    """
    store = request.app.state.store
    available = await store.health_check()
    if not available:
        logger.warning("Health check: %s store unavailable", store.name)

    body = HealthResponse(
        status="healthy" if available else "unhealthy",
        version=__version__,
        store=store.name,
        store_status="available" if available else "unavailable",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if not available:
        return JSONResponse(status_code=503, content=body.model_dump(by_alias=True))
    return body

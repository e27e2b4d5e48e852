"""
Fabtrack Backend — Health Check Route
======================================

What:  Health check endpoint for monitoring and load balancer probes.
Why:   A backend that cannot reach its database cannot serve any form
       endpoint, so the probe checks the store, not just the process.
How:   Runs SELECT 1 through the shared Database resource.

Status levels:
    - healthy:   database answers (HTTP 200)
    - unhealthy: database unreachable or not connected (HTTP 503)
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from fabtrack import __version__
from fabtrack.schemas.form import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(request: Request):
    """
    Probe the database and report aggregate status.

    SELECT 1 is essentially free, so the probe can run every few seconds.
    """
    database = request.app.state.database
    try:
        await database.ping()
    except Exception as e:
        logger.warning("Health check: database unreachable: %s", str(e))
        body = HealthResponse(status="unhealthy", version=__version__, database="disconnected")
        return JSONResponse(status_code=503, content=body.model_dump())

    return HealthResponse(status="healthy", version=__version__, database="connected")

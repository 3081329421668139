"""Health check endpoints."""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from app.models.response import HealthResponse, ReadinessResponse

router = APIRouter()

# Track start time for uptime calculation
_start_time = time.time()


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health():
    """Basic health check endpoint.

    Returns gateway health status and uptime.
    Used by load balancers for health checks.
    """
    uptime_seconds = int(time.time() - _start_time)

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime_seconds=uptime_seconds,
    )


@router.get("/healthz", status_code=status.HTTP_200_OK)
async def healthz():
    """Liveness probe endpoint."""
    return {"status": "OK"}


@router.get("/ready", status_code=status.HTTP_200_OK)
async def ready(request: Request):
    """Readiness probe endpoint.

    Returns 200 when the persistence backend answers, 503 otherwise.
    """
    backend = getattr(request.app.state, "backend", None)

    if backend is None:
        response = ReadinessResponse(ready=False, backend="uninitialized")
    else:
        backend_ok = await backend.health_check()
        response = ReadinessResponse(
            ready=backend_ok, backend=backend.name, checks={"backend": backend_ok}
        )

    if not response.ready:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(mode="json"),
        )

    return response

"""Endpoint discovery."""

from fastapi import APIRouter, Depends

from app.clients.base import Backend
from app.config import settings
from app.models.admin import DiscoveryResponse, EndpointSummary
from app.models.endpoint import EndpointDescriptor
from app.routes.deps import get_backend
from app.services.gateway import ENDPOINTS_TABLE

router = APIRouter()


@router.get("/discovery", response_model=DiscoveryResponse)
async def get_endpoint_discovery(backend: Backend = Depends(get_backend)):
    """Get the catalog of active gateway endpoints.

    Provides machine-readable discovery for clients: registered paths, their
    access requirements and per-minute rate limits.
    """
    descriptors = [
        EndpointDescriptor.model_validate(row)
        for row in await backend.select(ENDPOINTS_TABLE)
    ]
    endpoints = [
        EndpointSummary(**descriptor.model_dump())
        for descriptor in descriptors
        if descriptor.is_active
    ]
    endpoints.sort(key=lambda endpoint: (endpoint.path, endpoint.method))

    return DiscoveryResponse(
        service=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        endpoints=endpoints,
        rate_limits={"default_per_minute": settings.RATE_LIMIT_DEFAULT_PER_MINUTE},
    )

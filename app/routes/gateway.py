"""Catch-all route feeding registered endpoints through the gateway."""

import logging

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response

from app.models.request import GatewayRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.api_route(
    "/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    include_in_schema=False,
)
async def gateway_request(path: str, request: Request):
    """Hand a request for a tenant-registered endpoint to the gateway.

    This catch-all route must be included after every other router.
    """
    gateway = getattr(request.app.state, "gateway", None)

    if gateway is None:
        logger.warning("Gateway not initialized for request")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service unavailable",
        )

    gateway_request = GatewayRequest(
        method=request.method,
        path=request.url.path,
        query_params=dict(request.query_params),
        headers=dict(request.headers),
        body=await request.body(),
        client_host=request.client.host if request.client else None,
    )

    result = await gateway.handle(gateway_request)

    if result.body is None:
        return Response(status_code=result.status_code, headers=result.headers)

    return JSONResponse(
        status_code=result.status_code, content=result.body, headers=result.headers
    )

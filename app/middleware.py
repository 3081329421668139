"""Middleware for the MSP core gateway."""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.models.response import ErrorCode
from app.services.error_service import ErrorService
from app.services.gateway import CORS_HEADERS

logger = logging.getLogger(__name__)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Middleware to generate and propagate correlation IDs."""

    async def dispatch(self, request: Request, call_next: Callable):
        """Add correlation ID to request."""
        correlation_id = request.headers.get("X-Correlation-Id", str(uuid.uuid4()))
        request.state.correlation_id = correlation_id

        response = await call_next(request)

        response.headers["X-Correlation-Id"] = correlation_id

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all requests."""

    async def dispatch(self, request: Request, call_next: Callable):
        """Log request and response."""
        start_time = time.time()
        correlation_id = getattr(request.state, "correlation_id", "unknown")

        logger.info(
            f"Request started: method={request.method} path={request.url.path} "
            f"correlation_id={correlation_id}"
        )

        response = await call_next(request)

        latency_ms = (time.time() - start_time) * 1000

        logger.info(
            f"Request completed: method={request.method} path={request.url.path} "
            f"status={response.status_code} latency={latency_ms:.2f}ms "
            f"correlation_id={correlation_id}"
        )

        return response


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """Stamp the platform CORS headers on every response.

    Any ``OPTIONS`` request is answered with an empty 200 before routing.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        if request.method == "OPTIONS":
            return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)

        response = await call_next(request)
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware for global error handling."""

    async def dispatch(self, request: Request, call_next: Callable):
        """Convert unhandled exceptions into a JSON 500 response."""
        try:
            return await call_next(request)
        except Exception as e:
            correlation_id = getattr(request.state, "correlation_id", None)

            ErrorService.log_error(
                error_code=ErrorCode.INTERNAL_SERVER_ERROR,
                message=str(e),
                correlation_id=correlation_id,
                path=request.url.path,
            )

            logger.exception(f"Unhandled exception: {e}")

            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=ErrorService.create_error_body(
                    ErrorCode.INTERNAL_SERVER_ERROR, "Internal server error"
                ),
                headers=CORS_HEADERS,
            )

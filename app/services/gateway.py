"""API gateway dispatcher.

Each request moves through a fixed pipeline::

    RESOLVE_ENDPOINT -> [DEPRECATED] -> VALIDATE_AUTH -> CHECK_RATE_LIMIT
        -> [VALIDATE_BODY] -> DISPATCH -> LOG -> RESPOND

The gateway enforces cross-cutting policy only. Business behaviour is plugged
in per endpoint id through :meth:`GatewayDispatcher.register_handler`.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Optional

from app.clients.base import Backend
from app.models.endpoint import EndpointDescriptor
from app.models.request import GatewayRequest, GatewayResponse
from app.models.response import ErrorCode
from app.services.error_service import ErrorService
from app.services.rate_limit_service import RateLimiter
from app.services.request_logger import RequestLogger
from app.services.request_validator import RequestValidator
from app.services.schema_validator import validate_body

logger = logging.getLogger(__name__)

ENDPOINTS_TABLE = "api_endpoints"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type, x-api-key",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
}

EndpointHandler = Callable[
    [GatewayRequest, EndpointDescriptor, Optional[str]], Awaitable[GatewayResponse]
]


async def stub_handler(
    request: GatewayRequest, endpoint: EndpointDescriptor, user_id: Optional[str]
) -> GatewayResponse:
    """Acknowledge a request for an endpoint without a registered handler."""
    return GatewayResponse(
        status_code=200,
        body={
            "message": "API Gateway - Request processed successfully",
            "endpoint": endpoint.path,
            "method": endpoint.method,
            "version": endpoint.version,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


class GatewayDispatcher:
    """Resolves, validates, rate limits, dispatches and logs requests."""

    def __init__(
        self,
        backend: Backend,
        validator: RequestValidator,
        rate_limiter: Optional[RateLimiter],
        request_logger: RequestLogger,
        handlers: Optional[Dict[str, EndpointHandler]] = None,
        default_handler: EndpointHandler = stub_handler,
    ):
        """Initialize gateway dispatcher.

        Args:
            backend: Persistence backend holding ``api_endpoints``
            validator: Credential validator
            rate_limiter: Rate limiter; None disables rate limiting
            request_logger: Request log writer
            handlers: Endpoint handlers keyed by endpoint id
            default_handler: Handler for endpoints without a registered one
        """
        self.backend = backend
        self.validator = validator
        self.rate_limiter = rate_limiter
        self.request_logger = request_logger
        self.handlers: Dict[str, EndpointHandler] = dict(handlers or {})
        self.default_handler = default_handler

    def register_handler(self, endpoint_id: str, handler: EndpointHandler):
        self.handlers[endpoint_id] = handler

    async def resolve_endpoint(
        self, path: str, method: str
    ) -> Optional[EndpointDescriptor]:
        """Find the active endpoint registered for ``(path, method)``.

        Rows are read through :class:`EndpointDescriptor` before filtering, so
        columns left out of a row take the model defaults.
        """
        method = method.upper()
        for row in await self.backend.select(ENDPOINTS_TABLE, {"path": path}):
            endpoint = EndpointDescriptor.model_validate(row)
            if endpoint.method == method and endpoint.is_active:
                return endpoint
        return None

    async def handle(self, request: GatewayRequest) -> GatewayResponse:
        """Process one inbound request.

        Args:
            request: Inbound gateway request

        Returns:
            GatewayResponse; unexpected failures become a 500
        """
        if request.method == "OPTIONS":
            return self._respond(GatewayResponse(status_code=200))

        start_time = time.monotonic()
        logger.info(f"API Gateway: {request.method} {request.path}")

        try:
            return await self._process(request, start_time)
        except Exception as e:
            logger.exception(f"API Gateway Error: {e}")
            ErrorService.log_error(
                error_code=ErrorCode.INTERNAL_SERVER_ERROR,
                message=str(e),
                path=request.path,
            )
            return self._error(ErrorCode.INTERNAL_SERVER_ERROR, 500, "Internal server error")

    async def _process(
        self, request: GatewayRequest, start_time: float
    ) -> GatewayResponse:
        endpoint = await self.resolve_endpoint(request.path, request.method)
        if endpoint is None:
            return self._error(ErrorCode.NOT_FOUND, 404, "Endpoint not found")

        if endpoint.deprecated:
            body = ErrorService.create_error_body(
                ErrorCode.GONE,
                "Endpoint deprecated",
                exclude_none=False,
                replacement_endpoint=endpoint.replacement_endpoint,
                deprecation_date=endpoint.deprecation_date,
            )
            response = self._respond(GatewayResponse(status_code=410, body=body))
            return await self._finish(request, endpoint, response, None, start_time)

        auth = await self.validator.validate(request, endpoint)
        if not auth.valid:
            response = self._error(ErrorCode.UNAUTHORIZED, 401, auth.error)
            return await self._finish(request, endpoint, response, auth.user_id, start_time)

        rate_headers: Dict[str, str] = {}
        if self.rate_limiter is not None:
            client_key = auth.user_id or request.client_ip() or "anonymous"
            rate = await self.rate_limiter.check(client_key, endpoint.rate_limit_per_minute)

            if not rate.allowed:
                logger.warning(
                    f"Rate limit exceeded: key={client_key} "
                    f"endpoint={endpoint.method} {endpoint.path}"
                )
                response = self._error(
                    ErrorCode.RATE_LIMITED,
                    429,
                    "Rate limit exceeded",
                    headers={
                        "X-RateLimit-Limit": str(rate.limit),
                        "X-RateLimit-Remaining": "0",
                        "X-RateLimit-Reset": str(rate.reset_epoch),
                    },
                )
                return await self._finish(
                    request, endpoint, response, auth.user_id, start_time
                )

            rate_headers = {
                "X-RateLimit-Limit": str(rate.limit),
                "X-RateLimit-Remaining": str(rate.remaining),
            }

        if request.method != "GET" and endpoint.validation_enabled:
            body_check = validate_body(request.json_body(), endpoint.request_schema)
            if not body_check.valid:
                response = self._error(
                    ErrorCode.INVALID_REQUEST,
                    400,
                    "Validation failed",
                    details=body_check.errors,
                )
                return await self._finish(
                    request, endpoint, response, auth.user_id, start_time
                )

        handler = self.handlers.get(endpoint.id, self.default_handler)
        response = await handler(request, endpoint, auth.user_id)
        response.headers.update(rate_headers)
        response = self._respond(response)
        return await self._finish(request, endpoint, response, auth.user_id, start_time)

    async def _finish(
        self,
        request: GatewayRequest,
        endpoint: EndpointDescriptor,
        response: GatewayResponse,
        user_id: Optional[str],
        start_time: float,
    ) -> GatewayResponse:
        duration_ms = int((time.monotonic() - start_time) * 1000)
        await self.request_logger.log(
            request, endpoint, response.status_code, duration_ms, user_id
        )
        return response

    @staticmethod
    def _respond(response: GatewayResponse) -> GatewayResponse:
        headers = dict(CORS_HEADERS)
        if response.body is not None:
            headers["Content-Type"] = "application/json"
        headers.update(response.headers)
        return response.model_copy(update={"headers": headers})

    def _error(
        self,
        code: ErrorCode,
        status_code: int,
        message: str,
        details=None,
        headers: Optional[Dict[str, str]] = None,
    ) -> GatewayResponse:
        body = ErrorService.create_error_body(code, message, details=details)
        return self._respond(
            GatewayResponse(status_code=status_code, body=body, headers=headers or {})
        )

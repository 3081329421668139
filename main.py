"""MSP Core Gateway - API gateway, contract lifecycle and pricing service."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.clients import Backend, InMemoryBackend, SupabaseBackend
from app.config import Settings, settings
from app.logging_config import configure_logging
from app.middleware import (
    CORSHeadersMiddleware,
    CorrelationIdMiddleware,
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
)
from app.models.response import ErrorCode
from app.routes import router
from app.services import (
    ApprovalWorkflowService,
    ContractLifecycleService,
    ErrorService,
    GatewayDispatcher,
    InMemoryRateLimiter,
    JWTService,
    PricingEngine,
    RequestLogger,
    RequestValidator,
)

logger = logging.getLogger(__name__)


def create_backend(config: Settings) -> Backend:
    """Build the persistence backend selected by ``BACKEND``."""
    if config.BACKEND == "supabase":
        if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_ROLE_KEY:
            raise RuntimeError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for the supabase backend"
            )
        return SupabaseBackend(
            config.SUPABASE_URL,
            config.SUPABASE_SERVICE_ROLE_KEY,
            timeout=config.SUPABASE_TIMEOUT,
        )

    jwt_service = JWTService(
        secret_key=config.JWT_SECRET_KEY,
        algorithm=config.JWT_ALGORITHM,
        audience=config.JWT_AUDIENCE,
    )
    if config.SEED_FILE:
        return InMemoryBackend.from_seed_file(config.SEED_FILE, jwt_service=jwt_service)
    return InMemoryBackend(jwt_service=jwt_service)


def configure_services(
    state, config: Settings, backend: Optional[Backend] = None
) -> None:
    """Wire the backend and services into ``state``.

    Args:
        state: Application state object (``app.state``)
        config: Settings to build services from
        backend: Backend to use instead of the configured one
    """
    backend = backend or create_backend(config)

    rate_limiter = None
    if config.RATE_LIMIT_ENABLED:
        rate_limiter = InMemoryRateLimiter(window_seconds=config.RATE_LIMIT_WINDOW_SECONDS)

    request_logger = RequestLogger(backend, background=config.REQUEST_LOG_BACKGROUND)
    contract_lifecycle = ContractLifecycleService(
        backend, supported_currencies=config.SUPPORTED_CURRENCIES
    )

    state.backend = backend
    state.rate_limiter = rate_limiter
    state.request_logger = request_logger
    state.gateway = GatewayDispatcher(
        backend,
        RequestValidator(backend),
        rate_limiter,
        request_logger,
    )
    state.contract_lifecycle = contract_lifecycle
    state.approval_workflows = ApprovalWorkflowService(
        backend,
        contract_lifecycle,
        default_timeout_hours=config.APPROVAL_TIMEOUT_HOURS,
    )
    state.pricing_engine = PricingEngine(
        backend,
        supported_currencies=config.SUPPORTED_CURRENCIES,
        max_discount_ratio=config.MAX_DISCOUNT_RATIO,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI application."""
    configure_logging(settings.LOG_LEVEL)
    logger.info(f"Starting {settings.SERVICE_NAME} v{settings.SERVICE_VERSION}")
    logger.info(
        "Environment: %s | Server: %s:%s | Backend: %s",
        settings.ENVIRONMENT,
        settings.HOST,
        settings.PORT,
        settings.BACKEND,
    )

    configure_services(app.state, settings)
    logger.info(f"{settings.SERVICE_NAME} startup complete")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.SERVICE_NAME}")
    await app.state.request_logger.drain()
    await app.state.backend.close()
    logger.info(f"{settings.SERVICE_NAME} shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.OPENAPI_TITLE,
    version=settings.SERVICE_VERSION,
    description=settings.OPENAPI_DESCRIPTION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Render HTTP errors with the standard error body."""
    code = ErrorService.map_http_status_to_error_code(exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorService.create_error_body(code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render request model validation failures as 422 error bodies."""
    return JSONResponse(
        status_code=422,
        content=ErrorService.create_error_body(
            ErrorCode.INVALID_REQUEST,
            "Validation failed",
            details=jsonable_encoder(exc.errors()),
        ),
    )


# Add custom middleware (order matters - last added is executed first)
app.add_middleware(ErrorHandlingMiddleware)
# Platform CORS headers and preflight
app.add_middleware(CORSHeadersMiddleware)
# Request logging
app.add_middleware(RequestLoggingMiddleware)
# Correlation ID (added last so it runs first and sets correlation_id)
app.add_middleware(CorrelationIdMiddleware)


@app.get("/")
async def root():
    """Root endpoint returning service metadata."""
    return {
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs": "/docs",
    }


# Include routers after the root route; the gateway catch-all matches "/"
app.include_router(router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.ENVIRONMENT.lower() == "development",
    )

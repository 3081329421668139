"""Response models for the MSP core gateway."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorCode(str, Enum):
    """Standard error codes."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    GONE = "GONE"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class ErrorResponse(BaseModel):
    """Error response body.

    ``error`` is always a human readable message; any extra fields (for
    example ``replacement_endpoint`` on deprecated endpoints) are merged in.
    """

    error: str
    code: ErrorCode
    details: Optional[Any] = None

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "error": "Invalid authentication token",
                "code": "UNAUTHORIZED",
                "details": None,
            }
        },
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # healthy or degraded
    timestamp: str
    uptime_seconds: int

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-10T10:30:00Z",
                "uptime_seconds": 3600,
            }
        }
    )


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    backend: str
    checks: Dict[str, bool] = Field(default_factory=dict)

"""Error handling and standardization service."""

import logging
from typing import Any, Dict, Optional

from app.models.response import ErrorCode, ErrorResponse

logger = logging.getLogger(__name__)


class ErrorService:
    """Service for error handling and standardization."""

    @staticmethod
    def create_error_body(
        code: ErrorCode,
        message: str,
        details: Optional[Any] = None,
        exclude_none: bool = True,
        **extra: Any,
    ) -> Dict[str, Any]:
        """Create a standardized JSON error body.

        Args:
            code: Error code
            message: Human readable message, returned as ``error``
            details: Additional error details
            exclude_none: Drop fields whose value is None
            **extra: Extra top-level fields (e.g. ``replacement_endpoint``)

        Returns:
            JSON-ready dict
        """
        response = ErrorResponse(error=message, code=code, details=details, **extra)
        return response.model_dump(mode="json", exclude_none=exclude_none)

    @staticmethod
    def map_http_status_to_error_code(status_code: int) -> ErrorCode:
        """Map HTTP status code to error code.

        Args:
            status_code: HTTP status code

        Returns:
            ErrorCode enum
        """
        mapping = {
            400: ErrorCode.INVALID_REQUEST,
            401: ErrorCode.UNAUTHORIZED,
            403: ErrorCode.FORBIDDEN,
            404: ErrorCode.NOT_FOUND,
            409: ErrorCode.CONFLICT,
            410: ErrorCode.GONE,
            422: ErrorCode.INVALID_REQUEST,
            429: ErrorCode.RATE_LIMITED,
            500: ErrorCode.INTERNAL_SERVER_ERROR,
            502: ErrorCode.SERVICE_UNAVAILABLE,
            503: ErrorCode.SERVICE_UNAVAILABLE,
        }
        return mapping.get(status_code, ErrorCode.INTERNAL_SERVER_ERROR)

    @staticmethod
    def log_error(
        error_code: ErrorCode,
        message: str,
        correlation_id: Optional[str] = None,
        user_id: Optional[str] = None,
        path: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Log error with context.

        Args:
            error_code: Error code
            message: Error message
            correlation_id: Request correlation ID
            user_id: User ID
            path: Request path
            details: Additional details
        """
        log_data = {
            "error_code": error_code.value,
            "message": message,
        }

        if correlation_id:
            log_data["correlation_id"] = correlation_id
        if user_id:
            log_data["user_id"] = user_id
        if path:
            log_data["path"] = path
        if details:
            log_data["details"] = details

        logger.error(f"Error: {log_data}")

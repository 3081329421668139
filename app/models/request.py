"""Request models for the API gateway."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GatewayRequest(BaseModel):
    """Framework independent view of an inbound gateway request."""

    method: str
    path: str
    query_params: Dict[str, str] = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)
    body: bytes = b""
    client_host: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "method": "POST",
                "path": "/v1/tickets",
                "query_params": {"priority": "high"},
                "headers": {"authorization": "Bearer eyJ...", "user-agent": "curl/8.4"},
                "client_host": "192.168.1.1",
            }
        }
    )

    @field_validator("method")
    @classmethod
    def _upper_method(cls, value: str) -> str:
        return value.upper()

    @field_validator("headers")
    @classmethod
    def _lower_headers(cls, value: Dict[str, str]) -> Dict[str, str]:
        return {key.lower(): val for key, val in value.items()}

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    def bearer_token(self) -> Optional[str]:
        """Return the bearer token from the Authorization header, if any."""
        auth_header = self.header("authorization")
        if not auth_header:
            return None
        parts = auth_header.split()
        if len(parts) != 2 or parts[0] != "Bearer":
            return None
        return parts[1]

    def client_ip(self) -> Optional[str]:
        """Resolve the caller IP, preferring edge proxy headers."""
        connecting_ip = self.header("cf-connecting-ip")
        if connecting_ip:
            return connecting_ip
        forwarded_for = self.header("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        return self.client_host

    def json_body(self) -> Optional[Any]:
        """Decode the body as JSON, returning None when it is not JSON."""
        if not self.body:
            return None
        try:
            return json.loads(self.body)
        except (ValueError, UnicodeDecodeError):
            return None


class GatewayResponse(BaseModel):
    """Response produced by the gateway dispatcher."""

    status_code: int = 200
    body: Optional[Dict[str, Any]] = None
    headers: Dict[str, str] = Field(default_factory=dict)


class ApiKey(BaseModel):
    """API access token row."""

    id: Optional[str] = None
    tenant_id: Optional[str] = None
    token_hash: str
    is_active: bool = True
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if not self.expires_at:
            return False
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at < now


class AuthResult(BaseModel):
    """Outcome of request authentication/authorization checks."""

    valid: bool
    error: Optional[str] = None
    user_id: Optional[str] = None


class BodyValidationResult(BaseModel):
    """Outcome of request body validation."""

    valid: bool
    errors: Optional[List[str]] = None


class RequestLogEntry(BaseModel):
    """One persisted row per gateway-processed request."""

    tenant_id: Optional[str] = None
    endpoint_id: Optional[str] = None
    method: str
    path: str
    query_params: Dict[str, str] = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Any] = None
    status_code: int
    response_timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: int = 0
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

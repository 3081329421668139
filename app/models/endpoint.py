"""Registered gateway endpoint models."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.config import settings


class FieldRule(BaseModel):
    """Validation rule for a single body field."""

    type: Optional[str] = None
    minLength: Optional[int] = None
    maxLength: Optional[int] = None

    model_config = ConfigDict(extra="ignore")


class RequestSchema(BaseModel):
    """JSON-schema-lite description of a request body."""

    required: List[str] = Field(default_factory=list)
    properties: Dict[str, FieldRule] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    def is_empty(self) -> bool:
        return not self.required and not self.properties


class EndpointDescriptor(BaseModel):
    """Policy metadata for one registered API route."""

    id: str
    tenant_id: Optional[str] = None
    path: str
    method: str
    auth_required: bool = False
    allowed_roles: List[str] = Field(default_factory=list)
    api_key_required: bool = False
    rate_limit_per_minute: int = Field(
        default_factory=lambda: settings.RATE_LIMIT_DEFAULT_PER_MINUTE
    )
    validation_enabled: bool = False
    request_schema: RequestSchema = Field(default_factory=RequestSchema)
    deprecated: bool = False
    replacement_endpoint: Optional[str] = None
    deprecation_date: Optional[str] = None
    version: str = "v1"
    is_active: bool = True

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "id": "ep-clients-list",
                "tenant_id": "tenant-456",
                "path": "/v1/clients",
                "method": "GET",
                "auth_required": True,
                "allowed_roles": ["admin", "technician"],
                "rate_limit_per_minute": 120,
                "version": "v1",
            }
        },
    )

    @field_validator("method")
    @classmethod
    def _upper_method(cls, value: str) -> str:
        return value.upper()

    @field_validator("allowed_roles", mode="before")
    @classmethod
    def _roles_default(cls, value):
        return value or []

    @field_validator("request_schema", mode="before")
    @classmethod
    def _schema_default(cls, value):
        return value or {}

    @field_validator("rate_limit_per_minute", mode="before")
    @classmethod
    def _rate_limit_default(cls, value):
        # A zero or missing limit falls back to the platform default
        return value or settings.RATE_LIMIT_DEFAULT_PER_MINUTE

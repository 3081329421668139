"""Discovery and admin response models."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class EndpointSummary(BaseModel):
    """Public summary of a registered gateway endpoint."""

    path: str
    method: str
    version: str
    auth_required: bool
    api_key_required: bool
    rate_limit_per_minute: int
    deprecated: bool = False
    replacement_endpoint: Optional[str] = None


class DiscoveryResponse(BaseModel):
    """Catalog of active gateway endpoints."""

    service: str
    version: str
    endpoints: List[EndpointSummary] = Field(default_factory=list)
    rate_limits: Dict[str, int] = Field(default_factory=dict)


class RateLimitStatus(BaseModel):
    """Rate limit status for a key."""

    key: str
    current_usage: int
    reset_at: str
    window_start_at: str


class SweepResult(BaseModel):
    """Outcome of a periodic maintenance sweep."""

    processed: int
    ids: List[str] = Field(default_factory=list)

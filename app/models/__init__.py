"""Pydantic models for the MSP core gateway."""

from app.models.admin import DiscoveryResponse, EndpointSummary, RateLimitStatus, SweepResult
from app.models.contract import (
    ApprovalDecision,
    ApprovalStatus,
    ApprovalWorkflow,
    Contract,
    ContractCreate,
    ContractStatus,
    ContractUpdate,
    ContractValidationResult,
    StatusTransition,
)
from app.models.endpoint import EndpointDescriptor, FieldRule, RequestSchema
from app.models.pricing import (
    PricingCalculation,
    PricingHistoryEntry,
    PricingParams,
    PricingRule,
)
from app.models.request import (
    ApiKey,
    AuthResult,
    BodyValidationResult,
    GatewayRequest,
    GatewayResponse,
    RequestLogEntry,
)
from app.models.response import ErrorCode, ErrorResponse, HealthResponse, ReadinessResponse

__all__ = [
    "ApiKey",
    "ApprovalDecision",
    "ApprovalStatus",
    "ApprovalWorkflow",
    "AuthResult",
    "BodyValidationResult",
    "Contract",
    "ContractCreate",
    "ContractStatus",
    "ContractUpdate",
    "ContractValidationResult",
    "DiscoveryResponse",
    "EndpointDescriptor",
    "EndpointSummary",
    "ErrorCode",
    "ErrorResponse",
    "FieldRule",
    "GatewayRequest",
    "GatewayResponse",
    "HealthResponse",
    "PricingCalculation",
    "PricingHistoryEntry",
    "PricingParams",
    "PricingRule",
    "RateLimitStatus",
    "ReadinessResponse",
    "RequestLogEntry",
    "RequestSchema",
    "StatusTransition",
    "SweepResult",
]

"""Core services for the MSP core gateway."""

from app.services.approval_workflow import ApprovalWorkflowService
from app.services.contract_lifecycle import (
    ContractLifecycleService,
    validate_status_transition,
)
from app.services.error_service import ErrorService
from app.services.gateway import GatewayDispatcher
from app.services.jwt_service import JWTService
from app.services.pricing_engine import PricingEngine
from app.services.rate_limit_service import InMemoryRateLimiter, RateLimiter
from app.services.request_logger import RequestLogger
from app.services.request_validator import RequestValidator
from app.services.schema_validator import validate_body

__all__ = [
    "ApprovalWorkflowService",
    "ContractLifecycleService",
    "ErrorService",
    "GatewayDispatcher",
    "InMemoryRateLimiter",
    "JWTService",
    "PricingEngine",
    "RateLimiter",
    "RequestLogger",
    "RequestValidator",
    "validate_body",
    "validate_status_transition",
]

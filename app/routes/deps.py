"""Request dependencies shared by the API routers."""

from fastapi import HTTPException, Request, status

from app.clients.base import Backend
from app.services.approval_workflow import ApprovalWorkflowService
from app.services.contract_lifecycle import ContractLifecycleService
from app.services.pricing_engine import PricingEngine
from app.services.request_validator import USERS_TABLE


def _state(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service unavailable",
        )
    return service


def get_backend(request: Request) -> Backend:
    return _state(request, "backend")


def get_lifecycle(request: Request) -> ContractLifecycleService:
    return _state(request, "contract_lifecycle")


def get_approvals(request: Request) -> ApprovalWorkflowService:
    return _state(request, "approval_workflows")


def get_pricing(request: Request) -> PricingEngine:
    return _state(request, "pricing_engine")


async def get_current_user_id(request: Request) -> str:
    """Resolve the caller from the bearer token."""
    auth_header = request.headers.get("Authorization", "")
    parts = auth_header.split()
    if len(parts) != 2 or parts[0] != "Bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
        )

    user_id = await get_backend(request).get_user_id(parts[1])
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
        )

    request.state.user_id = user_id
    return user_id


async def verify_admin_role(request: Request) -> str:
    """Require an authenticated caller whose profile role is ``admin``."""
    user_id = await get_current_user_id(request)
    profile = await get_backend(request).select_one(USERS_TABLE, {"auth_user_id": user_id})
    if not profile or profile.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions"
        )
    return user_id

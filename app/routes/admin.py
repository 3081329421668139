"""Admin endpoints for gateway and contract maintenance."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.models.admin import RateLimitStatus, SweepResult
from app.routes.deps import get_approvals, get_lifecycle, verify_admin_role
from app.services.approval_workflow import ApprovalWorkflowService
from app.services.contract_lifecycle import ContractLifecycleService

router = APIRouter(dependencies=[Depends(verify_admin_role)])


def _rate_limiter(request: Request):
    rate_limiter = getattr(request.app.state, "rate_limiter", None)
    if rate_limiter is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Rate limiting is disabled"
        )
    return rate_limiter


@router.get("/rate-limits", response_model=Optional[RateLimitStatus])
async def get_rate_limit_status(key: str, request: Request):
    """Get the current window for a rate limit key.

    Requires admin role.
    """
    status_data = await _rate_limiter(request).get_status(key)
    if status_data is None:
        return None
    return RateLimitStatus(**status_data)


@router.delete("/rate-limits/{key}")
async def reset_rate_limit(key: str, request: Request):
    """Drop the window for a rate limit key.

    Requires admin role.
    """
    return {"key": key, "reset": await _rate_limiter(request).reset(key)}


@router.post("/rate-limits/cleanup")
async def cleanup_rate_limits(request: Request):
    removed = await _rate_limiter(request).cleanup_expired()
    return {"removed": removed}


@router.post("/approvals/expire-timeouts", response_model=SweepResult)
async def expire_approval_timeouts(
    approvals: ApprovalWorkflowService = Depends(get_approvals),
):
    """Time out pending approval workflows past their deadline."""
    ids = await approvals.expire_timed_out()
    return SweepResult(processed=len(ids), ids=ids)


@router.post("/contracts/expire", response_model=SweepResult)
async def expire_contracts(
    today: Optional[date] = None,
    lifecycle: ContractLifecycleService = Depends(get_lifecycle),
):
    """Expire active contracts whose end date has passed."""
    ids = await lifecycle.check_expired_contracts(today)
    return SweepResult(processed=len(ids), ids=ids)

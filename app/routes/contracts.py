"""Contract lifecycle and approval endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from app.models.contract import (
    ApprovalDecisionRequest,
    ApprovalInitiateRequest,
    ApprovalWorkflow,
    Contract,
    ContractCreate,
    ContractStatus,
    ContractUpdate,
    ContractValidationResult,
    RenewalRequest,
    StatusUpdateRequest,
)
from app.routes.deps import (
    get_approvals,
    get_current_user_id,
    get_lifecycle,
)
from app.services.approval_workflow import ApprovalWorkflowService, WorkflowPendingError
from app.services.contract_lifecycle import (
    ContractLifecycleService,
    ContractValidationError,
    validate_status_transition,
)

router = APIRouter(dependencies=[Depends(get_current_user_id)])


async def _get_contract_or_404(
    contract_id: str, lifecycle: ContractLifecycleService
) -> Contract:
    contract = await lifecycle.get_contract(contract_id)
    if contract is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Contract not found: {contract_id}",
        )
    return contract


@router.post("/contracts", response_model=Contract, status_code=status.HTTP_201_CREATED)
async def create_contract(
    payload: ContractCreate,
    user_id: str = Depends(get_current_user_id),
    lifecycle: ContractLifecycleService = Depends(get_lifecycle),
):
    """Create a contract in ``draft`` status.

    Field errors are reported as data with a 400 status.
    """
    try:
        return await lifecycle.create_contract(payload, created_by=user_id)
    except ContractValidationError as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"created": False, **e.result.model_dump()},
        )


@router.post("/contracts/validate", response_model=ContractValidationResult)
async def validate_new_contract(
    payload: ContractCreate, lifecycle: ContractLifecycleService = Depends(get_lifecycle)
):
    """Check contract fields without creating anything."""
    return lifecycle.validate_contract(payload)


@router.get("/contracts/transitions")
async def preview_transition(current: ContractStatus, target: ContractStatus):
    """Evaluate a status change without applying it."""
    return validate_status_transition(current, target).model_dump(by_alias=True)


@router.get("/contracts/{contract_id}", response_model=Contract)
async def get_contract(
    contract_id: str, lifecycle: ContractLifecycleService = Depends(get_lifecycle)
):
    return await _get_contract_or_404(contract_id, lifecycle)


@router.post(
    "/contracts/{contract_id}/validate", response_model=ContractValidationResult
)
async def validate_contract_update(
    contract_id: str,
    payload: ContractUpdate,
    lifecycle: ContractLifecycleService = Depends(get_lifecycle),
):
    """Check proposed changes against the stored contract."""
    result = await lifecycle.validate_contract_update(contract_id, payload)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Contract not found: {contract_id}",
        )
    return result


@router.post("/contracts/{contract_id}/status")
async def update_contract_status(
    contract_id: str,
    payload: StatusUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    lifecycle: ContractLifecycleService = Depends(get_lifecycle),
):
    """Apply a status transition directly.

    Invalid transitions are reported as data with a 400 status.
    """
    contract = await _get_contract_or_404(contract_id, lifecycle)
    transition = validate_status_transition(contract.status, payload.status)

    updated = await lifecycle.update_status(
        contract_id, payload.status, reason=payload.reason, changed_by=user_id
    )
    if not updated:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "updated": False,
                "is_valid": False,
                "errors": [transition.reason or "Status update failed"],
            },
        )

    return {"updated": True, "contract_id": contract_id, "status": payload.status.value}


@router.post("/contracts/{contract_id}/transition-requests")
async def request_contract_transition(
    contract_id: str,
    payload: StatusUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    lifecycle: ContractLifecycleService = Depends(get_lifecycle),
    approvals: ApprovalWorkflowService = Depends(get_approvals),
):
    """Apply a transition, or open an approval workflow when one is needed."""
    await _get_contract_or_404(contract_id, lifecycle)
    try:
        transition = await approvals.request_transition(
            contract_id, payload.status, reason=payload.reason, changed_by=user_id
        )
    except WorkflowPendingError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An approval workflow is already pending for this contract",
        )
    workflow = await approvals.get_active_workflow(contract_id)

    return {
        "transition": transition.model_dump(by_alias=True),
        "approval_workflow": workflow.model_dump(mode="json") if workflow else None,
    }


@router.post("/contracts/{contract_id}/renewal")
async def schedule_renewal(
    contract_id: str,
    payload: RenewalRequest,
    lifecycle: ContractLifecycleService = Depends(get_lifecycle),
):
    await _get_contract_or_404(contract_id, lifecycle)
    scheduled = await lifecycle.schedule_contract_renewal(contract_id, payload.renewal_date)
    if not scheduled:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Renewal could not be scheduled",
        )
    return {"scheduled": True, "renewal_date": payload.renewal_date.isoformat()}


@router.post("/contracts/{contract_id}/approvals", status_code=status.HTTP_201_CREATED)
async def initiate_approval(
    contract_id: str,
    payload: ApprovalInitiateRequest,
    lifecycle: ContractLifecycleService = Depends(get_lifecycle),
    approvals: ApprovalWorkflowService = Depends(get_approvals),
):
    """Start an approval workflow; only one may be pending per contract."""
    await _get_contract_or_404(contract_id, lifecycle)
    workflow = await approvals.initiate(
        contract_id,
        payload.levels,
        timeout_hours=payload.timeout_hours,
        target_status=payload.target_status,
        approvers=payload.approvers,
    )
    if workflow is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An approval workflow is already pending for this contract",
        )
    return {"initiated": True, "workflow": workflow.model_dump(mode="json")}


@router.get("/contracts/{contract_id}/approvals/active", response_model=Optional[ApprovalWorkflow])
async def get_active_approval(
    contract_id: str, approvals: ApprovalWorkflowService = Depends(get_approvals)
):
    return await approvals.get_active_workflow(contract_id)


@router.post("/approvals/{approval_id}/decision")
async def decide_approval(
    approval_id: str,
    payload: ApprovalDecisionRequest,
    user_id: str = Depends(get_current_user_id),
    approvals: ApprovalWorkflowService = Depends(get_approvals),
):
    """Record an approve/reject decision for the workflow's current level."""
    workflow = await approvals.get_workflow(approval_id)
    if workflow is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Approval workflow not found: {approval_id}",
        )
    if workflow.is_terminal:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Approval workflow is no longer pending",
        )

    processed = await approvals.process_approval(
        approval_id, payload.decision, comments=payload.comments, approver_id=user_id
    )
    if not processed:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Approved status change can no longer be applied to the contract",
        )

    workflow = await approvals.get_workflow(approval_id)
    return {"processed": True, "workflow": workflow.model_dump(mode="json")}

"""Multi-level approval workflows for contract transitions."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Union

from app.clients.base import Backend
from app.models.contract import (
    ApprovalDecision,
    ApprovalRecord,
    ApprovalStatus,
    ApprovalWorkflow,
    ContractStatus,
    StatusTransition,
)
from app.services.contract_lifecycle import (
    ContractLifecycleService,
    validate_status_transition,
)

logger = logging.getLogger(__name__)

APPROVALS_TABLE = "contract_approvals"


class WorkflowPendingError(Exception):
    """Raised when a contract change is requested while a workflow is pending."""

    def __init__(self, contract_id: str, approval_id: str):
        super().__init__(
            f"Approval workflow {approval_id} already pending for contract {contract_id}"
        )
        self.contract_id = contract_id
        self.approval_id = approval_id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApprovalWorkflowService:
    """Tracks approval workflows layered on the contract state machine.

    At most one pending workflow exists per contract. Timeouts are applied by
    :meth:`expire_timed_out`, which is expected to be run by a periodic sweep.
    """

    def __init__(
        self,
        backend: Backend,
        lifecycle: ContractLifecycleService,
        default_timeout_hours: int = 48,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.backend = backend
        self.lifecycle = lifecycle
        self.default_timeout_hours = default_timeout_hours
        self._clock = clock or _utcnow
        self._lock = asyncio.Lock()

    async def get_workflow(self, approval_id: str) -> Optional[ApprovalWorkflow]:
        row = await self.backend.select_one(APPROVALS_TABLE, {"id": approval_id})
        return ApprovalWorkflow.model_validate(row) if row else None

    async def get_active_workflow(self, contract_id: str) -> Optional[ApprovalWorkflow]:
        row = await self.backend.select_one(
            APPROVALS_TABLE,
            {"contract_id": contract_id, "status": ApprovalStatus.PENDING.value},
        )
        return ApprovalWorkflow.model_validate(row) if row else None

    async def _save(self, workflow: ApprovalWorkflow):
        await self.backend.update(
            APPROVALS_TABLE, {"id": workflow.id}, workflow.model_dump(mode="json")
        )

    async def initiate(
        self,
        contract_id: str,
        required_levels: int,
        timeout_hours: Optional[int] = None,
        target_status: Optional[Union[ContractStatus, str]] = None,
        approvers: Optional[List[str]] = None,
    ) -> Optional[ApprovalWorkflow]:
        """Start a pending workflow at level 1.

        Args:
            contract_id: Contract under approval
            required_levels: Number of approval levels (at least 1)
            timeout_hours: Hours before the workflow times out
            target_status: Status applied to the contract on final approval
            approvers: Designated approver ids, one per level

        Returns:
            The new workflow, or None if the request was rejected
        """
        if required_levels < 1:
            logger.warning(
                f"Rejected approval workflow for {contract_id}: "
                f"required_levels={required_levels}"
            )
            return None

        timeout_hours = timeout_hours or self.default_timeout_hours

        async with self._lock:
            active = await self.get_active_workflow(contract_id)
            if active is not None:
                logger.warning(
                    f"Approval workflow {active.id} already pending for contract "
                    f"{contract_id}; not starting another"
                )
                return None

            workflow = ApprovalWorkflow(
                contract_id=contract_id,
                approval_levels=required_levels,
                timeout_hours=timeout_hours,
                approvers=approvers or [],
                target_status=target_status,
                created_at=self._clock(),
            )
            await self.backend.insert(APPROVALS_TABLE, workflow.model_dump(mode="json"))

        logger.info(
            f"Initiated approval workflow {workflow.id} for contract {contract_id}: "
            f"levels={required_levels} timeout_hours={timeout_hours}"
        )
        return workflow

    async def initiate_approval_workflow(
        self, contract_id: str, required_levels: int, timeout_hours: Optional[int] = None
    ) -> bool:
        """Start a workflow, reporting only whether it was created."""
        return await self.initiate(contract_id, required_levels, timeout_hours) is not None

    async def process_approval(
        self,
        approval_id: str,
        decision: Union[ApprovalDecision, str],
        comments: Optional[str] = None,
        approver_id: Optional[str] = None,
    ) -> bool:
        """Record a decision for the workflow's current level.

        A rejection ends the workflow. An approval advances to the next level,
        or completes the workflow at the final level and applies its target
        status, if any. When the target status can no longer be applied the
        workflow stays pending and nothing is recorded.

        Returns:
            True if the decision was recorded
        """
        decision = ApprovalDecision(decision)

        async with self._lock:
            workflow = await self.get_workflow(approval_id)
            if workflow is None:
                logger.warning(f"Approval workflow not found: {approval_id}")
                return False

            if workflow.is_terminal:
                logger.warning(
                    f"Approval workflow {approval_id} already {workflow.status.value}"
                )
                return False

            now = self._clock()
            workflow.decisions.append(
                ApprovalRecord(
                    level=workflow.current_level,
                    decision=decision,
                    approver_id=approver_id,
                    comments=comments,
                    decided_at=now,
                )
            )
            if approver_id and approver_id not in workflow.approvers:
                workflow.approvers.append(approver_id)

            if decision == ApprovalDecision.REJECTED:
                workflow.status = ApprovalStatus.REJECTED
                workflow.is_complete = True
                workflow.completed_at = now
            elif workflow.current_level >= workflow.approval_levels:
                if workflow.target_status and not await self.lifecycle.update_status(
                    workflow.contract_id,
                    workflow.target_status,
                    reason=f"Approved via workflow {workflow.id}",
                    changed_by=approver_id,
                ):
                    logger.warning(
                        f"Approval workflow {approval_id} not completed: contract "
                        f"{workflow.contract_id} cannot move to "
                        f"{workflow.target_status.value}"
                    )
                    return False
                workflow.status = ApprovalStatus.APPROVED
                workflow.is_complete = True
                workflow.completed_at = now
            else:
                workflow.current_level += 1

            await self._save(workflow)

        logger.info(
            f"Processed approval {approval_id}: decision={decision.value} "
            f"status={workflow.status.value} level={workflow.current_level}"
        )

        if workflow.status == ApprovalStatus.REJECTED:
            await self.lifecycle.log_contract_error(
                workflow.contract_id,
                "approval_rejected",
                "Contract approval was rejected",
                {"approval_id": approval_id, "comments": comments},
                severity="low",
            )
        return True

    async def request_transition(
        self,
        contract_id: str,
        new_status: Union[ContractStatus, str],
        reason: Optional[str] = None,
        changed_by: Optional[str] = None,
    ) -> StatusTransition:
        """Apply a transition now, or open a workflow if it needs approvals.

        Returns:
            The evaluated transition; invalid transitions change nothing

        Raises:
            LookupError: If the contract does not exist
            WorkflowPendingError: If an approval workflow is already pending
                for the contract
        """
        contract = await self.lifecycle.get_contract(contract_id)
        if contract is None:
            raise LookupError(f"Contract not found: {contract_id}")

        transition = validate_status_transition(contract.status, new_status)
        if not transition.is_valid:
            await self.lifecycle.log_contract_error(
                contract_id, "status_transition", transition.reason
            )
            return transition

        if transition.required_approvals == 0:
            async with self._lock:
                active = await self.get_active_workflow(contract_id)
                if active is not None:
                    raise WorkflowPendingError(contract_id, active.id)
                await self.lifecycle.update_status(contract_id, new_status, reason, changed_by)
            return transition

        workflow = await self.initiate(
            contract_id,
            transition.required_approvals,
            target_status=transition.to_status,
        )
        if workflow is None:
            active = await self.get_active_workflow(contract_id)
            raise WorkflowPendingError(contract_id, active.id if active else "")
        return transition

    async def expire_timed_out(self, now: Optional[datetime] = None) -> List[str]:
        """Mark pending workflows older than their timeout as ``timeout``.

        Returns:
            IDs of workflows that timed out
        """
        now = now or self._clock()
        timed_out = []

        async with self._lock:
            rows = await self.backend.select(
                APPROVALS_TABLE, {"status": ApprovalStatus.PENDING.value}
            )
            for row in rows:
                workflow = ApprovalWorkflow.model_validate(row)
                deadline = workflow.created_at + timedelta(hours=workflow.timeout_hours)
                if now > deadline:
                    workflow.status = ApprovalStatus.TIMEOUT
                    workflow.is_complete = True
                    workflow.completed_at = now
                    await self._save(workflow)
                    timed_out.append(workflow.id)

        for approval_id in timed_out:
            logger.warning(f"Approval workflow {approval_id} timed out")
        return timed_out

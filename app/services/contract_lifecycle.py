"""Contract status state machine."""

import logging
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from app.clients.base import Backend
from app.config import settings
from app.models.contract import (
    Contract,
    ContractCreate,
    ContractErrorLog,
    ContractFieldError,
    ContractStatus,
    ContractUpdate,
    ContractValidationResult,
    StatusTransition,
)

logger = logging.getLogger(__name__)

CONTRACTS_TABLE = "contracts"
CONTRACT_ERRORS_TABLE = "contract_error_logs"

LOW_VALUE_THRESHOLD = 1000

# terminated is absorbing
VALID_TRANSITIONS: Dict[ContractStatus, frozenset] = {
    ContractStatus.DRAFT: frozenset({ContractStatus.ACTIVE}),
    ContractStatus.ACTIVE: frozenset({ContractStatus.EXPIRED, ContractStatus.TERMINATED}),
    ContractStatus.EXPIRED: frozenset({ContractStatus.ACTIVE}),
    ContractStatus.TERMINATED: frozenset(),
}


def required_approvals(current: ContractStatus, target: ContractStatus) -> int:
    """Approvals needed for a valid transition from ``current`` to ``target``."""
    if target == ContractStatus.ACTIVE:
        # new contracts get more scrutiny than renewals
        return 2 if current == ContractStatus.DRAFT else 1
    if target == ContractStatus.TERMINATED:
        return 1
    return 0


def validate_status_transition(
    current: Union[ContractStatus, str], target: Union[ContractStatus, str]
) -> StatusTransition:
    """Check a status change against the transition table.

    Args:
        current: Current contract status
        target: Requested status

    Returns:
        StatusTransition with validity, required approvals and reason
    """
    current = ContractStatus(current)
    target = ContractStatus(target)

    if target not in VALID_TRANSITIONS[current]:
        return StatusTransition(
            from_status=current,
            to_status=target,
            is_valid=False,
            required_approvals=0,
            reason=f"Cannot transition from {current.value} to {target.value}",
        )

    return StatusTransition(
        from_status=current,
        to_status=target,
        is_valid=True,
        required_approvals=required_approvals(current, target),
    )


def validate_contract(
    data: ContractCreate,
    today: Optional[date] = None,
    supported_currencies: Optional[Iterable[str]] = None,
    check_start_date: bool = True,
) -> ContractValidationResult:
    """Check contract fields, collecting every problem.

    Args:
        data: Contract fields to check
        today: Reference date for the start date check
        supported_currencies: Accepted currency codes
        check_start_date: Whether a start date in the past is an error

    Returns:
        ContractValidationResult with field errors and advisory warnings
    """
    today = today or date.today()
    if supported_currencies is None:
        supported_currencies = settings.SUPPORTED_CURRENCIES
    errors = []

    if not data.name.strip():
        errors.append(ContractFieldError(field="name", message="Contract name is required"))
    if not data.client_id:
        errors.append(
            ContractFieldError(field="client_id", message="Client selection is required")
        )
    if data.start_date is None:
        errors.append(ContractFieldError(field="start_date", message="Start date is required"))
    if not data.currency:
        errors.append(ContractFieldError(field="currency", message="Currency is required"))
    elif data.currency not in set(supported_currencies):
        errors.append(ContractFieldError(field="currency", message="Invalid currency code"))

    if data.start_date is not None:
        if check_start_date and data.start_date < today:
            errors.append(
                ContractFieldError(
                    field="start_date", message="Start date cannot be in the past"
                )
            )
        if data.end_date and data.end_date <= data.start_date:
            errors.append(
                ContractFieldError(
                    field="end_date", message="End date must be after start date"
                )
            )

    warnings = []
    if not data.end_date and not data.auto_renewal:
        warnings.append("Consider setting an end date or enabling auto-renewal")
    if 0 < data.total_value < LOW_VALUE_THRESHOLD:
        warnings.append("Contract value seems low - please verify")

    return ContractValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


class ContractValidationError(Exception):
    """Raised when contract fields fail validation."""

    def __init__(self, result: ContractValidationResult):
        super().__init__("; ".join(error.message for error in result.errors))
        self.result = result


class ContractLifecycleService:
    """Applies validated lifecycle changes to contracts held by the backend."""

    def __init__(
        self,
        backend: Backend,
        supported_currencies: Optional[Iterable[str]] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.backend = backend
        self.supported_currencies = frozenset(
            supported_currencies or settings.SUPPORTED_CURRENCIES
        )
        self._today = today or date.today

    validate_transition = staticmethod(validate_status_transition)

    def validate_contract(self, data: ContractCreate) -> ContractValidationResult:
        return validate_contract(data, self._today(), self.supported_currencies)

    async def validate_contract_update(
        self, contract_id: str, updates: ContractUpdate
    ) -> Optional[ContractValidationResult]:
        """Validate changes merged over the stored contract.

        The start date is only required to be in the future when it changes.

        Returns:
            ContractValidationResult, or None if the contract does not exist
        """
        contract = await self.get_contract(contract_id)
        if contract is None:
            return None

        changes = updates.model_dump(exclude_unset=True, exclude_none=True)
        merged = ContractCreate(**{**contract.model_dump(), **changes})
        return validate_contract(
            merged,
            self._today(),
            self.supported_currencies,
            check_start_date="start_date" in changes,
        )

    async def create_contract(
        self, data: ContractCreate, created_by: Optional[str] = None
    ) -> Contract:
        """Create a contract in ``draft``.

        Raises:
            ContractValidationError: If the contract fields are invalid
        """
        result = self.validate_contract(data)
        if not result.is_valid:
            raise ContractValidationError(result)
        for warning in result.warnings:
            logger.warning(f"Contract {data.name!r} for client {data.client_id}: {warning}")

        contract = Contract(**data.model_dump(), status=ContractStatus.DRAFT)
        row = await self.backend.insert(CONTRACTS_TABLE, contract.model_dump(mode="json"))
        logger.info(f"Created draft contract {contract.id} by {created_by}")
        return Contract.model_validate(row)

    async def get_contract(self, contract_id: str) -> Optional[Contract]:
        row = await self.backend.select_one(CONTRACTS_TABLE, {"id": contract_id})
        return Contract.model_validate(row) if row else None

    async def log_contract_error(
        self,
        contract_id: str,
        error_type: str,
        error_message: str,
        error_details: Optional[Dict[str, Any]] = None,
        severity: str = "medium",
    ):
        """Log a contract error and persist it on a best-effort basis."""
        record = ContractErrorLog(
            contract_id=contract_id,
            error_type=error_type,
            error_message=error_message,
            error_details=error_details or {},
            severity=severity,
        )
        logger.error(
            f"Contract Error [{error_type}]: contract_id={contract_id} "
            f"message={error_message} details={record.error_details} severity={severity}"
        )
        try:
            await self.backend.insert(CONTRACT_ERRORS_TABLE, record.model_dump(mode="json"))
        except Exception as e:
            logger.error(f"Failed to persist contract error: {e}")

    async def update_status(
        self,
        contract_id: str,
        new_status: Union[ContractStatus, str],
        reason: Optional[str] = None,
        changed_by: Optional[str] = None,
    ) -> bool:
        """Move a contract to ``new_status`` if the transition table allows it.

        The contract is reloaded on every call, so a retry after a failure is
        validated against the current stored status.

        Args:
            contract_id: Contract ID
            new_status: Requested status
            reason: Free-text reason for the change
            changed_by: User applying the change

        Returns:
            True if the status was changed
        """
        try:
            target = ContractStatus(new_status)
        except ValueError:
            await self.log_contract_error(
                contract_id, "status_transition", f"Unknown contract status: {new_status}"
            )
            return False

        contract = await self.get_contract(contract_id)
        if contract is None:
            await self.log_contract_error(
                contract_id, "contract_not_found", "Contract not found", severity="low"
            )
            return False

        transition = validate_status_transition(contract.status, target)
        if not transition.is_valid:
            await self.log_contract_error(
                contract_id,
                "status_transition",
                transition.reason,
                {"from": contract.status.value, "to": target.value},
            )
            return False

        await self.backend.update(
            CONTRACTS_TABLE, {"id": contract_id}, {"status": target.value}
        )
        logger.info(
            f"Contract {contract_id} status updated {contract.status.value} -> "
            f"{target.value} by={changed_by} reason={reason}"
        )
        return True

    async def check_expired_contracts(self, today: Optional[date] = None) -> List[str]:
        """Expire active contracts whose end date has passed.

        Returns:
            IDs of contracts moved to ``expired``
        """
        today = today or self._today()
        expired = []
        rows = await self.backend.select(
            CONTRACTS_TABLE, {"status": ContractStatus.ACTIVE.value}
        )
        for row in rows:
            contract = Contract.model_validate(row)
            if contract.end_date and contract.end_date < today:
                if await self.update_status(
                    contract.id, ContractStatus.EXPIRED, reason="End date passed"
                ):
                    expired.append(contract.id)

        if expired:
            logger.info(f"Expired {len(expired)} contracts")
        return expired

    async def schedule_contract_renewal(self, contract_id: str, renewal_date: date) -> bool:
        """Record the date a contract is due for renewal."""
        contract = await self.get_contract(contract_id)
        if contract is None:
            await self.log_contract_error(
                contract_id, "renewal_schedule_failed", "Contract not found"
            )
            return False

        if contract.status == ContractStatus.TERMINATED:
            await self.log_contract_error(
                contract_id,
                "renewal_schedule_failed",
                "Terminated contracts cannot be renewed",
            )
            return False

        await self.backend.update(
            CONTRACTS_TABLE, {"id": contract_id}, {"renewal_date": renewal_date.isoformat()}
        )
        logger.info(f"Scheduled renewal for contract {contract_id} on {renewal_date}")
        return True

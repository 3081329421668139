"""Contract lifecycle models."""

import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContractStatus(str, Enum):
    """Contract lifecycle states."""

    DRAFT = "draft"
    ACTIVE = "active"
    EXPIRED = "expired"
    TERMINATED = "terminated"


class ApprovalStatus(str, Enum):
    """Approval workflow states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    TIMEOUT = "timeout"


class ApprovalDecision(str, Enum):
    """Decision recorded against an approval level."""

    APPROVED = "approved"
    REJECTED = "rejected"


class Contract(BaseModel):
    """Contract row as stored by the backend."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tenant_id: Optional[str] = None
    client_id: str
    name: str = ""
    status: ContractStatus = ContractStatus.DRAFT
    total_value: float = 0.0
    currency: str = "USD"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    renewal_date: Optional[date] = None
    auto_renewal: bool = False
    template_id: Optional[str] = None
    pricing_rule_id: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class ContractCreate(BaseModel):
    """Payload for creating a draft contract.

    Only types are enforced here; field rules are checked by
    ``validate_contract`` so they can be reported together.
    """

    tenant_id: Optional[str] = None
    client_id: str = ""
    name: str = ""
    total_value: float = Field(default=0.0, ge=0)
    currency: str = "USD"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    auto_renewal: bool = False
    template_id: Optional[str] = None
    pricing_rule_id: Optional[str] = None


class ContractUpdate(BaseModel):
    """Partial contract changes, validated against the stored contract."""

    client_id: Optional[str] = None
    name: Optional[str] = None
    total_value: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    auto_renewal: Optional[bool] = None
    template_id: Optional[str] = None
    pricing_rule_id: Optional[str] = None


class ContractFieldError(BaseModel):
    field: str
    message: str


class ContractValidationResult(BaseModel):
    """Outcome of checking contract fields; errors block creation, warnings do not."""

    is_valid: bool
    errors: List[ContractFieldError] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class StatusTransition(BaseModel):
    """Result of checking a status change against the transition table."""

    from_status: ContractStatus = Field(alias="from")
    to_status: ContractStatus = Field(alias="to")
    is_valid: bool
    required_approvals: int = 0
    reason: str = ""

    model_config = ConfigDict(populate_by_name=True)


class ApprovalRecord(BaseModel):
    """Decision recorded at one approval level."""

    level: int
    decision: ApprovalDecision
    approver_id: Optional[str] = None
    comments: Optional[str] = None
    decided_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ApprovalWorkflow(BaseModel):
    """Multi-level approval process for a contract transition."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    contract_id: str
    approval_levels: int = Field(ge=1)
    current_level: int = 1
    timeout_hours: int = Field(default=48, ge=1)
    approvers: List[str] = Field(default_factory=list)
    decisions: List[ApprovalRecord] = Field(default_factory=list)
    is_complete: bool = False
    status: ApprovalStatus = ApprovalStatus.PENDING
    target_status: Optional[ContractStatus] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def is_terminal(self) -> bool:
        return self.status != ApprovalStatus.PENDING


class ContractErrorLog(BaseModel):
    """Contract error record persisted for operations review."""

    contract_id: str
    error_type: str
    error_message: str
    error_details: Dict[str, Any] = Field(default_factory=dict)
    severity: str = "medium"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StatusUpdateRequest(BaseModel):
    status: ContractStatus
    reason: Optional[str] = None


class RenewalRequest(BaseModel):
    renewal_date: date


class ApprovalInitiateRequest(BaseModel):
    levels: int = Field(ge=1)
    timeout_hours: Optional[int] = Field(default=None, ge=1)
    target_status: Optional[ContractStatus] = None
    approvers: List[str] = Field(default_factory=list)


class ApprovalDecisionRequest(BaseModel):
    decision: ApprovalDecision
    comments: Optional[str] = None

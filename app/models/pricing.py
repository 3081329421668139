"""Pricing rule and calculation models.

Discount and tax rules are tagged unions discriminated on ``kind`` so that a
rule set is fully validated when it is built rather than probed at use time.
Free-form rule maps as stored in ``pricing_rules`` rows are converted with
:func:`discount_rules_from_mapping` and :func:`tax_rules_from_mapping`.
"""

import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PercentageDiscount(BaseModel):
    kind: Literal["percentage"] = "percentage"
    percentage: float = Field(gt=0, le=100)


class FixedDiscount(BaseModel):
    kind: Literal["fixed"] = "fixed"
    amount: float = Field(gt=0)


class VolumeTier(BaseModel):
    """Discount bracket keyed by purchased quantity range (inclusive)."""

    min_quantity: int = Field(ge=0, alias="minQuantity")
    max_quantity: Optional[int] = Field(default=None, alias="maxQuantity")
    discount: float = Field(ge=0, le=100)

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _check_range(self):
        if self.max_quantity is not None and self.max_quantity < self.min_quantity:
            raise ValueError("maxQuantity must not be below minQuantity")
        return self

    def matches(self, quantity: int) -> bool:
        upper = self.max_quantity if self.max_quantity is not None else float("inf")
        return self.min_quantity <= quantity <= upper


class VolumeDiscount(BaseModel):
    kind: Literal["volume"] = "volume"
    tiers: List[VolumeTier] = Field(min_length=1)

    def tier_for(self, quantity: int) -> Optional[VolumeTier]:
        """Return the first tier covering ``quantity``."""
        for tier in self.tiers:
            if tier.matches(quantity):
                return tier
        return None


class StandardTax(BaseModel):
    kind: Literal["standard"] = "standard"
    rate: float = Field(ge=0)


class AdditionalTax(BaseModel):
    kind: Literal["additional"] = "additional"
    name: str = Field(min_length=1)
    rate: float = Field(ge=0)


DiscountRule = Annotated[
    Union[PercentageDiscount, FixedDiscount, VolumeDiscount],
    Field(discriminator="kind"),
]
TaxRule = Annotated[Union[StandardTax, AdditionalTax], Field(discriminator="kind")]


def _check_discount_rules(rules: List[Any]) -> List[Any]:
    kinds = [rule.kind for rule in rules]
    duplicates = sorted({kind for kind in kinds if kinds.count(kind) > 1})
    if duplicates:
        raise ValueError(f"Duplicate discount rule kinds: {', '.join(duplicates)}")
    return rules


def _check_tax_rules(rules: List[Any]) -> List[Any]:
    standard = [rule for rule in rules if rule.kind == "standard"]
    if len(standard) > 1:
        raise ValueError("Only one standard tax rate may be given")
    names = [rule.name for rule in rules if rule.kind == "additional"]
    if len(names) != len(set(names)):
        raise ValueError("Additional tax names must be unique")
    return rules


def discount_rules_from_mapping(mapping: Optional[Dict[str, Any]]) -> List[Any]:
    """Convert a free-form discount map into typed discount rules.

    Args:
        mapping: e.g. ``{"percentage": 10, "fixed": 50, "volume": [...]}``

    Returns:
        List of discount rules; zero and missing values are skipped
    """
    mapping = mapping or {}
    rules: List[Any] = []
    if mapping.get("percentage"):
        rules.append(PercentageDiscount(percentage=mapping["percentage"]))
    if mapping.get("fixed"):
        rules.append(FixedDiscount(amount=mapping["fixed"]))
    if mapping.get("volume"):
        rules.append(VolumeDiscount(tiers=mapping["volume"]))
    return rules


def tax_rules_from_mapping(mapping: Optional[Dict[str, Any]]) -> List[Any]:
    """Convert a free-form tax map into typed tax rules.

    Args:
        mapping: e.g. ``{"rate": 8.5, "additional": {"vat": {"rate": 20}}}``

    Returns:
        List of tax rules
    """
    mapping = mapping or {}
    rules: List[Any] = []
    if mapping.get("rate"):
        rules.append(StandardTax(rate=mapping["rate"]))
    for name, rule in (mapping.get("additional") or {}).items():
        rules.append(AdditionalTax(name=name, rate=rule.get("rate", 0)))
    return rules


class PricingParams(BaseModel):
    """Inputs to a pricing calculation."""

    base_amount: float
    currency: str
    quantity: Optional[int] = None
    discount_rules: Optional[List[DiscountRule]] = None
    tax_rules: Optional[List[TaxRule]] = None

    @field_validator("discount_rules")
    @classmethod
    def _unique_discounts(cls, value):
        return _check_discount_rules(value) if value else value

    @field_validator("tax_rules")
    @classmethod
    def _unique_taxes(cls, value):
        return _check_tax_rules(value) if value else value


class PricingRule(BaseModel):
    """Named, reusable rule set stored in ``pricing_rules``."""

    id: str
    tenant_id: Optional[str] = None
    name: str = ""
    discount_rules: List[DiscountRule] = Field(default_factory=list)
    tax_rules: List[TaxRule] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("discount_rules", mode="before")
    @classmethod
    def _coerce_discounts(cls, value):
        if isinstance(value, dict):
            return discount_rules_from_mapping(value)
        return value or []

    @field_validator("tax_rules", mode="before")
    @classmethod
    def _coerce_taxes(cls, value):
        if isinstance(value, dict):
            return tax_rules_from_mapping(value)
        return value or []

    @field_validator("discount_rules")
    @classmethod
    def _unique_discounts(cls, value):
        return _check_discount_rules(value)

    @field_validator("tax_rules")
    @classmethod
    def _unique_taxes(cls, value):
        return _check_tax_rules(value)


class PricingCalculation(BaseModel):
    """Result of a pricing calculation, errors and warnings included."""

    base_price: float = 0.0
    discount_amount: float = 0.0
    tax_amount: float = 0.0
    final_price: float = 0.0
    currency: str
    breakdown: Dict[str, Any] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


class PricingHistoryEntry(BaseModel):
    """Append-only audit record of a pricing change."""

    id: str = Field(default_factory=lambda: f"history_{uuid.uuid4().hex}")
    contract_id: str
    tenant_id: Optional[str] = None
    change_type: str
    old_values: Dict[str, Any] = Field(default_factory=dict)
    new_values: Dict[str, Any] = Field(default_factory=dict)
    change_reason: Optional[str] = None
    calculation_details: Dict[str, Any] = Field(default_factory=dict)
    changed_by: Optional[str] = None
    changed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(extra="ignore", frozen=True)


class PricingCalculateRequest(BaseModel):
    params: PricingParams
    pricing_rule_id: Optional[str] = None


class PricingHistoryCreate(BaseModel):
    change_type: str = Field(min_length=1)
    old_values: Dict[str, Any] = Field(default_factory=dict)
    new_values: Dict[str, Any] = Field(default_factory=dict)
    calculation_details: Dict[str, Any] = Field(default_factory=dict)
    change_reason: Optional[str] = None

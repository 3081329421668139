"""Pricing calculator and append-only pricing history."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.clients.base import Backend
from app.models.pricing import (
    PricingCalculation,
    PricingHistoryEntry,
    PricingParams,
    PricingRule,
)

logger = logging.getLogger(__name__)

PRICING_RULES_TABLE = "pricing_rules"
PRICING_HISTORY_TABLE = "contract_pricing_history"

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}


class PricingEngine:
    """Deterministic discount, tax and final price computation."""

    def __init__(
        self,
        backend: Backend,
        supported_currencies: Sequence[str] = ("USD", "EUR", "GBP"),
        max_discount_ratio: float = 0.95,
    ):
        """Initialize pricing engine.

        Args:
            backend: Backend holding pricing rules and history
            supported_currencies: Accepted ISO currency codes
            max_discount_ratio: Cap on total discount as a share of base price
        """
        self.backend = backend
        self.supported_currencies = frozenset(supported_currencies)
        self.max_discount_ratio = max_discount_ratio

    def validate_currency(self, currency: str) -> bool:
        return currency in self.supported_currencies

    @staticmethod
    def format_currency(amount: float, currency: str) -> str:
        symbol = CURRENCY_SYMBOLS.get(currency)
        if symbol is None:
            return f"{currency} {amount:,.2f}"
        sign = "-" if amount < 0 else ""
        return f"{sign}{symbol}{abs(amount):,.2f}"

    def calculate_discount(
        self, base_price: float, rules: Sequence[Any], quantity: int = 1
    ) -> Tuple[float, float, Dict[str, Any]]:
        """Sum the applicable discounts for ``base_price``.

        Returns:
            Tuple of (capped discount, requested discount, per-rule details)
        """
        requested = 0.0
        details: Dict[str, Any] = {}

        for rule in rules:
            if rule.kind == "percentage":
                amount = base_price * (rule.percentage / 100)
                details["percentage"] = {"rate": rule.percentage, "amount": amount}
            elif rule.kind == "fixed":
                amount = rule.amount
                details["fixed"] = {"amount": amount}
            else:
                tier = rule.tier_for(quantity)
                if tier is None:
                    continue
                amount = base_price * (tier.discount / 100)
                details["volume"] = {
                    "tier": tier.model_dump(by_alias=True),
                    "quantity": quantity,
                    "amount": amount,
                }
            requested += amount

        cap = base_price * self.max_discount_ratio
        return min(requested, cap), requested, details

    @staticmethod
    def calculate_tax(
        amount: float, rules: Sequence[Any]
    ) -> Tuple[float, Dict[str, Any]]:
        """Sum the standard and additional taxes on ``amount``.

        Returns:
            Tuple of (tax amount, per-rule details)
        """
        tax_amount = 0.0
        details: Dict[str, Any] = {}

        for rule in rules:
            tax = amount * (rule.rate / 100)
            tax_amount += tax
            key = "standard" if rule.kind == "standard" else rule.name
            details[key] = {"rate": rule.rate, "amount": tax}

        return tax_amount, details

    async def get_pricing_rule(self, pricing_rule_id: str) -> Optional[PricingRule]:
        """Fetch a named pricing rule; fetch failures yield None."""
        try:
            row = await self.backend.select_one(PRICING_RULES_TABLE, {"id": pricing_rule_id})
            return PricingRule.model_validate(row) if row else None
        except Exception as e:
            logger.warning(
                f"Failed to fetch pricing rule {pricing_rule_id}, "
                f"falling back to supplied rules: {e}"
            )
            return None

    async def calculate(
        self, params: PricingParams, pricing_rule_id: Optional[str] = None
    ) -> PricingCalculation:
        """Calculate the price for ``params``.

        Args:
            params: Base amount, currency, quantity and optional rules
            pricing_rule_id: Named rule set taking precedence over the
                supplied rules when it can be loaded

        Returns:
            PricingCalculation; input errors yield a zeroed result
        """
        errors: List[str] = []
        warnings: List[str] = []

        if not params.base_amount or params.base_amount <= 0:
            errors.append("Base amount must be greater than 0")

        if not self.validate_currency(params.currency):
            errors.append("Invalid currency code")

        if errors:
            return PricingCalculation(currency=params.currency, errors=errors)

        pricing_rule = None
        if pricing_rule_id:
            pricing_rule = await self.get_pricing_rule(pricing_rule_id)

        quantity = params.quantity if params.quantity and params.quantity > 0 else 1
        base_price = params.base_amount * quantity

        if pricing_rule and pricing_rule.discount_rules:
            discount_rules = pricing_rule.discount_rules
        else:
            discount_rules = params.discount_rules or []

        if pricing_rule and pricing_rule.tax_rules:
            tax_rules = pricing_rule.tax_rules
        else:
            tax_rules = params.tax_rules or []

        discount_amount, requested_discount, discount_details = self.calculate_discount(
            base_price, discount_rules, quantity
        )

        taxable_amount = base_price - discount_amount
        tax_amount, tax_details = self.calculate_tax(taxable_amount, tax_rules)

        final_price = taxable_amount + tax_amount

        if final_price < 0:
            errors.append("Final price cannot be negative")

        if requested_discount > base_price * self.max_discount_ratio:
            warnings.append(
                f"Discount exceeds {self.max_discount_ratio:.0%} of base price"
            )

        breakdown = {
            "base": base_price,
            "quantity": quantity,
            "discount": discount_details,
            "tax": tax_details,
            "final": final_price,
        }
        if pricing_rule:
            breakdown["pricing_rule_id"] = pricing_rule.id

        return PricingCalculation(
            base_price=base_price,
            discount_amount=discount_amount,
            tax_amount=tax_amount,
            final_price=final_price,
            currency=params.currency,
            breakdown=breakdown,
            errors=errors,
            warnings=warnings,
        )

    async def save_pricing_history(
        self,
        contract_id: str,
        change_type: str,
        old_values: Dict[str, Any],
        new_values: Dict[str, Any],
        calculation_details: Dict[str, Any],
        change_reason: Optional[str] = None,
        changed_by: Optional[str] = None,
        tenant_id: Optional[str] = None,
    ) -> PricingHistoryEntry:
        """Append a pricing history entry."""
        entry = PricingHistoryEntry(
            contract_id=contract_id,
            tenant_id=tenant_id,
            change_type=change_type,
            old_values=old_values,
            new_values=new_values,
            change_reason=change_reason,
            calculation_details=calculation_details,
            changed_by=changed_by,
        )
        row = await self.backend.insert(PRICING_HISTORY_TABLE, entry.model_dump(mode="json"))
        logger.info(
            f"Saved pricing history {entry.id} for contract {contract_id}: {change_type}"
        )
        return PricingHistoryEntry.model_validate(row)

    async def get_history_entry(self, history_id: str) -> Optional[PricingHistoryEntry]:
        row = await self.backend.select_one(PRICING_HISTORY_TABLE, {"id": history_id})
        return PricingHistoryEntry.model_validate(row) if row else None

    async def fetch_pricing_history(self, contract_id: str) -> List[PricingHistoryEntry]:
        """List a contract's pricing history, newest first."""
        rows = await self.backend.select(PRICING_HISTORY_TABLE, {"contract_id": contract_id})
        entries = [PricingHistoryEntry.model_validate(row) for row in rows]
        return sorted(entries, key=lambda entry: entry.changed_at, reverse=True)

    async def rollback_pricing(
        self, history_id: str, changed_by: Optional[str] = None
    ) -> Optional[PricingHistoryEntry]:
        """Append a compensating entry that reverses ``history_id``.

        The original entry is left untouched.

        Returns:
            The rollback entry, or None if ``history_id`` is unknown
        """
        original = await self.get_history_entry(history_id)
        if original is None:
            logger.warning(f"Pricing history entry not found: {history_id}")
            return None

        logger.info(f"Rolling back pricing for history entry {history_id}")
        return await self.save_pricing_history(
            original.contract_id,
            "rollback",
            old_values=original.new_values,
            new_values=original.old_values,
            calculation_details={"rollback_from": history_id},
            change_reason="Manual rollback",
            changed_by=changed_by,
            tenant_id=original.tenant_id,
        )

"""Tests for pricing calculation and history."""

import pytest
from pydantic import ValidationError

from app.clients import BackendError, InMemoryBackend
from app.models.pricing import (
    PricingParams,
    PricingRule,
    discount_rules_from_mapping,
    tax_rules_from_mapping,
)
from app.services.pricing_engine import PRICING_RULES_TABLE, PricingEngine

VOLUME_TIERS = [
    {"minQuantity": 1, "maxQuantity": 9, "discount": 0},
    {"minQuantity": 10, "maxQuantity": 49, "discount": 5},
    {"minQuantity": 50, "discount": 10},
]


class BrokenRulesBackend(InMemoryBackend):
    async def select(self, table, filters=None):
        if table == PRICING_RULES_TABLE:
            raise BackendError("pricing rules unavailable")
        return await super().select(table, filters)


@pytest.fixture
def engine(backend):
    return PricingEngine(backend)


def params(**overrides):
    fields = {"base_amount": 1000, "currency": "USD"}
    fields.update(overrides)
    return PricingParams.model_validate(fields)


@pytest.mark.asyncio
async def test_plain_price(engine):
    result = await engine.calculate(params())

    assert result.base_price == 1000
    assert result.discount_amount == 0
    assert result.tax_amount == 0
    assert result.final_price == 1000
    assert result.errors == []
    assert result.warnings == []


@pytest.mark.asyncio
async def test_quantity_multiplies_base(engine):
    result = await engine.calculate(params(base_amount=500, quantity=2))

    assert result.base_price == 1000
    assert result.breakdown["quantity"] == 2


@pytest.mark.asyncio
async def test_discount_then_tax(engine):
    result = await engine.calculate(
        params(
            discount_rules=[
                {"kind": "percentage", "percentage": 10},
                {"kind": "fixed", "amount": 50},
            ],
            tax_rules=[
                {"kind": "standard", "rate": 10},
                {"kind": "additional", "name": "regional", "rate": 2},
            ],
        )
    )

    assert result.discount_amount == pytest.approx(150)
    assert result.tax_amount == pytest.approx(102)
    assert result.final_price == pytest.approx(952)
    assert result.breakdown["discount"]["percentage"]["amount"] == pytest.approx(100)
    assert result.breakdown["tax"]["regional"]["amount"] == pytest.approx(17)


@pytest.mark.asyncio
async def test_discount_capped_at_ninety_five_percent(engine):
    result = await engine.calculate(
        params(discount_rules=[{"kind": "percentage", "percentage": 99}])
    )

    assert result.discount_amount == pytest.approx(950)
    assert result.final_price == pytest.approx(50)
    assert result.warnings == ["Discount exceeds 95% of base price"]
    assert result.errors == []


@pytest.mark.asyncio
@pytest.mark.parametrize("quantity, expected_discount", [(5, 0), (20, 50), (50, 100)])
async def test_volume_tiers(engine, quantity, expected_discount):
    result = await engine.calculate(
        params(
            base_amount=1000 / quantity,
            quantity=quantity,
            discount_rules=[{"kind": "volume", "tiers": VOLUME_TIERS}],
        )
    )

    assert result.discount_amount == pytest.approx(expected_discount)


@pytest.mark.asyncio
async def test_volume_without_quantity_uses_one(engine):
    result = await engine.calculate(
        params(discount_rules=[{"kind": "volume", "tiers": VOLUME_TIERS}])
    )

    assert result.breakdown["discount"]["volume"]["quantity"] == 1
    assert result.discount_amount == 0


@pytest.mark.asyncio
async def test_invalid_currency(engine):
    result = await engine.calculate(params(currency="JPY"))

    assert result.errors == ["Invalid currency code"]
    assert result.final_price == 0
    assert result.is_valid is False


@pytest.mark.asyncio
async def test_invalid_base_amount_and_currency(engine):
    result = await engine.calculate(params(base_amount=0, currency="XYZ"))

    assert result.errors == ["Base amount must be greater than 0", "Invalid currency code"]
    assert result.base_price == 0


def test_negative_tax_rates_rejected():
    with pytest.raises(ValidationError):
        params(tax_rules=[{"kind": "standard", "rate": -5}])


def test_duplicate_rule_kinds_rejected():
    with pytest.raises(ValidationError):
        params(
            discount_rules=[
                {"kind": "fixed", "amount": 10},
                {"kind": "fixed", "amount": 20},
            ]
        )


@pytest.mark.asyncio
async def test_named_rule_takes_precedence(engine):
    result = await engine.calculate(
        params(discount_rules=[{"kind": "fixed", "amount": 500}]),
        pricing_rule_id="rule-standard",
    )

    # 10% discount and 8% tax from the stored rule
    assert result.discount_amount == pytest.approx(100)
    assert result.tax_amount == pytest.approx(72)
    assert result.breakdown["pricing_rule_id"] == "rule-standard"


@pytest.mark.asyncio
async def test_unknown_rule_falls_back_to_supplied_rules(engine):
    result = await engine.calculate(
        params(discount_rules=[{"kind": "fixed", "amount": 500}]),
        pricing_rule_id="rule-missing",
    )

    assert result.discount_amount == 500
    assert "pricing_rule_id" not in result.breakdown


@pytest.mark.asyncio
async def test_rule_fetch_failure_falls_back_to_supplied_rules():
    engine = PricingEngine(BrokenRulesBackend())

    result = await engine.calculate(
        params(discount_rules=[{"kind": "fixed", "amount": 200}]),
        pricing_rule_id="rule-standard",
    )

    assert result.discount_amount == 200
    assert result.errors == []


def test_rule_mappings():
    discounts = discount_rules_from_mapping({"percentage": 15, "fixed": 0, "volume": VOLUME_TIERS})
    taxes = tax_rules_from_mapping({"rate": 7.5, "additional": {"county": {"rate": 1}}})

    assert [rule.kind for rule in discounts] == ["percentage", "volume"]
    assert [(rule.kind, rule.rate) for rule in taxes] == [("standard", 7.5), ("additional", 1)]

    rule = PricingRule.model_validate(
        {"id": "r1", "discount_rules": {"fixed": 25}, "tax_rules": None}
    )
    assert rule.discount_rules[0].amount == 25
    assert rule.tax_rules == []


def test_format_currency():
    assert PricingEngine.format_currency(1234.5, "USD") == "$1,234.50"
    assert PricingEngine.format_currency(-20, "GBP") == "-£20.00"
    assert PricingEngine.format_currency(10, "CHF") == "CHF 10.00"


def test_supported_currencies_are_configurable(backend):
    engine = PricingEngine(backend, supported_currencies=["USD", "CAD"])

    assert engine.validate_currency("CAD") is True
    assert engine.validate_currency("EUR") is False


@pytest.mark.asyncio
async def test_history_round_trip(engine):
    calculation = await engine.calculate(params())
    entry = await engine.save_pricing_history(
        "contract-1",
        "price_update",
        old_values={"total_value": 900},
        new_values={"total_value": calculation.final_price},
        calculation_details=calculation.breakdown,
        change_reason="Annual review",
        changed_by="user-1",
    )

    history = await engine.fetch_pricing_history("contract-1")

    assert [item.id for item in history] == [entry.id]
    assert entry.id.startswith("history_")
    assert history[0].new_values == {"total_value": 1000}
    assert history[0].calculation_details["final"] == 1000


@pytest.mark.asyncio
async def test_rollback_is_additive(engine):
    original = await engine.save_pricing_history(
        "contract-1",
        "price_update",
        old_values={"total_value": 900},
        new_values={"total_value": 1000},
        calculation_details={},
    )

    rollback = await engine.rollback_pricing(original.id, changed_by="user-2")

    assert rollback.change_type == "rollback"
    assert rollback.old_values == {"total_value": 1000}
    assert rollback.new_values == {"total_value": 900}
    assert rollback.calculation_details == {"rollback_from": original.id}

    history = await engine.fetch_pricing_history("contract-1")
    assert len(history) == 2
    unchanged = await engine.get_history_entry(original.id)
    assert unchanged == original


@pytest.mark.asyncio
async def test_rollback_unknown_entry(engine):
    assert await engine.rollback_pricing("history_missing") is None

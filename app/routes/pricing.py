"""Pricing calculation and history endpoints."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from app.models.pricing import (
    PricingCalculateRequest,
    PricingCalculation,
    PricingHistoryCreate,
    PricingHistoryEntry,
)
from app.routes.deps import get_current_user_id, get_pricing
from app.services.pricing_engine import PricingEngine

router = APIRouter(dependencies=[Depends(get_current_user_id)])


@router.post("/pricing/calculate", response_model=PricingCalculation)
async def calculate_pricing(
    payload: PricingCalculateRequest, pricing: PricingEngine = Depends(get_pricing)
):
    """Calculate a price; input problems are returned in ``errors``."""
    return await pricing.calculate(payload.params, payload.pricing_rule_id)


@router.get(
    "/contracts/{contract_id}/pricing-history",
    response_model=List[PricingHistoryEntry],
)
async def list_pricing_history(
    contract_id: str, pricing: PricingEngine = Depends(get_pricing)
):
    return await pricing.fetch_pricing_history(contract_id)


@router.post(
    "/contracts/{contract_id}/pricing-history",
    response_model=PricingHistoryEntry,
    status_code=status.HTTP_201_CREATED,
)
async def save_pricing_history(
    contract_id: str,
    payload: PricingHistoryCreate,
    user_id: str = Depends(get_current_user_id),
    pricing: PricingEngine = Depends(get_pricing),
):
    return await pricing.save_pricing_history(
        contract_id,
        payload.change_type,
        payload.old_values,
        payload.new_values,
        payload.calculation_details,
        change_reason=payload.change_reason,
        changed_by=user_id,
    )


@router.post(
    "/pricing-history/{history_id}/rollback",
    response_model=PricingHistoryEntry,
    status_code=status.HTTP_201_CREATED,
)
async def rollback_pricing(
    history_id: str,
    user_id: str = Depends(get_current_user_id),
    pricing: PricingEngine = Depends(get_pricing),
):
    """Append a rollback entry reversing ``history_id``."""
    entry = await pricing.rollback_pricing(history_id, changed_by=user_id)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"History entry not found: {history_id}",
        )
    return entry

"""Live preview support for the settlement form.

The preview runs the same ApportionmentCalculator the service uses on save.
It only differs in how forgiving it is about a half-filled form: absent
top-level fields take the blank-form defaults before validation.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field

from .calculator import (
    ApportionmentCalculator,
    calculate_item_reduction,
    calculate_reduction_pool,
    calculate_settlement,
    calculate_total_damages,
)
from .config import ApportionConfig
from .models import (
    OUTPUT_MODEL_CONFIG,
    LineItemCategory,
    ReductionType,
    Settlement,
    SettlementBreakdown,
)
from .validation import parse_settlement

# What a freshly opened settlement form submits.
BLANK_FORM: dict[str, Any] = {
    "totalSettlementAmount": 0,
    "caseExpenses": 0,
    "attorneyFees": {"type": "percentage", "amount": 0},
    "medicalPayment": 0,
    "medicalProviders": [],
    "preSettlementLoans": [],
    "liens": [],
}


class StrategyComparison(BaseModel):
    """Both candidate reductions for one line item, side by side."""
    model_config = OUTPUT_MODEL_CONFIG

    category: LineItemCategory
    identifier: str
    amount: Decimal
    percentage_rate: Decimal = Field(
        description="Percent used for the percentage column"
    )
    percentage_reduction: Decimal
    prorata_reduction: Decimal
    selected_type: ReductionType
    selected_reduction: Decimal
    final_amount: Decimal


def with_blank_defaults(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Merge a partial payload over the blank form.

    Keys set to None count as absent.
    """
    merged = dict(BLANK_FORM)
    merged.update({k: v for k, v in payload.items() if v is not None})
    return merged


def preview_settlement(
    payload: Mapping[str, Any],
    calculator: Optional[ApportionmentCalculator] = None,
    config: Optional[ApportionConfig] = None,
) -> SettlementBreakdown:
    """Calculate a breakdown for a possibly incomplete form payload.

    Raises:
        ValidationError: If a field that is present is malformed.
    """
    if isinstance(payload, Mapping):
        payload = with_blank_defaults(payload)
    settlement = parse_settlement(payload, strict=False, config=config)
    return calculate_settlement(settlement, calculator)


def compare_strategies(
    settlement: Settlement,
    calculator: Optional[ApportionmentCalculator] = None,
) -> list[StrategyComparison]:
    """Percentage and pro rata reductions for every item.

    Lets the user see what switching an item's reduction type would do
    before committing to it. The selected figures match what
    ``calculate_settlement`` reports.

    Percentage items are compared at their own rate. A pro rata item with
    no rate of its own is compared at its category's default percentage
    when that default is a percentage policy.
    """
    calculator = calculator or ApportionmentCalculator()
    breakdown = calculator.calculate(settlement)
    total_damages = calculate_total_damages(settlement.all_items)
    reduction_pool = calculate_reduction_pool(settlement.total_settlement_amount)

    comparisons: list[StrategyComparison] = []
    for category in LineItemCategory:
        items = settlement.items_for(category)
        results = breakdown.category(category).per_item
        policy = settlement.reductions.for_category(category)
        for item, result in zip(items, results):
            rate = item.reduction_value
            if (
                item.reduction_type == ReductionType.PRORATA
                and item.reduction_value == 0
                and policy.policy_type == ReductionType.PERCENTAGE
            ):
                rate = policy.value
            percentage = calculate_item_reduction(
                item.amount,
                ReductionType.PERCENTAGE,
                rate,
                total_damages,
                reduction_pool,
            )
            prorata = calculate_item_reduction(
                item.amount,
                ReductionType.PRORATA,
                item.reduction_value,
                total_damages,
                reduction_pool,
            )
            comparisons.append(StrategyComparison(
                category=category,
                identifier=item.identifier,
                amount=item.amount,
                percentage_rate=rate,
                percentage_reduction=calculator.round_money(percentage),
                prorata_reduction=calculator.round_money(prorata),
                selected_type=item.reduction_type,
                selected_reduction=result.reduction,
                final_amount=result.final_amount,
            ))
    return comparisons


__all__ = [
    "BLANK_FORM",
    "StrategyComparison",
    "compare_strategies",
    "preview_settlement",
    "with_blank_defaults",
]

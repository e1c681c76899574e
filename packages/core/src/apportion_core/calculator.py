"""Settlement apportionment calculations.

One implementation serves every caller: the service layer calls it when a
settlement is saved or updated and the interactive preview calls it on
every edit, so the two can never disagree about a result.

The calculation is a pure function of its input. Each call builds its own
audit log and warning list, so one calculator instance can be shared across
threads.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import structlog

from .config import ApportionConfig
from .models import (
    AttorneyFeeType,
    AttorneyFees,
    CalculationStep,
    CategoryBreakdown,
    LineItem,
    LineItemCategory,
    ReductionResult,
    ReductionType,
    Settlement,
    SettlementBreakdown,
    quantize_decimal,
)

logger = structlog.get_logger()

# The pro rata pool is one third of the gross settlement, regardless of how
# many categories or items take part.
PRORATA_POOL_DIVISOR = Decimal("3")

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def calculate_total_damages(items: list[LineItem]) -> Decimal:
    """Sum the amounts of pool-eligible items."""
    return sum(
        (item.amount for item in items if item.include_in_prorata_pool),
        ZERO,
    )


def calculate_reduction_pool(total_settlement_amount: Decimal) -> Decimal:
    """One third of the gross settlement."""
    return total_settlement_amount / PRORATA_POOL_DIVISOR


def calculate_item_reduction(
    amount: Decimal,
    reduction_type: ReductionType,
    reduction_value: Decimal,
    total_damages: Decimal,
    reduction_pool: Decimal,
) -> Decimal:
    """Reduction for a single line item, before rounding.

    Percentage items lose ``reduction_value`` percent of their amount. Pro
    rata items are paid their proportional share of the pool and the
    reduction is the gap between that share and the amount. Unless the pool
    damages are positive there is nothing to distribute and the reduction
    is zero.
    """
    if reduction_type == ReductionType.PERCENTAGE:
        return amount * reduction_value / HUNDRED
    if total_damages <= 0:
        return ZERO
    return amount - (amount / total_damages) * reduction_pool


def calculate_attorney_fee(
    total_settlement_amount: Decimal, attorney_fees: AttorneyFees
) -> Decimal:
    """Attorney fee amount, before rounding."""
    if attorney_fees.fee_type == AttorneyFeeType.PERCENTAGE:
        return total_settlement_amount * attorney_fees.amount / HUNDRED
    return attorney_fees.amount


class ApportionmentCalculator:
    """
    Apportion a settlement between fees, expenses, creditors and the client.

    Reported money amounts are quantized to ``money_places`` decimal places.
    Each item's final amount is derived from its rounded reduction, so
    ``reduction + final_amount == amount`` holds exactly and net proceeds
    reconcile exactly against the reported figures.
    """

    def __init__(
        self,
        money_places: Optional[int] = 2,
        rounding: str = ROUND_HALF_UP,
    ):
        """
        Initialize the calculator.

        Args:
            money_places: Decimal places for reported money. None keeps
                full Decimal precision.
            rounding: A ``decimal`` rounding constant.
        """
        self.money_places = money_places
        self.rounding = rounding
        self._quantum = (
            Decimal(1).scaleb(-money_places) if money_places is not None else None
        )

    @classmethod
    def from_config(cls, config: ApportionConfig) -> "ApportionmentCalculator":
        """Build a calculator from configuration."""
        return cls(
            money_places=config.money_places,
            rounding=config.rounding.decimal_rounding,
        )

    def round_money(self, value: Decimal) -> Decimal:
        """Quantize a money value to the configured places."""
        if self._quantum is None:
            return value
        return quantize_decimal(value, self._quantum, self.rounding)

    def _log_step(
        self,
        audit_log: list[CalculationStep],
        step: str,
        input_value: str,
        output_value: str,
        source: str,
        notes: Optional[str] = None,
    ) -> None:
        """Add an entry to the audit log."""
        audit_log.append(CalculationStep(
            step=step,
            input_value=input_value,
            output_value=output_value,
            source=source,
            notes=notes,
        ))
        logger.info(
            "settlement_calculation_step",
            step=step,
            input=input_value,
            output=output_value,
            source=source,
        )

    def _calculate_category(
        self,
        category: LineItemCategory,
        items: list[LineItem],
        total_damages: Decimal,
        reduction_pool: Decimal,
        audit_log: list[CalculationStep],
        warnings: list[str],
    ) -> CategoryBreakdown:
        """Apply each item's reduction policy and total the category."""
        results: list[ReductionResult] = []
        total = ZERO
        final_total = ZERO

        for i, item in enumerate(items):
            reduction = self.round_money(calculate_item_reduction(
                amount=item.amount,
                reduction_type=item.reduction_type,
                reduction_value=item.reduction_value,
                total_damages=total_damages,
                reduction_pool=reduction_pool,
            ))
            final_amount = item.amount - reduction

            if item.reduction_type == ReductionType.PERCENTAGE:
                input_value = f"{item.amount} * {item.reduction_value}%"
                source = "Percentage reduction"
            else:
                input_value = (
                    f"{item.amount} - ({item.amount} / {total_damages}) * {reduction_pool}"
                )
                source = "Pro rata share of one-third pool"

            self._log_step(
                audit_log,
                step=f"{category.value}_{i + 1}_reduction",
                input_value=input_value,
                output_value=f"reduction={reduction}, final={final_amount}",
                source=source,
                notes=item.identifier or None,
            )

            if item.reduction_type == ReductionType.PERCENTAGE and not (
                ZERO <= item.reduction_value <= HUNDRED
            ):
                warnings.append(
                    f"{category.value} item '{item.identifier}' has a reduction "
                    f"of {item.reduction_value}%, outside 0-100."
                )
            if final_amount < 0:
                warnings.append(
                    f"{category.value} item '{item.identifier}' has a negative "
                    f"final amount ({final_amount})."
                )

            results.append(ReductionResult(
                identifier=item.identifier,
                amount=item.amount,
                reduction=reduction,
                final_amount=final_amount,
                reduction_type=item.reduction_type,
                include_in_prorata_pool=item.include_in_prorata_pool,
                email=item.email,
            ))
            total += reduction
            final_total += final_amount

        self._log_step(
            audit_log,
            step=f"{category.value}_total",
            input_value=f"{len(items)} items",
            output_value=f"reductions={total}, final={final_total}",
            source="Category totals",
        )

        return CategoryBreakdown(
            category=category,
            total=total,
            final_total=final_total,
            per_item=results,
        )

    def calculate(self, settlement: Settlement) -> SettlementBreakdown:
        """
        Calculate fees, reductions and net proceeds for a settlement.

        Args:
            settlement: A validated settlement record

        Returns:
            SettlementBreakdown with per-item results, totals and audit log
        """
        audit_log: list[CalculationStep] = []
        warnings: list[str] = []
        gross = settlement.total_settlement_amount

        # Step 1: Reduction pool
        total_damages = calculate_total_damages(settlement.all_items)
        pool_members = sum(1 for item in settlement.all_items if item.include_in_prorata_pool)
        self._log_step(
            audit_log,
            step="total_damages",
            input_value=f"{pool_members} pool-eligible items",
            output_value=str(total_damages),
            source="Sum of amounts included in pro rata pool",
        )

        reduction_pool = calculate_reduction_pool(gross)
        self._log_step(
            audit_log,
            step="reduction_pool",
            input_value=f"{gross} / {PRORATA_POOL_DIVISOR}",
            output_value=str(self.round_money(reduction_pool)),
            source="One-third pro rata pool",
        )

        has_prorata_items = any(
            item.reduction_type == ReductionType.PRORATA
            for item in settlement.all_items
        )
        if has_prorata_items and total_damages <= 0:
            warnings.append(
                f"Total damages in the pro rata pool are {total_damages}; "
                "pro rata items receive no reduction."
            )

        # Step 2: Per-item reductions, by category
        breakdowns = {
            category: self._calculate_category(
                category,
                settlement.items_for(category),
                total_damages,
                reduction_pool,
                audit_log,
                warnings,
            )
            for category in LineItemCategory
        }

        # Step 3: Attorney fee
        fees = settlement.attorney_fees
        attorney_fee = self.round_money(calculate_attorney_fee(gross, fees))
        if fees.fee_type == AttorneyFeeType.PERCENTAGE:
            fee_input = f"{gross} * {fees.amount}%"
            if not ZERO <= fees.amount <= HUNDRED:
                warnings.append(
                    f"Attorney fee percentage {fees.amount}% is outside 0-100."
                )
        else:
            fee_input = f"specific {fees.amount}"
        self._log_step(
            audit_log,
            step="attorney_fee",
            input_value=fee_input,
            output_value=str(attorney_fee),
            source=f"Attorney fee ({fees.fee_type.value})",
        )

        # Step 4: Net proceeds
        medical_final = breakdowns[LineItemCategory.MEDICAL].final_total
        loans_final = breakdowns[LineItemCategory.LOANS].final_total
        liens_final = breakdowns[LineItemCategory.LIENS].final_total

        net_proceeds = (
            gross
            + settlement.medical_payment
            - settlement.case_expenses
            - attorney_fee
            - medical_final
            - loans_final
            - liens_final
        )
        self._log_step(
            audit_log,
            step="net_proceeds",
            input_value=(
                f"{gross} + {settlement.medical_payment} - {settlement.case_expenses} "
                f"- {attorney_fee} - {medical_final} - {loans_final} - {liens_final}"
            ),
            output_value=str(net_proceeds),
            source="Gross + medical payment - expenses - fees - creditor payments",
        )

        if net_proceeds < 0:
            warnings.append(
                f"Net proceeds are negative ({net_proceeds}). Fees, expenses and "
                "creditor payments exceed the settlement."
            )

        return SettlementBreakdown(
            gross_settlement=gross,
            case_expenses=settlement.case_expenses,
            attorney_fee_amount=attorney_fee,
            medical_payment=settlement.medical_payment,
            net_proceeds=net_proceeds,
            total_damages=total_damages,
            reduction_pool=self.round_money(reduction_pool),
            medical=breakdowns[LineItemCategory.MEDICAL],
            loans=breakdowns[LineItemCategory.LOANS],
            liens=breakdowns[LineItemCategory.LIENS],
            audit_log=audit_log,
            warnings=warnings,
        )


_default_calculator = ApportionmentCalculator()


def calculate_settlement(
    settlement: Settlement,
    calculator: Optional[ApportionmentCalculator] = None,
) -> SettlementBreakdown:
    """Calculate a settlement with the default (cent-rounded) calculator."""
    return (calculator or _default_calculator).calculate(settlement)


__all__ = [
    "PRORATA_POOL_DIVISOR",
    "ApportionmentCalculator",
    "calculate_attorney_fee",
    "calculate_item_reduction",
    "calculate_reduction_pool",
    "calculate_settlement",
    "calculate_total_damages",
]

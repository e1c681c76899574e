"""Tests for the settlement apportionment calculator."""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from apportion_core import (
    ApportionmentCalculator,
    AttorneyFees,
    AttorneyFeeType,
    Lien,
    LienType,
    MedicalProvider,
    PreSettlementLoan,
    ReductionType,
    Settlement,
    SettlementBreakdown,
    calculate_settlement,
)
from apportion_core.calculator import (
    calculate_attorney_fee,
    calculate_item_reduction,
    calculate_reduction_pool,
    calculate_total_damages,
)
from apportion_core.config import ApportionConfig


def _settlement(**overrides) -> Settlement:
    values = dict(
        total_settlement_amount=Decimal("9000"),
        case_expenses=Decimal("0"),
        attorney_fees=AttorneyFees(fee_type=AttorneyFeeType.SPECIFIC, amount=Decimal("0")),
        medical_payment=Decimal("0"),
    )
    values.update(overrides)
    return Settlement(**values)


@pytest.fixture
def prorata_settlement() -> Settlement:
    """Two pool-eligible medical bills of 3000 and 1000 on a 9000 settlement."""
    return _settlement(
        medical_providers=[
            MedicalProvider(
                identifier="City Hospital",
                amount=Decimal("3000"),
                reduction_type=ReductionType.PRORATA,
            ),
            MedicalProvider(
                identifier="Ortho Clinic",
                amount=Decimal("1000"),
                reduction_type=ReductionType.PRORATA,
            ),
        ],
    )


@pytest.fixture
def mixed_settlement() -> Settlement:
    """A settlement with items in every category and both strategies."""
    return Settlement(
        total_settlement_amount=Decimal("60000"),
        case_expenses=Decimal("1250"),
        attorney_fees=AttorneyFees(fee_type=AttorneyFeeType.PERCENTAGE, amount=Decimal("33.33")),
        medical_payment=Decimal("5000"),
        medical_providers=[
            MedicalProvider(identifier="ER Physicians", amount=Decimal("12500"),
                            reduction_type=ReductionType.PRORATA),
            MedicalProvider(identifier="Physical Therapy", amount=Decimal("4200"),
                            reduction_type=ReductionType.PERCENTAGE,
                            reduction_value=Decimal("30")),
        ],
        pre_settlement_loans=[
            PreSettlementLoan(identifier="Lawsuit Funding Co", amount=Decimal("7500"),
                              reduction_type=ReductionType.PERCENTAGE,
                              reduction_value=Decimal("15"),
                              include_in_prorata_pool=False),
        ],
        liens=[
            Lien(identifier="State Medicaid", amount=Decimal("9800"),
                 reduction_type=ReductionType.PRORATA, lien_type=LienType.HEALTH),
            Lien(identifier="Child Support Unit", amount=Decimal("2000"),
                 reduction_type=ReductionType.PERCENTAGE, lien_type=LienType.OTHER),
        ],
    )


class TestReductionPool:
    """Tests for the total damages and reduction pool helpers."""

    def test_pool_is_one_third_of_gross(self):
        """The pool should be a third of the settlement."""
        assert calculate_reduction_pool(Decimal("9000")) == Decimal("3000")

    def test_zero_settlement_yields_zero_pool(self):
        """A zero settlement should give a zero pool rather than an error."""
        assert calculate_reduction_pool(Decimal("0")) == Decimal("0")

    def test_total_damages_only_counts_pool_members(self):
        """Items outside the pool never enter total damages."""
        items = [
            MedicalProvider(identifier="A", amount=Decimal("3000"),
                            reduction_type=ReductionType.PRORATA),
            Lien(identifier="B", amount=Decimal("1000"),
                 reduction_type=ReductionType.PERCENTAGE),
            PreSettlementLoan(identifier="C", amount=Decimal("5000"),
                              reduction_type=ReductionType.PRORATA,
                              include_in_prorata_pool=False),
        ]
        assert calculate_total_damages(items) == Decimal("4000")

    def test_total_damages_empty(self):
        """No qualifying items should give zero damages."""
        assert calculate_total_damages([]) == Decimal("0")

    def test_pool_independent_of_categories(self, mixed_settlement: Settlement):
        """The pool depends on the gross only, not on pool membership."""
        result = calculate_settlement(mixed_settlement)
        assert result.reduction_pool == Decimal("20000.00")
        # 12500 + 4200 + 9800 + 2000; the loan is excluded
        assert result.total_damages == Decimal("28500")


class TestItemReduction:
    """Tests for the per-item reduction policy."""

    def test_percentage_reduction(self):
        """1000 at 20% should be reduced by 200."""
        reduction = calculate_item_reduction(
            Decimal("1000"), ReductionType.PERCENTAGE, Decimal("20"),
            Decimal("0"), Decimal("0"),
        )
        assert reduction == Decimal("200")

    def test_percentage_over_one_hundred_is_not_capped(self):
        """Reductions above 100% pass through unchanged."""
        reduction = calculate_item_reduction(
            Decimal("1000"), ReductionType.PERCENTAGE, Decimal("150"),
            Decimal("0"), Decimal("0"),
        )
        assert reduction == Decimal("1500")

    def test_prorata_reduction(self):
        """Pro rata reduction is the gap between amount and pool share."""
        reduction = calculate_item_reduction(
            Decimal("3000"), ReductionType.PRORATA, Decimal("0"),
            Decimal("4000"), Decimal("3000"),
        )
        assert reduction == Decimal("750")

    def test_prorata_with_no_damages_is_zero(self):
        """Without pool damages there is nothing to distribute."""
        reduction = calculate_item_reduction(
            Decimal("3000"), ReductionType.PRORATA, Decimal("0"),
            Decimal("0"), Decimal("3000"),
        )
        assert reduction == Decimal("0")

    def test_prorata_with_negative_damages_is_zero(self):
        """A negative damages total is treated like an empty pool."""
        reduction = calculate_item_reduction(
            Decimal("-100"), ReductionType.PRORATA, Decimal("0"),
            Decimal("-50"), Decimal("100"),
        )
        assert reduction == Decimal("0")

    def test_percentage_ignores_pool(self):
        """Percentage items are unaffected by the pool figures."""
        reduction = calculate_item_reduction(
            Decimal("1000"), ReductionType.PERCENTAGE, Decimal("10"),
            Decimal("4000"), Decimal("3000"),
        )
        assert reduction == Decimal("100")


class TestAttorneyFee:
    """Tests for attorney fee modes."""

    def test_percentage_fee(self):
        """33% of 10000 is 3300."""
        fees = AttorneyFees(fee_type=AttorneyFeeType.PERCENTAGE, amount=Decimal("33"))
        assert calculate_attorney_fee(Decimal("10000"), fees) == Decimal("3300")

    def test_specific_fee(self):
        """A specific fee is taken as given."""
        fees = AttorneyFees(fee_type=AttorneyFeeType.SPECIFIC, amount=Decimal("5000"))
        assert calculate_attorney_fee(Decimal("10000"), fees) == Decimal("5000")

    def test_fee_in_breakdown(self):
        """The breakdown should report the computed fee amount."""
        settlement = _settlement(
            total_settlement_amount=Decimal("10000"),
            attorney_fees=AttorneyFees(fee_type=AttorneyFeeType.PERCENTAGE, amount=Decimal("33")),
        )
        result = calculate_settlement(settlement)
        assert result.attorney_fee_amount == Decimal("3300")


class TestApportionmentCalculator:
    """Test suite for ApportionmentCalculator."""

    def test_calculate_returns_breakdown(self, prorata_settlement: Settlement):
        """Calculator should return a SettlementBreakdown."""
        result = ApportionmentCalculator().calculate(prorata_settlement)

        assert isinstance(result, SettlementBreakdown)
        assert result.gross_settlement == Decimal("9000")

    def test_prorata_correctness(self, prorata_settlement: Settlement):
        """3000 and 1000 sharing a 3000 pool are reduced by 750 and 250."""
        result = calculate_settlement(prorata_settlement)

        assert result.reduction_pool == Decimal("3000")
        assert result.total_damages == Decimal("4000")

        hospital, clinic = result.medical.per_item
        assert hospital.reduction == Decimal("750")
        assert hospital.final_amount == Decimal("2250")
        assert clinic.reduction == Decimal("250")
        assert clinic.final_amount == Decimal("750")

    def test_category_totals(self, prorata_settlement: Settlement):
        """Category total is the sum of reductions."""
        result = calculate_settlement(prorata_settlement)

        assert result.medical.total == Decimal("1000")
        assert result.medical.final_total == Decimal("3000")
        assert result.loans.total == Decimal("0")
        assert result.loans.per_item == []
        assert result.liens.per_item == []

    def test_percentage_correctness(self):
        """1000 at 20% leaves 800."""
        settlement = _settlement(
            pre_settlement_loans=[
                PreSettlementLoan(identifier="Advance Co", amount=Decimal("1000"),
                                  reduction_type=ReductionType.PERCENTAGE,
                                  reduction_value=Decimal("20")),
            ],
        )
        result = calculate_settlement(settlement)

        loan = result.loans.per_item[0]
        assert loan.reduction == Decimal("200")
        assert loan.final_amount == Decimal("800")

    def test_net_proceeds_reconciliation(self):
        """9000 - 500 - 2970 - 3000 leaves 2530 for the client."""
        settlement = Settlement(
            total_settlement_amount=Decimal("9000"),
            case_expenses=Decimal("500"),
            attorney_fees=AttorneyFees(fee_type=AttorneyFeeType.PERCENTAGE, amount=Decimal("33")),
            medical_payment=Decimal("0"),
            medical_providers=[
                MedicalProvider(identifier="Hospital", amount=Decimal("4000"),
                                reduction_type=ReductionType.PERCENTAGE,
                                reduction_value=Decimal("25")),
            ],
        )
        result = calculate_settlement(settlement)

        assert result.attorney_fee_amount == Decimal("2970")
        assert result.medical.per_item[0].reduction == Decimal("1000")
        assert result.medical.per_item[0].final_amount == Decimal("3000")
        assert result.net_proceeds == Decimal("2530")

    def test_medical_payment_is_credited(self):
        """Medical payment is added back into proceeds."""
        settlement = _settlement(medical_payment=Decimal("1500"))
        result = calculate_settlement(settlement)

        assert result.net_proceeds == Decimal("10500")

    def test_net_proceeds_formula(self, mixed_settlement: Settlement):
        """Net proceeds reconcile exactly against the reported figures."""
        result = calculate_settlement(mixed_settlement)

        expected = (
            result.gross_settlement
            + result.medical_payment
            - result.case_expenses
            - result.attorney_fee_amount
            - sum(r.final_amount for r in result.medical.per_item)
            - sum(r.final_amount for r in result.loans.per_item)
            - sum(r.final_amount for r in result.liens.per_item)
        )
        assert result.net_proceeds == expected

    def test_additivity(self, mixed_settlement: Settlement):
        """reduction + final_amount equals amount for every item."""
        result = calculate_settlement(mixed_settlement)

        for category in result.categories:
            for item in category.per_item:
                assert item.reduction + item.final_amount == item.amount

    def test_additivity_with_repeating_fractions(self):
        """Rounded reductions still add back to the original amount."""
        settlement = _settlement(
            total_settlement_amount=Decimal("10000"),
            medical_providers=[
                MedicalProvider(identifier="A", amount=Decimal("1000"),
                                reduction_type=ReductionType.PRORATA),
                MedicalProvider(identifier="B", amount=Decimal("2000"),
                                reduction_type=ReductionType.PRORATA),
            ],
        )
        result = calculate_settlement(settlement)

        a, b = result.medical.per_item
        assert a.reduction == Decimal("-111.11")
        assert a.final_amount == Decimal("1111.11")
        assert b.reduction == Decimal("-222.22")
        assert a.reduction + a.final_amount == a.amount
        assert b.reduction + b.final_amount == b.amount
        assert result.reduction_pool == Decimal("3333.33")

    def test_zero_pool_edge_case(self):
        """With no pool members every pro rata item keeps its full amount."""
        settlement = _settlement(
            medical_providers=[
                MedicalProvider(identifier="A", amount=Decimal("3000"),
                                reduction_type=ReductionType.PRORATA,
                                include_in_prorata_pool=False),
            ],
            liens=[
                Lien(identifier="B", amount=Decimal("1000"),
                     reduction_type=ReductionType.PRORATA,
                     include_in_prorata_pool=False),
            ],
        )
        result = calculate_settlement(settlement)

        assert result.total_damages == Decimal("0")
        for item in result.medical.per_item + result.liens.per_item:
            assert item.reduction == Decimal("0")
            assert item.final_amount == item.amount
        assert any("pro rata pool" in w for w in result.warnings)

    def test_excluded_item_with_prorata_policy(self):
        """An excluded pro rata item is reduced from the others' pool."""
        settlement = _settlement(
            medical_providers=[
                MedicalProvider(identifier="A", amount=Decimal("3000"),
                                reduction_type=ReductionType.PRORATA),
                MedicalProvider(identifier="B", amount=Decimal("1000"),
                                reduction_type=ReductionType.PRORATA),
            ],
            liens=[
                Lien(identifier="Excluded", amount=Decimal("2000"),
                     reduction_type=ReductionType.PRORATA,
                     include_in_prorata_pool=False),
            ],
        )
        result = calculate_settlement(settlement)

        assert result.total_damages == Decimal("4000")
        excluded = result.liens.per_item[0]
        # 2000 - (2000 / 4000) * 3000
        assert excluded.reduction == Decimal("500")
        assert excluded.final_amount == Decimal("1500")
        assert excluded.include_in_prorata_pool is False

    def test_lien_type_does_not_change_math(self):
        """Health and other liens reduce identically."""
        settlement = _settlement(
            liens=[
                Lien(identifier="Health", amount=Decimal("2000"),
                     reduction_type=ReductionType.PRORATA, lien_type=LienType.HEALTH),
                Lien(identifier="Other", amount=Decimal("2000"),
                     reduction_type=ReductionType.PRORATA, lien_type=LienType.OTHER),
            ],
        )
        result = calculate_settlement(settlement)

        health, other = result.liens.per_item
        assert health.reduction == other.reduction
        assert health.final_amount == other.final_amount

    def test_per_item_order_mirrors_input(self):
        """Per-item results keep input order."""
        names = ["Zeta Imaging", "Alpha Labs", "Mid Clinic"]
        settlement = _settlement(
            medical_providers=[
                MedicalProvider(identifier=name, amount=Decimal("100"),
                                reduction_type=ReductionType.PERCENTAGE)
                for name in names
            ],
        )
        result = calculate_settlement(settlement)

        assert [r.identifier for r in result.medical.per_item] == names

    def test_negative_net_proceeds_not_clamped(self):
        """Infeasible settlements report negative proceeds with a warning."""
        settlement = _settlement(
            total_settlement_amount=Decimal("1000"),
            case_expenses=Decimal("2000"),
        )
        result = calculate_settlement(settlement)

        assert result.net_proceeds == Decimal("-1000")
        assert any("negative" in w.lower() for w in result.warnings)

    def test_reduction_over_one_hundred_percent(self):
        """A 150% reduction yields a negative final amount and warnings."""
        settlement = _settlement(
            medical_providers=[
                MedicalProvider(identifier="Overcharged", amount=Decimal("1000"),
                                reduction_type=ReductionType.PERCENTAGE,
                                reduction_value=Decimal("150")),
            ],
        )
        result = calculate_settlement(settlement)

        item = result.medical.per_item[0]
        assert item.final_amount == Decimal("-500")
        assert any("outside 0-100" in w for w in result.warnings)
        assert any("negative final amount" in w for w in result.warnings)

    def test_negative_amounts_do_not_raise(self):
        """Negative inputs degrade to arithmetic results."""
        settlement = _settlement(
            total_settlement_amount=Decimal("-300"),
            medical_providers=[
                MedicalProvider(identifier="Refund", amount=Decimal("-100"),
                                reduction_type=ReductionType.PRORATA),
            ],
        )
        result = calculate_settlement(settlement)

        assert result.reduction_pool == Decimal("-100")
        item = result.medical.per_item[0]
        assert item.reduction == Decimal("0")
        assert item.reduction + item.final_amount == item.amount

    def test_mixed_sign_pool_below_zero(self):
        """Pro rata items are not reduced when pool damages sum below zero."""
        settlement = _settlement(
            total_settlement_amount=Decimal("300"),
            medical_providers=[
                MedicalProvider(identifier="Refund", amount=Decimal("-100"),
                                reduction_type=ReductionType.PRORATA),
                MedicalProvider(identifier="Clinic", amount=Decimal("50"),
                                reduction_type=ReductionType.PRORATA),
            ],
        )
        result = calculate_settlement(settlement)

        assert result.total_damages == Decimal("-50")
        assert [r.reduction for r in result.medical.per_item] == [Decimal("0"), Decimal("0")]
        assert [r.final_amount for r in result.medical.per_item] == [
            Decimal("-100"), Decimal("50"),
        ]
        assert any("pro rata pool" in w for w in result.warnings)

    def test_audit_log_populated(self, prorata_settlement: Settlement):
        """Calculator should record every step."""
        result = calculate_settlement(prorata_settlement)

        step_names = [entry.step for entry in result.audit_log]
        assert step_names[0] == "total_damages"
        assert "reduction_pool" in step_names
        assert "medical_1_reduction" in step_names
        assert "medical_2_reduction" in step_names
        assert "attorney_fee" in step_names
        assert step_names[-1] == "net_proceeds"

    def test_idempotence(self, mixed_settlement: Settlement):
        """Two runs on the same input give identical breakdowns."""
        calculator = ApportionmentCalculator()
        first = calculator.calculate(mixed_settlement)
        second = calculator.calculate(mixed_settlement)

        assert first == second
        assert first.model_dump_json() == second.model_dump_json()

    def test_input_not_mutated(self, mixed_settlement: Settlement):
        """The calculator leaves its input untouched."""
        before = mixed_settlement.model_dump()
        calculate_settlement(mixed_settlement)

        assert mixed_settlement.model_dump() == before

    def test_input_is_frozen(self, mixed_settlement: Settlement):
        """Settlement records cannot be modified in place."""
        with pytest.raises(PydanticValidationError):
            mixed_settlement.total_settlement_amount = Decimal("1")

    def test_concurrent_calls_agree(self, mixed_settlement: Settlement):
        """One calculator can serve many threads."""
        calculator = ApportionmentCalculator()
        expected = calculator.calculate(mixed_settlement)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(calculator.calculate, [mixed_settlement] * 32))

        assert all(r == expected for r in results)
        assert all(len(r.audit_log) == len(expected.audit_log) for r in results)


class TestMoneyRounding:
    """Tests for money quantization settings."""

    def test_full_precision(self):
        """money_places=None keeps unrounded Decimal results."""
        settlement = _settlement(
            total_settlement_amount=Decimal("10000"),
            medical_providers=[
                MedicalProvider(identifier="A", amount=Decimal("1000"),
                                reduction_type=ReductionType.PRORATA),
                MedicalProvider(identifier="B", amount=Decimal("2000"),
                                reduction_type=ReductionType.PRORATA),
            ],
        )
        calculator = ApportionmentCalculator(money_places=None)
        reduction = calculator.calculate(settlement).medical.per_item[0].reduction

        assert reduction != Decimal("-111.11")
        assert reduction.quantize(Decimal("0.01")) == Decimal("-111.11")

    def test_default_rounds_to_cents(self, prorata_settlement: Settlement):
        """The default calculator reports cents."""
        result = ApportionmentCalculator().calculate(prorata_settlement)

        assert str(result.medical.per_item[0].reduction) == "750.00"

    def test_rounding_mode_from_config(self):
        """Half-even rounding can be selected through configuration."""
        settlement = _settlement(
            medical_providers=[
                MedicalProvider(identifier="A", amount=Decimal("1"),
                                reduction_type=ReductionType.PERCENTAGE,
                                reduction_value=Decimal("12.5")),
            ],
        )
        half_up = ApportionmentCalculator.from_config(ApportionConfig(rounding="half_up"))
        half_even = ApportionmentCalculator.from_config(ApportionConfig(rounding="half_even"))

        assert half_up.calculate(settlement).medical.per_item[0].reduction == Decimal("0.13")
        assert half_even.calculate(settlement).medical.per_item[0].reduction == Decimal("0.12")

    def test_amounts_beyond_default_precision(self):
        """Amounts wider than 28 digits still round to cents."""
        settlement = _settlement(
            medical_providers=[
                MedicalProvider(identifier="Hospital", amount=Decimal("1e30"),
                                reduction_type=ReductionType.PERCENTAGE,
                                reduction_value=Decimal("20")),
            ],
        )
        item = calculate_settlement(settlement).medical.per_item[0]

        assert item.reduction == Decimal("2e29")
        assert item.reduction.as_tuple().exponent == -2
        assert item.final_amount == Decimal("8e29")
        assert item.reduction_percentage == Decimal("20.0")

    def test_huge_percentage_does_not_raise(self):
        """A reduction percentage beyond 28 digits is still reported."""
        settlement = _settlement(
            medical_providers=[
                MedicalProvider(identifier="Clinic", amount=Decimal("1"),
                                reduction_type=ReductionType.PERCENTAGE,
                                reduction_value=Decimal("1e30")),
            ],
        )
        item = calculate_settlement(settlement).medical.per_item[0]

        assert item.reduction == Decimal("1e28")
        assert item.reduction_percentage == Decimal("1e30")


class TestBreakdownSerialization:
    """Tests for the JSON shape of a breakdown."""

    def test_camel_case_output(self, prorata_settlement: Settlement):
        """Breakdowns serialize with camelCase keys and string decimals."""
        data = calculate_settlement(prorata_settlement).model_dump(by_alias=True, mode="json")

        assert data["grossSettlement"] == "9000"
        assert data["attorneyFeeAmount"] == "0.00"
        assert data["reductionPool"] == "3000.00"
        item = data["medical"]["perItem"][0]
        assert item["identifier"] == "City Hospital"
        assert item["finalAmount"] == "2250.00"
        assert item["reductionPercentage"] == "25.0"
        assert data["medical"]["total"] == "1000.00"

    def test_reduction_percentage_zero_amount(self):
        """A zero amount reports a 0% reduction rather than dividing by zero."""
        settlement = _settlement(
            medical_providers=[
                MedicalProvider(identifier="Zero", amount=Decimal("0"),
                                reduction_type=ReductionType.PERCENTAGE,
                                reduction_value=Decimal("50")),
            ],
        )
        result = calculate_settlement(settlement)

        assert result.medical.per_item[0].reduction_percentage == Decimal("0")

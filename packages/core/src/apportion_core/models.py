"""Data models for settlement apportionment.

Input records (Settlement and its line items) mirror the JSON documents the
settlement form produces: camelCase keys, medical providers keyed by
``name``/``billedAmount`` and loans/liens by ``provider``/``amount``. Input
models are frozen so the engine cannot mutate what it is given.

Output records (SettlementBreakdown and friends) serialize back to camelCase
with ``model_dump(by_alias=True, mode="json")``.
"""

from decimal import ROUND_HALF_UP, Decimal, localcontext
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


def quantize_decimal(value: Decimal, quantum: Decimal, rounding: str = ROUND_HALF_UP) -> Decimal:
    """Quantize without overflowing the context precision.

    The default context holds 28 digits, so quantizing very large amounts
    to cents would raise InvalidOperation. Precision is widened to fit.
    """
    with localcontext() as ctx:
        digits = value.adjusted() - quantum.as_tuple().exponent + 2
        ctx.prec = max(ctx.prec, digits)
        return value.quantize(quantum, rounding=rounding)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class ReductionType(str, Enum):
    """How a line item's reduction is computed."""
    PERCENTAGE = "percentage"
    PRORATA = "prorata"


class AttorneyFeeType(str, Enum):
    """Attorney fee policy: a fixed amount or a share of the gross."""
    SPECIFIC = "specific"
    PERCENTAGE = "percentage"


class LienType(str, Enum):
    """Lien classification. Informational only; the math is identical."""
    HEALTH = "health"
    OTHER = "other"


class LineItemCategory(str, Enum):
    """The three creditor collections on a settlement."""
    MEDICAL = "medical"
    LOANS = "loans"
    LIENS = "liens"


INPUT_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
    extra="ignore",
)

OUTPUT_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
)


# =============================================================================
# INPUT MODELS
# =============================================================================

class AttorneyFees(BaseModel):
    """Attorney fee policy.

    ``amount`` is a money value for SPECIFIC and percentage points for
    PERCENTAGE.
    """
    model_config = INPUT_MODEL_CONFIG

    fee_type: AttorneyFeeType = Field(alias="type")
    amount: Decimal


class ReductionPolicy(BaseModel):
    """Default reduction policy for one category."""
    model_config = INPUT_MODEL_CONFIG

    policy_type: ReductionType = Field(default=ReductionType.PERCENTAGE, alias="type")
    value: Decimal = Decimal("0")


class CategoryReductionPolicies(BaseModel):
    """Per-category default reduction policies.

    Line items that arrive without their own reduction type inherit the
    policy of their category at the input boundary.
    """
    model_config = INPUT_MODEL_CONFIG

    medical: ReductionPolicy = Field(default_factory=ReductionPolicy)
    loans: ReductionPolicy = Field(default_factory=ReductionPolicy)
    liens: ReductionPolicy = Field(default_factory=ReductionPolicy)

    def for_category(self, category: LineItemCategory) -> ReductionPolicy:
        """Return the default policy for a category."""
        return getattr(self, category.value)


class LineItem(BaseModel):
    """A creditor line item subject to reduction.

    The identifier is accepted as ``identifier``, ``name`` or ``provider``
    and the amount as ``amount`` or ``billedAmount``.
    """
    model_config = INPUT_MODEL_CONFIG

    identifier: str = Field(
        validation_alias=AliasChoices("identifier", "name", "provider"),
        description="Provider or creditor name",
    )
    amount: Decimal = Field(
        validation_alias=AliasChoices("amount", "billedAmount"),
        description="Billed or claimed amount before reduction",
    )
    reduction_type: ReductionType
    reduction_value: Decimal = Field(
        default=Decimal("0"),
        description="Percentage points; only used for percentage reductions",
    )
    include_in_prorata_pool: bool = Field(
        default=True,
        description="Whether the amount counts toward total damages",
    )
    email: Optional[str] = None


class MedicalProvider(LineItem):
    """Medical provider bill (``name`` / ``billedAmount`` in the form)."""


class PreSettlementLoan(LineItem):
    """Pre-settlement funding advance (``provider`` / ``amount``)."""


class Lien(LineItem):
    """Lien against the settlement, tagged health or other."""
    lien_type: LienType = Field(default=LienType.HEALTH, alias="type")


class Settlement(BaseModel):
    """A settlement record as submitted by the settlement form."""
    model_config = INPUT_MODEL_CONFIG

    total_settlement_amount: Decimal
    case_expenses: Decimal
    attorney_fees: AttorneyFees
    medical_payment: Decimal
    medical_providers: list[MedicalProvider] = Field(default_factory=list)
    pre_settlement_loans: list[PreSettlementLoan] = Field(default_factory=list)
    liens: list[Lien] = Field(default_factory=list)
    reductions: CategoryReductionPolicies = Field(
        default_factory=CategoryReductionPolicies
    )

    def items_for(self, category: LineItemCategory) -> list[LineItem]:
        """Line items of one category, in input order."""
        if category == LineItemCategory.MEDICAL:
            return list(self.medical_providers)
        if category == LineItemCategory.LOANS:
            return list(self.pre_settlement_loans)
        return list(self.liens)

    @property
    def all_items(self) -> list[LineItem]:
        """Every line item across the three categories."""
        return (
            list(self.medical_providers)
            + list(self.pre_settlement_loans)
            + list(self.liens)
        )


# =============================================================================
# OUTPUT MODELS
# =============================================================================

class ReductionResult(BaseModel):
    """Reduction computed for one line item."""
    model_config = OUTPUT_MODEL_CONFIG

    identifier: str
    amount: Decimal
    reduction: Decimal
    final_amount: Decimal
    reduction_type: ReductionType
    include_in_prorata_pool: bool
    email: Optional[str] = None

    @computed_field(alias="reductionPercentage")
    @property
    def reduction_percentage(self) -> Decimal:
        """Reduction as a percentage of the original amount, one decimal."""
        if self.amount == 0:
            return Decimal("0.0")
        return quantize_decimal(self.reduction / self.amount * 100, Decimal("0.1"))


class CategoryBreakdown(BaseModel):
    """Per-item results and totals for one category."""
    model_config = OUTPUT_MODEL_CONFIG

    category: LineItemCategory
    total: Decimal = Field(description="Sum of reductions")
    final_total: Decimal = Field(description="Sum of final amounts owed")
    per_item: list[ReductionResult] = Field(default_factory=list)

    def find(self, identifier: str) -> Optional[ReductionResult]:
        """First per-item result with the given identifier."""
        for result in self.per_item:
            if result.identifier == identifier:
                return result
        return None


class CalculationStep(BaseModel):
    """One recorded step of a settlement calculation."""
    model_config = OUTPUT_MODEL_CONFIG

    step: str
    input_value: str
    output_value: str
    source: str
    notes: Optional[str] = None


class SettlementBreakdown(BaseModel):
    """Fully itemized result of a settlement calculation."""
    model_config = OUTPUT_MODEL_CONFIG

    gross_settlement: Decimal
    case_expenses: Decimal
    attorney_fee_amount: Decimal
    medical_payment: Decimal
    net_proceeds: Decimal

    total_damages: Decimal = Field(description="Sum of pool-eligible amounts")
    reduction_pool: Decimal = Field(description="One third of the gross settlement")

    medical: CategoryBreakdown
    loans: CategoryBreakdown
    liens: CategoryBreakdown

    audit_log: list[CalculationStep] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def category(self, category: LineItemCategory) -> CategoryBreakdown:
        """Breakdown for one category."""
        return getattr(self, category.value)

    @property
    def categories(self) -> list[CategoryBreakdown]:
        """All three category breakdowns in canonical order."""
        return [self.medical, self.loans, self.liens]

    @property
    def total_reductions(self) -> Decimal:
        """Sum of reductions across every category."""
        return sum((c.total for c in self.categories), Decimal("0"))


__all__ = [
    "ReductionType",
    "AttorneyFeeType",
    "LienType",
    "LineItemCategory",
    "AttorneyFees",
    "ReductionPolicy",
    "CategoryReductionPolicies",
    "LineItem",
    "MedicalProvider",
    "PreSettlementLoan",
    "Lien",
    "Settlement",
    "ReductionResult",
    "CategoryBreakdown",
    "CalculationStep",
    "SettlementBreakdown",
]

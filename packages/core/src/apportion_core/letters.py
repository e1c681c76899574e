"""Data for reduction request letters.

A reduction letter goes to one creditor and quotes that creditor's line of
the breakdown together with case details supplied by the law firm. This
module assembles that data; rendering and delivery happen elsewhere.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from .exceptions import ValidationError
from .models import (
    OUTPUT_MODEL_CONFIG,
    LineItemCategory,
    ReductionResult,
    SettlementBreakdown,
)

CLIENT_PLACEHOLDER = "[Client Name]"
LAW_FIRM_PLACEHOLDER = "[Law Firm Name]"
ATTORNEY_PLACEHOLDER = "[Attorney Name]"


class LawFirmInfo(BaseModel):
    """Case context entered by the law firm for outgoing letters."""
    model_config = OUTPUT_MODEL_CONFIG

    law_firm: str = ""
    attorney_name: str = ""
    client_name: str = ""
    case_number: Optional[str] = None
    date_of_incident: Optional[str] = None
    include_settlement_amount: bool = False
    include_total_damages: bool = False


class ReductionLetterData(BaseModel):
    """Everything a letter renderer needs for one creditor."""
    model_config = OUTPUT_MODEL_CONFIG

    category: LineItemCategory
    provider_name: str
    provider_email: Optional[str] = None
    original_amount: Decimal
    reduction_amount: Decimal
    final_amount: Decimal
    reduction_percentage: Decimal = Field(description="One decimal place")
    client_name: str
    law_firm: str
    attorney_name: str
    case_number: Optional[str] = None
    date_of_incident: Optional[str] = None
    settlement_amount: Optional[Decimal] = None
    total_damages: Optional[Decimal] = None
    letter_date: date


def _letter_from_result(
    breakdown: SettlementBreakdown,
    category: LineItemCategory,
    result: ReductionResult,
    firm: LawFirmInfo,
    letter_date: Optional[date],
) -> ReductionLetterData:
    return ReductionLetterData(
        category=category,
        provider_name=result.identifier,
        provider_email=result.email,
        original_amount=result.amount,
        reduction_amount=result.reduction,
        final_amount=result.final_amount,
        reduction_percentage=result.reduction_percentage,
        client_name=firm.client_name or CLIENT_PLACEHOLDER,
        law_firm=firm.law_firm or LAW_FIRM_PLACEHOLDER,
        attorney_name=firm.attorney_name or ATTORNEY_PLACEHOLDER,
        case_number=firm.case_number or None,
        date_of_incident=firm.date_of_incident or None,
        settlement_amount=(
            breakdown.gross_settlement if firm.include_settlement_amount else None
        ),
        total_damages=(
            breakdown.total_damages if firm.include_total_damages else None
        ),
        letter_date=letter_date or date.today(),
    )


def build_letter_data(
    breakdown: SettlementBreakdown,
    category: LineItemCategory,
    identifier: str,
    firm: Optional[LawFirmInfo] = None,
    letter_date: Optional[date] = None,
) -> ReductionLetterData:
    """Collect letter data for the creditor ``identifier`` in ``category``.

    Blank firm fields fall back to bracketed placeholders. The settlement
    amount and total damages are only disclosed when the firm opts in.

    Raises:
        ValidationError: If the category has no item with that identifier.
    """
    result = breakdown.category(category).find(identifier)
    if result is None:
        raise ValidationError(
            f"No {category.value} item named {identifier!r}",
            field=category.value,
            value=identifier,
        )
    return _letter_from_result(
        breakdown, category, result, firm or LawFirmInfo(), letter_date
    )


def build_category_letters(
    breakdown: SettlementBreakdown,
    category: LineItemCategory,
    firm: Optional[LawFirmInfo] = None,
    letter_date: Optional[date] = None,
) -> list[ReductionLetterData]:
    """Letter data for every item of a category, in breakdown order."""
    firm = firm or LawFirmInfo()
    return [
        _letter_from_result(breakdown, category, result, firm, letter_date)
        for result in breakdown.category(category).per_item
    ]


__all__ = [
    "LawFirmInfo",
    "ReductionLetterData",
    "build_category_letters",
    "build_letter_data",
]

#!/usr/bin/env python3
"""
Settlement Apportionment Demonstration

This script walks through a typical personal-injury settlement:
1. Validate the settlement form payload
2. Calculate attorney fees, creditor reductions and net proceeds
3. Compare percentage and pro rata reductions for each creditor
4. Assemble reduction letter data for the medical providers

Run: python examples/settlement_demo.py
"""

from decimal import Decimal

from apportion_core import (
    LineItemCategory,
    calculate_settlement,
    compare_strategies,
    parse_settlement,
)
from apportion_core.letters import LawFirmInfo, build_category_letters


def create_sample_payload() -> dict:
    """A settlement form as submitted by the case manager."""
    return {
        "totalSettlementAmount": 75000,
        "caseExpenses": 2150.75,
        "attorneyFees": {"type": "percentage", "amount": 33.33},
        "medicalPayment": 5000,
        "medicalProviders": [
            {
                "name": "St. Mary's Emergency Department",
                "billedAmount": 18750,
                "email": "liens@stmarys.example",
                "reductionType": "prorata",
                "includeInProrataPool": True,
            },
            {
                "name": "Advanced Orthopedics",
                "billedAmount": 9200,
                "email": "billing@advortho.example",
                "includeInProrataPool": True,
            },
            {
                "name": "Westside Physical Therapy",
                "billedAmount": 4100,
                "reductionType": "percentage",
                "reductionValue": 35,
            },
        ],
        "preSettlementLoans": [
            {
                "provider": "Plaintiff Capital Funding",
                "amount": 6500,
                "reductionType": "percentage",
                "reductionValue": 10,
                "includeInProrataPool": False,
            },
        ],
        "liens": [
            {
                "provider": "State Medicaid Recovery Unit",
                "amount": 11300,
                "type": "health",
                "reductionType": "prorata",
            },
        ],
        "reductions": {
            "medical": {"type": "percentage", "value": 25},
            "loans": {"type": "percentage", "value": 0},
            "liens": {"type": "prorata", "value": 0},
        },
    }


def print_money(label: str, value: Decimal, sign: str = "") -> None:
    print(f"  {label:<38} {sign}${value:>12,.2f}")


def main():
    settlement = parse_settlement(create_sample_payload())
    breakdown = calculate_settlement(settlement)

    print("=" * 60)
    print("SETTLEMENT BREAKDOWN")
    print("=" * 60)
    print_money("Gross settlement", breakdown.gross_settlement)
    print_money("Medical payment", breakdown.medical_payment, "+")
    print_money("Case expenses", breakdown.case_expenses, "-")
    print_money("Attorney fees", breakdown.attorney_fee_amount, "-")
    for category in breakdown.categories:
        if category.per_item:
            print_money(f"{category.category.value.title()} (after reductions)",
                        category.final_total, "-")
    print("-" * 60)
    print_money("Net proceeds to client", breakdown.net_proceeds)
    print()
    print_money("Total damages pool", breakdown.total_damages)
    print_money("Pro rata pool (1/3)", breakdown.reduction_pool)

    print()
    print("REDUCTIONS BY CREDITOR")
    print("-" * 60)
    for row in compare_strategies(settlement):
        print(f"  {row.identifier}")
        print(f"    percentage: ${row.percentage_reduction:,.2f}   "
              f"pro rata: ${row.prorata_reduction:,.2f}   "
              f"selected ({row.selected_type.value}): ${row.selected_reduction:,.2f}")

    if breakdown.warnings:
        print()
        print("WARNINGS")
        for warning in breakdown.warnings:
            print(f"  - {warning}")

    firm = LawFirmInfo(
        law_firm="Rivera & Cole LLP",
        attorney_name="Dana Rivera",
        client_name="Sam Patel",
        case_number="2024-CV-0193",
        include_total_damages=True,
    )
    print()
    print("REDUCTION LETTERS")
    print("-" * 60)
    for letter in build_category_letters(breakdown, LineItemCategory.MEDICAL, firm):
        print(f"  To {letter.provider_name} <{letter.provider_email or 'no email'}>: "
              f"reduce ${letter.original_amount:,.2f} by {letter.reduction_percentage}% "
              f"to ${letter.final_amount:,.2f}")


if __name__ == "__main__":
    main()

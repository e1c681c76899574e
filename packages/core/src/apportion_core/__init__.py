"""Apportion Core - Settlement apportionment calculations."""

__version__ = "0.1.0"

from .calculator import ApportionmentCalculator, calculate_settlement
from .exceptions import ApportionError, ConfigurationError, ValidationError
from .models import (
    AttorneyFeeType,
    AttorneyFees,
    CategoryBreakdown,
    Lien,
    LienType,
    LineItemCategory,
    MedicalProvider,
    PreSettlementLoan,
    ReductionResult,
    ReductionType,
    Settlement,
    SettlementBreakdown,
)
from .preview import compare_strategies, preview_settlement
from .validation import load_settlement_file, parse_settlement

__all__ = [
    "ApportionmentCalculator",
    "calculate_settlement",
    "parse_settlement",
    "load_settlement_file",
    "preview_settlement",
    "compare_strategies",
    "ApportionError",
    "ConfigurationError",
    "ValidationError",
    "AttorneyFeeType",
    "AttorneyFees",
    "CategoryBreakdown",
    "Lien",
    "LienType",
    "LineItemCategory",
    "MedicalProvider",
    "PreSettlementLoan",
    "ReductionResult",
    "ReductionType",
    "Settlement",
    "SettlementBreakdown",
]

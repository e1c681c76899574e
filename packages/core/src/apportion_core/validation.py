"""Input boundary: turn settlement payloads into typed Settlement records.

Validation happens here, before the engine runs, so the calculation never
sees a partially valid record. Two things happen on the way in:

1. Line items that omit a reduction type inherit their category's default
   policy from the ``reductions`` block.
2. The payload is validated into a frozen Settlement. Any structural
   problem raises ValidationError("Invalid settlement structure").

Range checks (negative amounts, percentages outside 0-100) only apply in
strict mode. By default such values pass through and the calculator
reports them as warnings.
"""

import json
from collections.abc import Mapping
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from .config import ApportionConfig
from .exceptions import ValidationError
from .models import (
    AttorneyFeeType,
    CategoryReductionPolicies,
    LineItemCategory,
    ReductionType,
    Settlement,
)

logger = structlog.get_logger()

INVALID_STRUCTURE = "Invalid settlement structure"

# Accepted payload keys for each category's item list.
CATEGORY_KEYS: dict[LineItemCategory, tuple[str, ...]] = {
    LineItemCategory.MEDICAL: ("medicalProviders", "medical_providers"),
    LineItemCategory.LOANS: ("preSettlementLoans", "pre_settlement_loans"),
    LineItemCategory.LIENS: ("liens",),
}

_TYPE_KEYS = ("reductionType", "reduction_type")
_VALUE_KEYS = ("reductionValue", "reduction_value")

HUNDRED = Decimal("100")


def _first_present(item: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if item.get(key) is not None:
            return item[key]
    return None


def _format_loc(loc: tuple[Union[int, str], ...]) -> str:
    return ".".join(str(part) for part in loc)


def _parse_policies(payload: Mapping[str, Any]) -> CategoryReductionPolicies:
    raw = payload.get("reductions")
    if raw is None:
        return CategoryReductionPolicies()
    try:
        return CategoryReductionPolicies.model_validate(raw)
    except PydanticValidationError as e:
        raise _structure_error(e, prefix="reductions") from e


def apply_category_defaults(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Fill missing item reduction policies from the category defaults.

    Returns a new payload; the input mapping is left untouched.
    """
    policies = _parse_policies(payload)
    prepared = dict(payload)

    for category, keys in CATEGORY_KEYS.items():
        key = next((k for k in keys if k in payload), None)
        items = payload.get(key) if key else None
        if not isinstance(items, list):
            continue

        policy = policies.for_category(category)
        filled = []
        for item in items:
            if not isinstance(item, Mapping):
                filled.append(item)
                continue
            item = dict(item)
            item_type = _first_present(item, _TYPE_KEYS)
            if item_type is None:
                item["reductionType"] = policy.policy_type.value
                item_type = policy.policy_type.value
            if _first_present(item, _VALUE_KEYS) is None:
                inherit = item_type == policy.policy_type.value
                item["reductionValue"] = policy.value if inherit else Decimal("0")
            filled.append(item)
        prepared[key] = filled

    return prepared


def _structure_error(
    error: PydanticValidationError, prefix: Optional[str] = None
) -> ValidationError:
    errors = []
    for err in error.errors():
        loc = _format_loc(err["loc"])
        if prefix:
            loc = f"{prefix}.{loc}" if loc else prefix
        errors.append({"field": loc, "message": err["msg"], "type": err["type"]})

    first = errors[0]
    return ValidationError(
        INVALID_STRUCTURE,
        field=first["field"],
        constraint=first["message"],
        details={"errors": errors},
    )


def check_bounds(settlement: Settlement) -> None:
    """Reject negative money values and percentages outside 0-100.

    Raises:
        ValidationError: On the first out-of-range value.
    """
    money_fields = {
        "totalSettlementAmount": settlement.total_settlement_amount,
        "caseExpenses": settlement.case_expenses,
        "medicalPayment": settlement.medical_payment,
    }
    for field, value in money_fields.items():
        if value < 0:
            raise ValidationError(
                INVALID_STRUCTURE,
                field=field,
                value=str(value),
                constraint="Must not be negative",
            )

    fees = settlement.attorney_fees
    if fees.amount < 0 or (
        fees.fee_type == AttorneyFeeType.PERCENTAGE and fees.amount > HUNDRED
    ):
        raise ValidationError(
            INVALID_STRUCTURE,
            field="attorneyFees.amount",
            value=str(fees.amount),
            constraint=(
                "Percentage fee must be between 0 and 100"
                if fees.fee_type == AttorneyFeeType.PERCENTAGE
                else "Must not be negative"
            ),
        )

    for category, keys in CATEGORY_KEYS.items():
        for i, item in enumerate(settlement.items_for(category)):
            if item.amount < 0:
                raise ValidationError(
                    INVALID_STRUCTURE,
                    field=f"{keys[0]}.{i}.amount",
                    value=str(item.amount),
                    constraint="Must not be negative",
                )
            if item.reduction_type == ReductionType.PERCENTAGE and not (
                0 <= item.reduction_value <= HUNDRED
            ):
                raise ValidationError(
                    INVALID_STRUCTURE,
                    field=f"{keys[0]}.{i}.reductionValue",
                    value=str(item.reduction_value),
                    constraint="Must be between 0 and 100",
                )


def parse_settlement(
    payload: Any,
    *,
    strict: Optional[bool] = None,
    config: Optional[ApportionConfig] = None,
) -> Settlement:
    """Validate a JSON-like payload into a Settlement.

    Args:
        payload: Mapping in the settlement form's camelCase shape
            (snake_case keys are also accepted).
        strict: Enforce range checks. Defaults to ``config.strict_bounds``.
        config: Configuration; loaded from the environment when omitted.

    Raises:
        ValidationError: If the payload is not a valid settlement.
    """
    if isinstance(payload, Settlement):
        settlement = payload
    else:
        if not isinstance(payload, Mapping):
            raise ValidationError(
                INVALID_STRUCTURE,
                constraint="Settlement must be an object",
                details={"received": type(payload).__name__},
            )
        prepared = apply_category_defaults(payload)
        try:
            settlement = Settlement.model_validate(prepared)
        except PydanticValidationError as e:
            error = _structure_error(e)
            logger.warning(
                "settlement_validation_failed",
                field=error.field,
                errors=len(error.details["errors"]),
            )
            raise error from e

    if strict is None:
        strict = (config or ApportionConfig()).strict_bounds
    if strict:
        check_bounds(settlement)

    return settlement


def read_settlement_payload(path: Union[str, Path]) -> Any:
    """Read a settlement JSON document without validating it.

    Numbers are parsed as Decimal so no binary floating point is involved.

    Raises:
        ValidationError: If the file is not well-formed JSON.
        OSError: If the file cannot be read.
    """
    path = Path(path)
    try:
        return json.loads(path.read_text(encoding="utf-8"), parse_float=Decimal)
    except json.JSONDecodeError as e:
        raise ValidationError(
            INVALID_STRUCTURE,
            constraint=f"Malformed JSON: {e.msg}",
            details={"path": str(path), "line": e.lineno, "column": e.colno},
        ) from e


def load_settlement_file(
    path: Union[str, Path],
    *,
    strict: Optional[bool] = None,
    config: Optional[ApportionConfig] = None,
) -> Settlement:
    """Read a settlement JSON document and validate it."""
    payload = read_settlement_payload(path)
    return parse_settlement(payload, strict=strict, config=config)


__all__ = [
    "INVALID_STRUCTURE",
    "apply_category_defaults",
    "check_bounds",
    "load_settlement_file",
    "parse_settlement",
    "read_settlement_payload",
]

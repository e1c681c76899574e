"""Custom exceptions for the apportionment engine.

All exceptions inherit from ApportionError, so callers at the service or
preview boundary can catch every application-specific error in one place.

The calculation itself never raises for numeric input. Errors originate at
the boundary, when a payload cannot be turned into a typed Settlement, or
when configuration is invalid.

Example:
    try:
        settlement = parse_settlement(payload)
    except ValidationError as e:
        return {"error": e.message, "details": e.details}
    except ApportionError as e:
        logger.error("apportion_failed", error=str(e))
"""

from typing import Any, Optional


class ApportionError(Exception):
    """Base exception for all apportionment errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
        recoverable: Whether the error is potentially recoverable.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize ApportionError.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context about the error.
            recoverable: Whether the error can be resolved by the caller,
                for example by correcting input. Defaults to False.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message

    def __repr__(self) -> str:
        """Return detailed representation of the error."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable!r})"
        )


class ValidationError(ApportionError):
    """Error raised when a settlement payload has an invalid structure.

    Raised by the boundary parser for missing required fields, unknown enum
    values, non-numeric amounts and (in strict mode) out-of-range values.

    Attributes:
        field: Dotted path of the field that failed validation.
        value: The invalid value (if safe to include).
        constraint: The validation constraint that was violated.

    Example:
        >>> raise ValidationError(
        ...     "Invalid settlement structure",
        ...     field="attorneyFees.type",
        ...     value="hourly",
        ...     constraint="Must be one of: specific, percentage",
        ... )
        ValidationError: Invalid settlement structure
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        constraint: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize ValidationError.

        Args:
            message: Human-readable error description.
            field: The path of the field that failed validation.
            value: The invalid value.
            constraint: Description of the validation rule violated.
            details: Optional dictionary with additional context.
            recoverable: Whether the error can be fixed by user correction.
                Defaults to True.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.field = field
        self.value = value
        self.constraint = constraint

        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = value
        if constraint:
            self.details["constraint"] = constraint


class ConfigurationError(ApportionError):
    """Error raised when configuration is invalid or missing.

    Attributes:
        config_key: The configuration key that is problematic.
        expected: Description of the expected value or format.
        actual: The actual value found (if any).

    Example:
        >>> raise ConfigurationError(
        ...     "Invalid rounding mode",
        ...     config_key="APPORTION_ROUNDING",
        ...     expected="half_up or half_even",
        ...     actual="ceiling",
        ... )
        ConfigurationError: Invalid rounding mode
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize ConfigurationError.

        Args:
            message: Human-readable error description.
            config_key: The name of the configuration key that is problematic.
            expected: Description of what value was expected.
            actual: The actual value found.
            details: Optional dictionary with additional context.
            recoverable: Whether the error can be fixed at runtime.
                Defaults to False.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.config_key = config_key
        self.expected = expected
        self.actual = actual

        if config_key:
            self.details["config_key"] = config_key
        if expected:
            self.details["expected"] = expected
        if actual is not None:
            self.details["actual"] = actual


__all__ = [
    "ApportionError",
    "ValidationError",
    "ConfigurationError",
]

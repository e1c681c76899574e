"""Configuration for the apportionment engine.

Pydantic Settings based configuration with environment variable support.

Usage:
    from apportion_core.config import load_config

    config = load_config()
    calculator = ApportionmentCalculator.from_config(config)

Environment Variables:
    APPORTION_ENV: Environment name (development, staging, production, test)
    APPORTION_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    APPORTION_LOG_FORMAT: Log renderer (console, json)
    APPORTION_MONEY_PLACES: Decimal places for reported money amounts
    APPORTION_ROUNDING: Rounding mode for reported money (half_up, half_even)
    APPORTION_STRICT_BOUNDS: Reject out-of-range amounts and percentages
"""

from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP
from enum import Enum
from typing import Any, Optional

from pydantic import Field, ValidationError as PydanticValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class RoundingMode(str, Enum):
    """Rounding modes for reported money amounts."""

    HALF_UP = "half_up"
    HALF_EVEN = "half_even"

    @property
    def decimal_rounding(self) -> str:
        """The matching ``decimal`` module rounding constant."""
        if self is RoundingMode.HALF_EVEN:
            return ROUND_HALF_EVEN
        return ROUND_HALF_UP


class LogFormat(str, Enum):
    """Supported structlog renderers."""

    CONSOLE = "console"
    JSON = "json"


class ApportionConfig(BaseSettings):
    """Root configuration for the apportionment engine.

    Example:
        # Load from environment
        config = ApportionConfig()

        # Override specific settings
        config = ApportionConfig(money_places=None, strict_bounds=True)
    """

    model_config = SettingsConfigDict(
        env_prefix="APPORTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: str = Field(
        default="development",
        description="Environment name (development, staging, production, test)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: LogFormat = Field(
        default=LogFormat.CONSOLE,
        description="Renderer used for structured log output",
    )
    money_places: Optional[int] = Field(
        default=2,
        ge=0,
        le=10,
        description="Decimal places for reported money; None keeps full precision",
    )
    rounding: RoundingMode = Field(
        default=RoundingMode.HALF_UP,
        description="Rounding mode applied when quantizing money",
    )
    strict_bounds: bool = Field(
        default=False,
        description=(
            "Reject negative amounts and percentages outside 0-100 at the "
            "input boundary instead of passing them through with warnings"
        ),
    )

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment name."""
        valid_envs = {"development", "staging", "production", "test"}
        v_lower = v.lower().strip()
        if v_lower not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {valid_envs}")
        return v_lower

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper().strip()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {valid_levels}")
        return v_upper

    @field_validator("money_places", mode="before")
    @classmethod
    def parse_money_places(cls, v: Any) -> Any:
        """Allow "none" or an empty string to disable quantization."""
        if isinstance(v, str) and v.strip().lower() in {"", "none", "null"}:
            return None
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.env == "production"

    @property
    def is_debug(self) -> bool:
        """Check if debug logging is enabled."""
        return self.log_level == "DEBUG"


def load_config(**overrides: Any) -> ApportionConfig:
    """Load configuration from the environment, applying explicit overrides.

    Raises:
        ConfigurationError: If any setting fails validation.
    """
    try:
        return ApportionConfig(**overrides)
    except PydanticValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(part) for part in first["loc"])
        raise ConfigurationError(
            f"Invalid configuration: {first['msg']}",
            config_key=f"APPORTION_{key.upper()}" if key else None,
            actual=first.get("input"),
            details={"errors": len(e.errors())},
        ) from e


__all__ = [
    "ApportionConfig",
    "LogFormat",
    "RoundingMode",
    "load_config",
]

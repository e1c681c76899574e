"""structlog setup for command line and service use."""

import logging
import sys
from typing import Optional

import structlog

from .config import ApportionConfig, LogFormat


def configure_logging(config: Optional[ApportionConfig] = None) -> None:
    """Configure structlog from an ApportionConfig.

    Library code only calls ``structlog.get_logger()``; applications call
    this once at startup to pick the level and renderer.
    """
    config = config or ApportionConfig()
    level = logging.getLevelName(config.log_level)

    if config.log_format == LogFormat.JSON:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

"""
Structured logging configuration for BalanceLab.

Uses structlog for JSON-formatted logs in production,
and colored console output in development. Engine modules log through
the standard library and end up in the same handler.
"""

import logging
import sys
from typing import Any

import structlog
from balancelab.core.settings import settings

ENGINE_LOGGER = "balancelab.core.engine"


def configure_logging() -> None:
    """Configure structured logging based on environment."""

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.app_debug:
        # Development: colored console output
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        # Production: JSON output for log aggregators
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    log_level = logging.DEBUG if settings.app_debug else logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    # Итерации решателя пишутся на DEBUG; в production достаточно итогов
    logging.getLogger(ENGINE_LOGGER).setLevel(
        logging.DEBUG if settings.app_debug else logging.INFO
    )


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger

    Example:
        >>> from balancelab.core.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("balance_solved", iterations=3, converged=True)
    """
    return structlog.get_logger(name)

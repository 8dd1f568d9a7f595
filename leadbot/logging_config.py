"""
Structured logging configuration.
Uses structlog for structured JSON logging.
"""

import logging
import sys
from typing import Any
import structlog
from leadbot.config import config


def configure_logging():
    """
    Configure structured logging for the application.

    In production: JSON formatted logs
    In development: Pretty printed colored logs
    """

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    )

    # Reduce noise from HTTP client libraries (they log every request at INFO).
    for noisy_logger in [
        "httpx",
        "httpcore",
        "openai",
        "urllib3",
    ]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    # Common processors for all environments
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if config.DEBUG:
        # Development: Pretty colored output
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        # Production: JSON output for log aggregation
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = None) -> Any:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("lead_classified", status="hot", confidence=0.9)
        logger.warning("generation_failed", kind="rate_limit", status=429)
    """
    return structlog.get_logger(name)


def preview(text: str) -> str:
    """Clip conversation text for log lines (see LOG_TRANSCRIPT_MAX_CHARS)."""
    limit = config.LOG_TRANSCRIPT_MAX_CHARS
    t = (text or "").replace("\n", " ")
    return t if len(t) <= limit else t[:limit] + "…"


# Configure on module import
configure_logging()

# Create default logger
logger = get_logger("leadbot")

"""Structured logging setup: JSON lines in production, console output otherwise."""
from __future__ import annotations
import logging
from typing import Optional

import structlog

from lessonhub.core import config


def _log_level(name: str) -> int:
    return getattr(logging, (name or "INFO").upper(), logging.INFO)


def configure_logging(environment: Optional[str] = None, level: Optional[str] = None) -> None:
    """Call once at application startup."""
    environment = environment or config.ENVIRONMENT
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if environment == "production":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_log_level(level or config.LOG_LEVEL)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

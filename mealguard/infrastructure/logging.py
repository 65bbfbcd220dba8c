"""
Structured logging setup.

Library code only calls ``structlog.get_logger(__name__)``; applications
call ``configure_logging`` once at startup.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import structlog


def configure_logging(level: Optional[str] = None, json: bool = False) -> None:
    """
    Configure structlog for console or JSON output.

    Args:
        level: Log level name (defaults to LOG_LEVEL env var, then INFO)
        json: Render JSON lines instead of the dev console format

    Example:
        >>> configure_logging("DEBUG")
        >>> structlog.get_logger("mealguard").info("ready", meals=4)
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    min_level = getattr(logging, level_name, logging.INFO)

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        cache_logger_on_first_use=False,
    )

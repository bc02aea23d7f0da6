"""Structured logging setup shared by every engine component."""

import logging

import structlog

from intake.config import get_settings


def configure_logging(level: str | None = None, debug: bool | None = None) -> None:
    """Install the structlog processor chain.

    Args:
        level: Minimum level name ("debug", "info", ...). Defaults to LOG_LEVEL.
        debug: Use the console renderer instead of JSON. Defaults to DEBUG.
    """
    settings = get_settings()
    level_name = (level or settings.LOG_LEVEL).upper()
    use_console = settings.DEBUG if debug is None else debug

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer() if use_console else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level_name, logging.INFO)),
    )

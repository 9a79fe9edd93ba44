"""
Structured logging configuration using structlog.
"""
import logging

import structlog

from aggregator.config import settings


def configure_logging():
    """
    Configure structured logging for the application.
    Sets up JSON formatting for production, console formatting for development.
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]

    if settings.app_environment == "production":
        # JSON formatting for production
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Console formatting for development
        processors.append(structlog.dev.ConsoleRenderer())

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )

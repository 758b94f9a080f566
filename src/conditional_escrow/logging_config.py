"""Structured logging configuration using structlog.

JSON output in production, colored console output in development. Escrow
operations bind the escrow id and caller so a single escrow's history can be
followed across the service and settlement layers.

Usage:
    from conditional_escrow.logging_config import configure_logging, get_logger
    configure_logging()  # level and format from Settings
    logger = get_logger(__name__)
    logger.info("escrow.funded", escrow_id="esc-1", amount=1000)
"""

from __future__ import annotations

import logging
import sys

import structlog

from conditional_escrow.config import Settings, get_settings


def setup_logging(log_level: str = "DEBUG", json_logs: bool = False) -> None:
    """Configure structlog with shared processors.

    Args:
        log_level: Standard Python log level string (DEBUG, INFO, WARNING, etc.)
        json_logs: If True, output JSON. If False, colored console.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_logs:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.DEBUG))


def configure_logging(settings: Settings | None = None, *, json_logs: bool = False) -> None:
    """Configure logging from application settings.

    JSON output is used when requested, when LOG_JSON is set, or outside
    development.
    """
    settings = settings or get_settings()
    setup_logging(
        log_level=settings.app_log_level,
        json_logs=json_logs or settings.log_json or not settings.is_development,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger bound to the given name."""
    return structlog.get_logger(name)

"""Structured logging configuration."""
import logging
import sys

import structlog

from tablerag import config


def configure_logging(level: str = None, fmt: str = None) -> None:
    """Configure structlog on top of the stdlib logging module.

    Logs go to stderr so that stdout only carries answers.

    Args:
        level: Log level name (default from config.LOG_LEVEL)
        fmt: "console" or "json" (default from config.LOG_FORMAT)
    """
    level = (level or config.LOG_LEVEL).upper()
    fmt = fmt or config.LOG_FORMAT

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level, logging.INFO),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if fmt == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

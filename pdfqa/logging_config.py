"""Structured logging setup shared by the web app and the scripts."""
import logging

import structlog

from pdfqa import config


def configure_logging(level: str = None) -> None:
    """Route structlog through the stdlib logger and render JSON lines.

    Args:
        level: Log level name (default from config.LOG_LEVEL)
    """
    logging.basicConfig(
        level=(level or config.LOG_LEVEL).upper(),
        format="%(message)s",
    )

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )

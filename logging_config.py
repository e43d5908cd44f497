"""
Structured logging configuration with structlog
"""
import logging

import structlog

from config import Config


def setup_logging(level=None, fmt=None):
    """Configure structlog for JSON or console output"""
    level = level or Config.LOG_LEVEL
    fmt = fmt or Config.LOG_FORMAT

    renderer = (
        structlog.processors.JSONRenderer()
        if fmt == 'json'
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt='iso'),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO))

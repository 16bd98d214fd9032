"""
Structured Logging

DESIGN DECISION: Every successful mutation emits one structured event
(e.g. ``transaction_created``) and every rejected balance-critical call
emits a warning. This is operational logging only; the ledger keeps no
persisted audit trail.

Call configure_logging() once at startup. Components fetch their logger
with get_logger() and bind their own name.
"""

import logging
from typing import Optional

import structlog

from fintrack.config import LoggingSettings, get_settings


_configured = False


def configure_logging(settings: Optional[LoggingSettings] = None) -> None:
    """
    Configure structlog and the stdlib root logger.
    
    Safe to call more than once; later calls reconfigure.
    """
    global _configured
    settings = settings or get_settings().logging
    
    logging.basicConfig(format="%(message)s", level=settings.level)
    logging.getLogger().setLevel(settings.level)
    
    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.format == "console"
        else structlog.processors.JSONRenderer()
    )
    
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a named structured logger, configuring defaults on first use."""
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)

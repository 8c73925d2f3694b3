"""
Structured Logging Setup

Every module logs through structlog with snake_case event names and
key/value context, e.g.:

    logger.info("allowance_credited", amount="10", balance="35")

Logs go through the stdlib logging machinery so the level filter and
handlers are shared with third-party libraries.
"""

import logging
import sys
from typing import Optional

import structlog

from enough.config import AppSettings, get_settings


_configured = False


def configure_logging(settings: Optional[AppSettings] = None, force: bool = False) -> None:
    """
    Configure structlog and the root stdlib logger.

    Safe to call more than once; only the first call (or a call with
    force=True) takes effect.
    """
    global _configured
    if _configured and not force:
        return

    settings = settings or get_settings().app

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, settings.log_level),
        force=force,
    )

    if settings.log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

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

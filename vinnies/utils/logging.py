"""
Logging configuration for Vinnies

Log events go through structlog on top of the standard logging module,
to stderr and optionally to a file.
"""

import logging
import sys
from typing import List, Optional

import structlog

# Third-party loggers that only add noise at INFO
QUIET_LOGGERS = ("asyncio", "mutagen")


def resolve_level(log_level: str) -> int:
    """Map a level name (any case) to a logging level, INFO if unknown."""
    level = logging.getLevelName(str(log_level).upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """
    Configure structured logging using structlog.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Also append logs to this file when given
    """
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        format="%(message)s",
        handlers=handlers,
        level=resolve_level(log_level),
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # Colour codes only when every handler is an interactive terminal
    colors = log_file is None and sys.stderr.isatty()

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
            structlog.dev.ConsoleRenderer(colors=colors),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

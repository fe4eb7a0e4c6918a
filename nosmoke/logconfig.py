"""structlog configuration shared by the terminal and web front ends.

The library modules only call get_logger(); configure_logging() is called once
by whichever front end owns the process.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import structlog
from structlog.types import FilteringBoundLogger


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    log_file: Path | None = None,
) -> None:
    """Configure stdlib logging plus the structlog processor chain.

    When *log_file* is given, records go there instead of stdout (the TUI owns
    the terminal).
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(level=log_level, filename=str(log_file), format="%(message)s", force=True)
    else:
        logging.basicConfig(level=log_level, stream=sys.stdout, format="%(message)s", force=True)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=log_file is None))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """Get a structlog logger (typically get_logger(__name__))."""
    return structlog.get_logger(name)

"""Logging configuration for sitepulse."""

import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

from sitepulse.config import settings

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Browser driver and event loop chatter
NOISY_LOGGERS = ('asyncio', 'playwright')


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """Configure the root logger for a crawl run.

    Args:
        level: Log level name; defaults to ``LOG_LEVEL`` from the environment
        log_file: Also write to this file; defaults to ``LOG_FILE``
        format_string: Optional custom format string
        quiet: Loggers held at WARNING regardless of ``level``
    """
    level_name = (level or settings.LOG_LEVEL or "INFO").upper()
    log_file = log_file or settings.LOG_FILE

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=format_string or DEFAULT_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the module logger for ``name`` (usually ``__name__``)."""
    return logging.getLogger(name)

"""
Logging setup.

Installs loguru handlers for CLI runs: stderr always, plus an optional
rotating log file. `set_log_level` swaps only the stderr handler so the
engine can change verbosity on reconfigure.
"""

from __future__ import annotations

import sys

from loguru import logger

from config import get_settings

STDERR_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"

_stderr_handler_id: int | None = None


def setup_logging(level: str | None = None, log_file: str | None = None) -> None:
    """Replace loguru's default handler with the configured ones."""
    global _stderr_handler_id
    settings = get_settings()
    level = (level or settings.log_level).upper()
    log_file = log_file or settings.log_file

    logger.remove()
    _stderr_handler_id = logger.add(sys.stderr, level=level, format=STDERR_FORMAT)
    if log_file:
        logger.add(log_file, level="DEBUG", format=FILE_FORMAT, rotation="10 MB", retention=5)


def set_log_level(level: str) -> None:
    """Re-install the stderr handler at a new level, keeping any file sink."""
    global _stderr_handler_id
    if _stderr_handler_id is None:
        setup_logging(level=level)
        return
    logger.remove(_stderr_handler_id)
    _stderr_handler_id = logger.add(sys.stderr, level=level.upper(), format=STDERR_FORMAT)

"""Loguru logging setup."""

import os
import sys

from loguru import logger

_FORMAT = "<level>{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}</level>"


def setup_logging(level: str | None = None, log_file: str | None = None) -> None:
    """
    Configure loguru sinks.

    Always logs to stderr. With ``log_file`` set, also writes a rotating,
    uncolored copy there (memory ids and sentences included, so keep it private).
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")
    level = level.upper()

    logger.remove()
    logger.add(
        sys.stderr,
        format=_FORMAT,
        level=level,
        colorize=True,
        backtrace=True,
        diagnose=True,
    )
    if log_file:
        logger.add(
            log_file,
            format=_FORMAT,
            level=level,
            colorize=False,
            rotation="10 MB",
            retention=5,
            encoding="utf-8",
        )

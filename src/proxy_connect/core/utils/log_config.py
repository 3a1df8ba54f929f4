"""Logging configuration for proxy-connect.

This module provides centralized logging configuration using Loguru. Standard
output carries the tunnel's payload, so logs only ever go to standard error
and, in debug mode, to a rotating log file.

By default only warnings and above reach standard error, which keeps a
successful run silent.
"""

import sys
from pathlib import Path

from loguru import logger

LOG_DIR = Path.home() / ".proxy-connect" / "logs"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(debug: bool = False) -> None:
    """Replace Loguru's handlers with the ones for this run.

    Args:
        debug: Log everything to stderr and to ``LOG_DIR / "proxy-connect.log"``
    """
    logger.remove()  # Remove default handler

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level="DEBUG" if debug else "WARNING",
        backtrace=debug,
        diagnose=debug,
    )

    if debug:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        logger.add(
            LOG_DIR / "proxy-connect.log",
            rotation="10 MB",
            retention="1 week",
            compression="zip",
            format=FILE_FORMAT,
            level="DEBUG",
            backtrace=True,
            diagnose=True,
        )


__all__ = ["configure_logging", "logger", "LOG_DIR"]

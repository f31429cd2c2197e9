"""Loguru setup for the service."""

from __future__ import annotations

import sys

from loguru import logger


def setup_logger(log_level: str = "INFO") -> None:
    """Replace loguru's default sink with a single stderr sink.

    Safe to call more than once; each call resets the sinks.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level.upper(),
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
    )
    logger.debug(f"Logger initialised | level={log_level.upper()}")

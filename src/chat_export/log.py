"""
Loguru setup and the fatal/error/warning markers used across the pipeline.
"""

from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO", *, serialize: bool = False) -> None:
    """Replace loguru's default handler with a single stderr handler."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT, serialize=serialize)


def fatal(message: str) -> None:
    logger.opt(depth=1).critical(f"[Fatal error] {message}")


def err(message: str) -> None:
    logger.opt(depth=1).error(f"[Error] {message}")


def warn(message: str) -> None:
    logger.opt(depth=1).warning(f"[Warning] {message}")

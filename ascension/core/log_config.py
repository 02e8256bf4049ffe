"""
Loguru sink setup for hosts embedding the scheduler.

The scheduler itself never touches sinks at import time; a host process
calls configure_logging() once at startup.
"""
from __future__ import annotations

import sys

from loguru import logger

from config import Settings, get_settings


def configure_logging(settings: Settings | None = None) -> None:
    """
    Replace the default loguru handler with the configured sinks.

    Args:
        settings: Settings to read log_level/log_file from (defaults to get_settings())
    """
    settings = settings or get_settings()

    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | <cyan>{name}</cyan> - {message}",
    )

    if settings.log_file:
        logger.add(
            settings.log_file,
            level=settings.log_level,
            rotation="10 MB",
            retention=5,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )

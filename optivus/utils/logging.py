"""
Logging configuration.
"""

import sys

from loguru import logger

from optivus.config.settings import settings


def setup_logging(level: str | None = None, log_file: str | None = None) -> None:
    """
    Configure loguru sinks.

    Installs a stderr sink and, when a log file is configured, a rotating
    file sink.

    Args:
        level: Minimum level (defaults to settings.log_level)
        log_file: File path (defaults to settings.log_file)
    """
    level = level or settings.log_level
    log_file = log_file if log_file is not None else settings.log_file

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
            "<level>{message}</level>"
        ),
    )
    if log_file:
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level=level,
            encoding="utf-8",
        )

"""Loguru configuration."""

import sys
from pathlib import Path

from loguru import logger

from pixelpilot.core.config import Settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def configure_logging(settings: Settings) -> None:
    """Configure loguru based on settings.

    Replaces the default handler with a console sink and, when
    ``pixelpilot_log_dir`` is set, a daily rotated file sink.
    """
    logger.remove()  # Remove default handler

    if settings.pixelpilot_log_dir:
        logs_dir = Path(settings.pixelpilot_log_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(logs_dir / "pixelpilot_{time:YYYY-MM-DD}.log"),
            rotation="1 day",
            retention="7 days",
            level=settings.pixelpilot_log_level,
            format=LOG_FORMAT,
        )

    logger.add(
        sys.stderr,
        level="DEBUG" if settings.pixelpilot_debug else settings.pixelpilot_log_level,
        format=LOG_FORMAT,
        colorize=True,
    )

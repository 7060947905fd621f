"""Centralized logging configuration."""
from __future__ import annotations

import os
import sys
from typing import TextIO

from loguru import logger

DEFAULT_LOG_LEVEL = os.environ.get("SKYBOOK_LOG_LEVEL", "INFO")

log_format = " | ".join(
    (
        "<lk>{time:YYYY-MM-DD HH:mm:ss.SSS}</>",
        "<lvl>{level:<8}</>",
        "<c>{name}:{function}:{line}</>",
        "{message}",
    )
)


def configure_logging(level: str = DEFAULT_LOG_LEVEL, sink: TextIO = sys.stderr) -> None:
    """Replace loguru's default handler with a single sink at ``level``."""
    logger.remove()
    logger.add(sink, level=level.upper(), format=log_format)

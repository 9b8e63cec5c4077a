"""Loguru setup shared by the CLIs."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger


CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> | <level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {thread.name} | "
    "{name}:{function}:{line} | {message}"
)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Send logs to stderr and, when `log_file` is given, to a rotating file.

    MANGO_KIT_LOG_LEVEL overrides `level`.
    """

    log_level = os.getenv("MANGO_KIT_LOG_LEVEL", level).upper()
    logger.remove()
    logger.add(sink=sys.stderr, format=CONSOLE_FORMAT, level=log_level)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_path),
            rotation="5 MB",
            retention=5,
            level=log_level,
            format=FILE_FORMAT,
        )

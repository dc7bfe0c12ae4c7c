"""Logging helpers."""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

LOGGER_NAME = "voiceminutes"


def default_log_dir() -> str:
    return os.path.join(os.path.expanduser("~"), ".voiceminutes", "logs")


def setup_logging(
    log_dir: str = "",
    level: int = logging.INFO,
    console: bool = False,
) -> tuple[logging.Logger, str]:
    log_dir = log_dir or default_log_dir()
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, "voiceminutes.log")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    if not logger.handlers:
        fmt = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler = RotatingFileHandler(
            log_path, maxBytes=2_000_000, backupCount=3, encoding="utf-8"
        )
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        if console:
            stream = logging.StreamHandler()
            stream.setFormatter(fmt)
            logger.addHandler(stream)

    return logger, log_path

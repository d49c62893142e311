from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from core.settings import LOGGING


ROOT_LOGGER_NAME = "pinmark"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _ensure_root_logger(path: Optional[Path] = None) -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        log_path = Path(path or LOGGING.path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_path,
            maxBytes=LOGGING.max_bytes,
            backupCount=LOGGING.backup_count,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(getattr(logging, LOGGING.level.upper(), logging.INFO))
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``pinmark.<name>``, attaching the rotating file handler once."""

    _ensure_root_logger()
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def enable_console_logging(level: int = logging.DEBUG) -> None:
    logger = _ensure_root_logger()
    for handler in logger.handlers:
        if getattr(handler, "name", None) == "console":
            handler.setLevel(level)
            break
    else:
        console = logging.StreamHandler(sys.stderr)
        console.name = "console"
        console.setLevel(level)
        console.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(console)
    logger.setLevel(min(logger.level, level))


__all__ = ["get_logger", "enable_console_logging", "ROOT_LOGGER_NAME"]

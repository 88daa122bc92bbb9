from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from .constants import LOG_BACKUP_COUNT, LOG_FILE, LOG_MAX_BYTES, LOGGER_NAME

_FMT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


def get_logger(suffix: str = "") -> logging.Logger:
    """``lab_power`` or one of its children (``worker``, ``link``, ...)."""
    return logging.getLogger(f"{LOGGER_NAME}.{suffix}" if suffix else LOGGER_NAME)


def resolve_level(level: Union[int, str, None]) -> int:
    """Accept a numeric level or a name such as ``"debug"`` from the INI file."""
    if isinstance(level, int):
        return level
    name = (level or "").strip().upper()
    value = logging.getLevelName(name) if name else logging.INFO
    return value if isinstance(value, int) else logging.INFO


def setup_logger(name: str = LOGGER_NAME, log_dir: Optional[str] = None,
                 level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Console handler always, rotating ``lab_power.log`` only with a log_dir.

    Children obtained through get_logger() inherit these handlers. Calling it
    again for the same name returns the configured logger untouched.
    """
    logger = logging.getLogger(name)
    if getattr(logger, "_lab_power_configured", False):
        return logger
    level = resolve_level(level)
    logger.setLevel(level)
    logger.propagate = False
    fmt = logging.Formatter(_FMT)

    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_dir:
        base = Path(log_dir)
        base.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(base / LOG_FILE, maxBytes=LOG_MAX_BYTES,
                                 backupCount=LOG_BACKUP_COUNT, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    logger._lab_power_configured = True
    return logger


def setup_logging(settings) -> logging.Logger:
    """Configure the package logger from a CommSettings' [Logging] values."""
    return setup_logger(log_dir=settings.log_dir or None, level=settings.log_level)

"""Process-wide logging setup for the bridge: stdout plus an optional rotating file."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, List, Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 500 * 1024
LOG_FILE_BACKUPS = 2

# aiohttp writes an INFO access line per request and /health gets polled.
QUIET_LOGGERS = ("aiohttp.access",)

LevelLike = Union[int, str]

_installed: List[logging.Handler] = []


def coerce_level(level: LevelLike) -> int:
    """Map ``"info"``/``"DEBUG"``/``20`` to a numeric level; ValueError if unknown."""
    if not isinstance(level, str):
        return int(level)
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level '{level}'")
    return value


def _build_handlers(
    level: int,
    console: bool,
    log_file: Optional[Path],
    max_bytes: int,
    backup_count: int,
) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        )

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def configure_logging(
    level: LevelLike = logging.INFO,
    *,
    force: bool = False,
    console: bool = True,
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = LOG_FILE_MAX_BYTES,
    backup_count: int = LOG_FILE_BACKUPS,
    quiet_loggers: Iterable[str] = QUIET_LOGGERS,
) -> None:
    """Install the bridge's handlers on the root logger.

    A second call only changes the level unless ``force`` is set, in which
    case every root handler is replaced.
    """
    numeric_level = coerce_level(level)
    root = logging.getLogger()
    root.setLevel(numeric_level)

    if _installed and not force:
        for handler in _installed:
            handler.setLevel(numeric_level)
        return

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    _installed.clear()

    path = Path(log_file).expanduser() if log_file else None
    _installed.extend(_build_handlers(numeric_level, console, path, max_bytes, backup_count))
    if not _installed:
        _installed.append(logging.NullHandler())
    for handler in _installed:
        root.addHandler(handler)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["configure_logging", "coerce_level", "LOG_FORMAT", "LOG_DATEFMT"]

"""Centralized logging configuration for the Media Hunter application."""

from __future__ import annotations

import logging
from logging import Logger
from pathlib import Path
from typing import Iterable


DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_HANDLER_MARKER = "_media_hunter_handler"


def resolve_log_level(name: str | int) -> int:
    """Translate a level name such as ``"debug"`` into its numeric value."""

    if isinstance(name, int):
        return name
    normalized = str(name).strip().upper()
    if normalized not in LOG_LEVELS:
        raise ValueError(f"Unknown log level '{name}'. Choose one of: {', '.join(LOG_LEVELS)}")
    return getattr(logging, normalized)


def configure_logging(level: int = logging.INFO, *, handlers: Iterable[logging.Handler] | None = None) -> Logger:
    """Configure the root logger, replacing handlers installed by a previous call."""

    logger = logging.getLogger()
    logger.setLevel(level)

    for existing in list(logger.handlers):
        if getattr(existing, _HANDLER_MARKER, False):
            logger.removeHandler(existing)
            existing.close()

    if handlers is None:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
        handlers = [stream_handler]
    for handler in handlers:
        setattr(handler, _HANDLER_MARKER, True)
        logger.addHandler(handler)

    # httpx logs every request at INFO; keep it to warnings unless debugging.
    logging.getLogger("httpx").setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)
    return logger


def get_log_file_path(storage_root: Path) -> Path:
    """Return the default path for the application log file."""

    return storage_root / "media_hunter.log"


__all__ = ["DEFAULT_LOG_FORMAT", "LOG_LEVELS", "configure_logging", "get_log_file_path", "resolve_log_level"]

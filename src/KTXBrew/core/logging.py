"""Logging setup for KTXBrew."""

import logging
import logging.handlers
import os
import threading
from typing import Optional, Union

logger = logging.getLogger("ktxbrew")

# 10 MB max per log file, keep 3 rotated backups
_LOG_MAX_BYTES = 10 * 1024 * 1024
_LOG_BACKUP_COUNT = 3
_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_setup_lock = threading.Lock()


def resolve_level(level: Union[str, int]) -> int:
    """Map a level name (or number) to a logging level, defaulting to INFO."""
    if isinstance(level, int):
        return level
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        logger.warning("Invalid log level '%s', defaulting to INFO", level)
        return logging.INFO
    return numeric_level


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[str] = None,
    force: bool = False,
) -> None:
    """Configure logging without clobbering host-app handlers by default."""
    with _setup_lock:
        _setup_logging_impl(resolve_level(level), log_file, force)


def _file_handler(log_file: str) -> logging.Handler:
    os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=_LOG_MAX_BYTES, backupCount=_LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    return handler


def _setup_logging_impl(numeric_level: int, log_file: Optional[str], force: bool):
    root = logging.getLogger()
    if force or not root.handlers:
        handlers = [logging.StreamHandler()]
        if log_file:
            handlers.append(_file_handler(log_file))
        logging.basicConfig(
            level=numeric_level,
            format=_LOG_FORMAT,
            handlers=handlers,
            force=force,
        )
        return

    # Host already configured the root logger: only adjust our own hierarchy.
    logger.setLevel(numeric_level)
    if not log_file:
        return
    target = os.path.abspath(log_file)
    for h in logger.handlers:
        if isinstance(h, logging.FileHandler) and h.baseFilename == target:
            return
    logger.info("Adding file handler: %s", target)
    logger.addHandler(_file_handler(log_file))

"""
logger.py
---------
Application-wide logging configuration.

Design Decisions:
    * A single root logger ("tablesync") is set up by the entry point from
      the run's ``SyncConfig``; modules obtain a child logger via
      ``get_logger(__name__)`` at import time and never configure anything.
    * Reconfiguring replaces the handlers installed earlier instead of
      stacking new ones, so tests and repeated runs in one process do not
      duplicate lines.
    * With a log file, the file receives everything at DEBUG while the
      console keeps the configured level.
    * mysql-connector's own logger is held at WARNING unless the run is at
      DEBUG.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

from config import SyncConfig, get_log_level

_ROOT_LOGGER_NAME = "tablesync"
_DRIVER_LOGGER_NAME = "mysql.connector"
_CONSOLE_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _file_handler(log_file: str) -> logging.Handler | None:
    log_path = Path(log_file)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError as exc:
        print(f"Could not open log file '{log_path}': {exc}", file=sys.stderr)
        return None
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=_FILE_FORMAT, datefmt=_DATE_FORMAT))
    return handler


def configure_logging(config: SyncConfig | None = None) -> logging.Logger:
    """
    Install console (and optional file) handlers on the 'tablesync' logger.

    Args:
        config: The run configuration; ``log_level`` and ``log_file`` are read
                from it. ``None`` means INFO on the console only.

    Returns:
        The configured root 'tablesync' logger.
    """
    level = get_log_level(config.log_level if config else "INFO")
    log_file = config.log_file if config else None

    root = logging.getLogger(_ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(fmt=_CONSOLE_FORMAT, datefmt=_DATE_FORMAT))
    root.addHandler(console)

    file_handler = _file_handler(log_file) if log_file else None
    if file_handler is not None:
        root.addHandler(file_handler)
    root.setLevel(logging.DEBUG if file_handler is not None else level)

    logging.getLogger(_DRIVER_LOGGER_NAME).setLevel(
        logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    )
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the 'tablesync' hierarchy (pass ``__name__``)."""
    return logging.getLogger(f"{_ROOT_LOGGER_NAME}.{name}")

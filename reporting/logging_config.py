"""Application-wide logging configuration utilities."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from reporting import app_paths

_LOG_PATH: Optional[Path] = None


def configure_logging(level: int = logging.INFO, log_path: Optional[Path] = None) -> Path:
    """Configure logging to write to the SalesHistory log file.

    Parameters
    ----------
    level:
        The minimum logging level for the root logger. ``logging.INFO`` is used
        by default which records every export, fallback and load without
        flooding the file with per-row details.
    log_path:
        Optional explicit location, mainly used by tests and the command line
        tool. Defaults to ``saleshistory.log`` in the application log folder.

    Returns
    -------
    pathlib.Path
        The path to the log file.
    """

    global _LOG_PATH

    if _LOG_PATH is not None and log_path is None:
        return _LOG_PATH

    if log_path is None:
        log_path = app_paths.data_path("logs", "saleshistory.log")
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        root_logger.setLevel(level)
    else:
        root_logger.setLevel(min(root_logger.level, level))

    already_configured = any(
        isinstance(handler, logging.FileHandler)
        and getattr(handler, "baseFilename", None) == str(log_path.resolve())
        for handler in root_logger.handlers
    )
    if not already_configured:
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    _LOG_PATH = log_path
    root_logger.debug("Logging configured. Writing to %s", log_path)
    return log_path


"""Centralised helpers for managing SalesHistory application directories."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)

_APP_ENV_VARS: Iterable[str] = ("LOCALAPPDATA", "APPDATA")


def _detect_base_directory() -> Path:
    for env_var in _APP_ENV_VARS:
        value = os.environ.get(env_var)
        if value:
            return Path(value).expanduser().resolve() / "SalesHistory"
    return Path.home().resolve() / ".saleshistory"


APP_DIR: Path = _detect_base_directory()
EXPORT_DIR: Path = APP_DIR / "exports"
LOG_DIR: Path = APP_DIR / "logs"


def ensure_directory(path: Path) -> Path:
    """Ensure that ``path`` exists, returning the :class:`~pathlib.Path`."""

    path.mkdir(parents=True, exist_ok=True)
    return path


def ensure_app_structure() -> None:
    """Create the base directories required for application data."""

    for directory in (APP_DIR, EXPORT_DIR, LOG_DIR):
        ensure_directory(directory)


def data_path(*parts: str) -> Path:
    """Return a path rooted inside :data:`APP_DIR`, creating parent directories."""

    ensure_app_structure()
    target = APP_DIR.joinpath(*parts)
    if target.parent and not target.parent.exists():
        target.parent.mkdir(parents=True, exist_ok=True)
    return target


def export_directory() -> Path:
    """Return the default export directory, honouring ``SALESHISTORY_EXPORT_DIR``."""

    override = os.environ.get("SALESHISTORY_EXPORT_DIR")
    if override:
        return ensure_directory(Path(override).expanduser())
    return ensure_directory(EXPORT_DIR)


__all__ = [
    "APP_DIR",
    "EXPORT_DIR",
    "LOG_DIR",
    "data_path",
    "ensure_app_structure",
    "ensure_directory",
    "export_directory",
]

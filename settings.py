"""Application configuration helpers for SalesHistory."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

from reporting import app_paths
from reporting.models import CompanyInfo, ExportFormat


logger = logging.getLogger(__name__)


DEFAULT_SETTINGS_PATH = str(app_paths.APP_DIR / "settings.json")

API_URL_ENV = "SALESHISTORY_API_URL"
EXPORT_DIR_ENV = "SALESHISTORY_EXPORT_DIR"

MAX_PAGE_SIZE = 100

DEFAULT_CONFIG = {
    "api": {
        "base_url": "http://localhost:5000/api",
        "timeout_seconds": 15,
        "page_size": 100,
        "max_pages": 50,
    },
    "company": {
        "name": "InventoryPro",
        "tagline": "Inventory Management System",
    },
    "export": {
        "directory": "",
        "default_format": "xlsx",
        "include_headers": True,
        "include_summary": True,
        "include_timestamp": True,
        "lookback_days": 30,
    },
}


@dataclass
class ApiSettings:
    base_url: str
    timeout_seconds: float = 15.0
    page_size: int = MAX_PAGE_SIZE
    max_pages: int = 50


@dataclass
class ExportDefaults:
    directory: str
    default_format: ExportFormat = ExportFormat.SPREADSHEET
    include_headers: bool = True
    include_summary: bool = True
    include_timestamp: bool = True
    lookback_days: int = 30

    @property
    def directory_path(self) -> Path:
        return Path(self.directory).expanduser()


@dataclass
class AppSettings:
    api: ApiSettings
    company: CompanyInfo
    export: ExportDefaults

    def to_json(self) -> Dict[str, object]:
        return {
            "api": {
                "base_url": self.api.base_url,
                "timeout_seconds": self.api.timeout_seconds,
                "page_size": self.api.page_size,
                "max_pages": self.api.max_pages,
            },
            "company": {"name": self.company.name, "tagline": self.company.tagline},
            "export": {
                "directory": self.export.directory,
                "default_format": self.export.default_format.value,
                "include_headers": self.export.include_headers,
                "include_summary": self.export.include_summary,
                "include_timestamp": self.export.include_timestamp,
                "lookback_days": self.export.lookback_days,
            },
        }


def _ensure_default_settings(path: str) -> Dict[str, Dict]:
    if not os.path.exists(path):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as handle:
            json.dump(DEFAULT_CONFIG, handle, indent=2)
        return json.loads(json.dumps(DEFAULT_CONFIG))
    with open(path, "r", encoding="utf-8") as handle:
        try:
            data = json.load(handle)
        except json.JSONDecodeError as exc:
            logger.warning("Settings file %s is not valid JSON, using defaults: %s", path, exc)
            return json.loads(json.dumps(DEFAULT_CONFIG))
    if not isinstance(data, dict):
        return json.loads(json.dumps(DEFAULT_CONFIG))
    return data


def _section(data: Mapping[str, object], name: str) -> Dict[str, object]:
    merged: Dict[str, object] = dict(DEFAULT_CONFIG[name])
    value = data.get(name)
    if isinstance(value, Mapping):
        merged.update(value)
    return merged


def _clamped_int(value: object, default: int, minimum: int, maximum: Optional[int] = None) -> int:
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    number = max(minimum, number)
    if maximum is not None:
        number = min(maximum, number)
    return number


def _positive_float(value: object, default: float) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _flag(value: object, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return default


def _parse_format(value: object) -> ExportFormat:
    try:
        return ExportFormat.parse(str(value))
    except ValueError:
        logger.warning("Unknown default export format %r, using xlsx", value)
        return ExportFormat.SPREADSHEET


def load_settings(path: str = DEFAULT_SETTINGS_PATH) -> AppSettings:
    data = _ensure_default_settings(path)
    api = _section(data, "api")
    company = _section(data, "company")
    export = _section(data, "export")

    base_url = os.getenv(API_URL_ENV) or str(api.get("base_url") or DEFAULT_CONFIG["api"]["base_url"])
    directory = os.getenv(EXPORT_DIR_ENV) or str(export.get("directory") or "")
    if not directory:
        directory = str(app_paths.EXPORT_DIR)

    return AppSettings(
        api=ApiSettings(
            base_url=base_url.rstrip("/"),
            timeout_seconds=_positive_float(api.get("timeout_seconds"), 15.0),
            page_size=_clamped_int(api.get("page_size"), MAX_PAGE_SIZE, 1, MAX_PAGE_SIZE),
            max_pages=_clamped_int(api.get("max_pages"), 50, 1),
        ),
        company=CompanyInfo(
            name=str(company.get("name") or DEFAULT_CONFIG["company"]["name"]),
            tagline=str(company.get("tagline") or ""),
        ),
        export=ExportDefaults(
            directory=directory,
            default_format=_parse_format(export.get("default_format")),
            include_headers=_flag(export.get("include_headers"), True),
            include_summary=_flag(export.get("include_summary"), True),
            include_timestamp=_flag(export.get("include_timestamp"), True),
            lookback_days=_clamped_int(export.get("lookback_days"), 30, 1),
        ),
    )


def save_settings(settings: AppSettings, path: str = DEFAULT_SETTINGS_PATH) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    payload = settings.to_json()

    with open(path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)


__all__ = [
    "ApiSettings",
    "AppSettings",
    "CompanyInfo",
    "DEFAULT_CONFIG",
    "DEFAULT_SETTINGS_PATH",
    "ExportDefaults",
    "load_settings",
    "save_settings",
]

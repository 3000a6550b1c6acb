"""Utilities for loading mock driver settings from YAML configuration files."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from sqlmock.core.observability import DispatchObservationSink, JSONLDispatchLogger
from sqlmock.core.registry import DEFAULT_DRIVER_NAME, DEFAULT_DSN_TEMPLATE
from sqlmock.integrations.rows import DEFAULT_NULL_TOKEN


@dataclass(slots=True)
class DriverSettings:
    name: str = DEFAULT_DRIVER_NAME
    dsn_template: str = DEFAULT_DSN_TEMPLATE


@dataclass(slots=True)
class RowSettings:
    null_token: str | None = DEFAULT_NULL_TOKEN
    delimiter: str = ","


@dataclass(slots=True)
class PathsSettings:
    dispatch_logs_dir: str | None = None


@dataclass(slots=True)
class Settings:
    driver: DriverSettings = field(default_factory=DriverSettings)
    rows: RowSettings = field(default_factory=RowSettings)
    paths: PathsSettings | None = None


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or {}
    if not isinstance(payload, dict):
        raise ValueError("Configuration file must contain a top-level mapping")
    return payload


def load_settings(path: str | Path) -> Settings:
    """Read configuration from *path* and return structured settings."""

    config_path = Path(path)
    raw = _load_yaml(config_path)

    driver_raw = raw.get("driver") or {}
    driver = DriverSettings(
        name=str(driver_raw.get("name", DEFAULT_DRIVER_NAME)),
        dsn_template=str(driver_raw.get("dsn_template", DEFAULT_DSN_TEMPLATE)),
    )
    if "{sequence}" not in driver.dsn_template:
        raise ValueError("driver.dsn_template must contain a '{sequence}' placeholder")

    rows_raw = raw.get("rows") or {}
    null_token = rows_raw.get("null_token", DEFAULT_NULL_TOKEN)
    delimiter = str(rows_raw.get("delimiter", ","))
    if len(delimiter) != 1:
        raise ValueError("rows.delimiter must be a single character")
    rows = RowSettings(
        null_token=str(null_token) if null_token is not None else None,
        delimiter=delimiter,
    )

    paths_raw: dict[str, Any] | None = raw.get("paths")
    paths = None
    if paths_raw:
        logs_dir = paths_raw.get("dispatch_logs_dir")
        paths = PathsSettings(dispatch_logs_dir=str(logs_dir) if logs_dir else None)

    return Settings(driver=driver, rows=rows, paths=paths)


def build_observer(settings: Settings) -> DispatchObservationSink | None:
    """Return a JSONL observer when a dispatch log directory is configured."""

    if settings.paths is None or not settings.paths.dispatch_logs_dir:
        return None
    base = Path(settings.paths.dispatch_logs_dir).expanduser()
    base.mkdir(parents=True, exist_ok=True)
    return JSONLDispatchLogger(base_dir=base)

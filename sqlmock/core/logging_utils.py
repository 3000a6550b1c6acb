"""Naming helpers for per-session JSONL dispatch logs."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from pathlib import Path

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def utc_now() -> datetime:
    return datetime.now(UTC)


def utc_now_iso(moment: datetime | None = None) -> str:
    """Render *moment* (default: now) as ISO-8601 UTC with millisecond precision."""

    stamp = moment if moment is not None else utc_now()
    return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def make_timestamp_slug(moment: datetime) -> str:
    """Return a sortable slug such as ``20240501T102030123`` for filenames."""

    return f"{moment:%Y%m%dT%H%M%S}{moment.microsecond // 1000:03d}"


def sanitize_session_id(session_id: str) -> str:
    """Turn a DSN such as ``sqlmock://db/3`` into a filename-safe token."""

    cleaned = _UNSAFE_FILENAME_CHARS.sub("-", session_id.strip()).strip("-")
    return cleaned or "session"


def session_log_path(base_dir: Path, session_id: str, opened_at: datetime) -> Path:
    """Path of the file receiving every event of one mock session."""

    return base_dir / f"{make_timestamp_slug(opened_at)}-{sanitize_session_id(session_id)}.jsonl"

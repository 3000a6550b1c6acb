"""JSONL-backed observability for mock dispatch activity."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from sqlmock.core.logging_utils import session_log_path, utc_now, utc_now_iso

SESSION_CLOSED_EVENT = "connection_closed"


class DispatchObservationSink(Protocol):
    """Records lifecycle events emitted by a mock connection."""

    def log_event(self, session_id: str, event: str, payload: dict[str, Any]) -> None:  # pragma: no cover - interface
        ...


def _build_event(event: str, payload: dict[str, Any], moment: datetime | None = None) -> dict[str, Any]:
    enriched = {key: value for key, value in payload.items() if value is not None}
    enriched.setdefault("event", event)
    enriched.setdefault("timestamp", utc_now_iso(moment))
    return enriched


@dataclass(slots=True)
class JSONLDispatchLogger(DispatchObservationSink):
    """Appends one JSON object per dispatch event to a per-session file.

    The file name is fixed by the first event of a session and forgotten once
    the session reports ``connection_closed``.
    """

    base_dir: Path
    _session_paths: dict[str, Path] = field(init=False, default_factory=dict)

    def log_event(self, session_id: str, event: str, payload: dict[str, Any]) -> None:  # type: ignore[override]
        now = utc_now()
        record = _build_event(event, payload, now)
        target = self._path_for(session_id, now)
        with target.open("a", encoding="utf-8") as handle:
            # bound arguments may be datetimes or other non-JSON scalars
            json.dump(record, handle, ensure_ascii=False, default=str)
            handle.write("\n")
        if event == SESSION_CLOSED_EVENT:
            self._session_paths.pop(session_id, None)

    @property
    def open_sessions(self) -> list[str]:
        return list(self._session_paths)

    def _path_for(self, session_id: str, opened_at: datetime) -> Path:
        target = self._session_paths.get(session_id)
        if target is None:
            base = self.base_dir.expanduser()
            base.mkdir(parents=True, exist_ok=True)
            target = session_log_path(base, session_id, opened_at)
            self._session_paths[session_id] = target
        return target


@dataclass(slots=True)
class InMemoryDispatchLogger(DispatchObservationSink):
    """Keeps events in a list; handy for assertions in tests."""

    events: list[dict[str, Any]] = field(default_factory=list)

    def log_event(self, session_id: str, event: str, payload: dict[str, Any]) -> None:  # type: ignore[override]
        record = _build_event(event, payload)
        record.setdefault("session_id", session_id)
        self.events.append(record)

    def names(self) -> list[str]:
        return [str(record["event"]) for record in self.events]

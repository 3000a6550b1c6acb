"""PEP 249 (DB-API 2.0) surface over a mock connection.

Application code receives a :class:`Connection` from :func:`connect` and uses
it exactly like a real driver. ``Cursor.execute`` routes statements that
produce rows to query dispatch and every other statement to exec dispatch,
deciding by the leading keyword (and a ``RETURNING`` clause).
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from types import TracebackType
from typing import Any, Sequence

from sqlmock.core.connection import MockConnection
from sqlmock.core.errors import (  # noqa: F401 - re-exported as the PEP 249 module API
    DatabaseError,
    DataError,
    Error,
    IntegrityError,
    InterfaceError,
    InternalError,
    NotSupportedError,
    OperationalError,
    ProgrammingError,
    Warning,
)
from sqlmock.core.handles import Statement, Transaction
from sqlmock.core.observability import DispatchObservationSink
from sqlmock.core.registry import DEFAULT_REGISTRY, DriverRegistry

apilevel = "2.0"
threadsafety = 1
paramstyle = "qmark"

_ROW_RETURNING_RE = re.compile(r"^\s*\(?\s*(select|with|values|show|pragma|explain)\b", re.IGNORECASE)
_RETURNING_RE = re.compile(r"\breturning\b", re.IGNORECASE)


def returns_rows(sql: str) -> bool:
    return bool(_ROW_RETURNING_RE.match(sql) or _RETURNING_RE.search(sql))


def connect(
    dsn: str,
    *,
    registry: DriverRegistry | None = None,
    observer: DispatchObservationSink | None = None,
) -> Connection:
    """Open the mock session reserved under *dsn*."""

    active_registry = registry if registry is not None else DEFAULT_REGISTRY
    mock = active_registry.open(dsn, observer=observer)
    return Connection(mock=mock, dsn=dsn, registry=active_registry)


class Connection:
    """DB-API connection whose every call is checked against the ledger."""

    def __init__(self, mock: MockConnection, dsn: str, registry: DriverRegistry) -> None:
        self._mock = mock
        self.dsn = dsn
        self._registry = registry

    @property
    def mock_connection(self) -> MockConnection:
        return self._mock

    @property
    def closed(self) -> bool:
        return self._mock.closed

    def cursor(self) -> Cursor:
        self._ensure_open()
        return Cursor(self)

    def begin(self) -> Transaction:
        self._ensure_open()
        return self._mock.begin()

    def commit(self) -> None:
        self._ensure_open()
        self._mock.commit()

    def rollback(self) -> None:
        self._ensure_open()
        self._mock.rollback()

    def prepare(self, sql: str) -> Statement:
        self._ensure_open()
        return self._mock.prepare(sql)

    def execute(self, sql: str, parameters: Sequence[Any] = ()) -> Cursor:
        """Shortcut creating a cursor, as ``sqlite3`` does."""

        cursor = self.cursor()
        cursor.execute(sql, parameters)
        return cursor

    def close(self) -> None:
        """Close the session, raising if declared expectations were not met."""

        try:
            if not self._mock.closed:
                self._mock.close()
        finally:
            # the session may have been closed on the mock side already
            self._registry.release(self.dsn)

    def _ensure_open(self) -> None:
        if self._mock.closed:
            raise InterfaceError(f"connection {self.dsn} is already closed")

    def __enter__(self) -> Connection:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()
        else:
            # keep the original failure; still tear the session down
            self._mock.ledger.clear()
            self._mock.close()
            self._registry.release(self.dsn)


class Cursor:
    """Cursor backed by the payloads programmed on the matched expectations."""

    arraysize = 1

    def __init__(self, connection: Connection) -> None:
        self.connection = connection
        self.description: tuple[tuple[Any, ...], ...] | None = None
        self.rowcount = -1
        self.lastrowid: int | None = None
        self._rows: Any = None
        self._closed = False

    def execute(self, sql: str, parameters: Sequence[Any] | None = None) -> Cursor:
        self._ensure_usable()
        args = _coerce_parameters(parameters)
        mock = self.connection.mock_connection
        if returns_rows(sql):
            rows = mock.query(sql, args)
            self._set_rows(rows)
        else:
            result = mock.exec(sql, args)
            self._set_result(result)
        return self

    def executemany(self, sql: str, seq_of_parameters: Sequence[Sequence[Any]]) -> Cursor:
        self._ensure_usable()
        affected = 0
        for parameters in seq_of_parameters:
            result = self.connection.mock_connection.exec(sql, _coerce_parameters(parameters))
            self._set_result(result)
            affected += max(self.rowcount, 0)
        self.rowcount = affected
        return self

    def fetchone(self) -> tuple[Any, ...] | None:
        rows = self._require_rows()
        return rows.next()

    def fetchmany(self, size: int | None = None) -> list[tuple[Any, ...]]:
        rows = self._require_rows()
        limit = self.arraysize if size is None else size
        fetched: list[tuple[Any, ...]] = []
        while len(fetched) < limit:
            row = rows.next()
            if row is None:
                break
            fetched.append(row)
        return fetched

    def fetchall(self) -> list[tuple[Any, ...]]:
        rows = self._require_rows()
        fetched: list[tuple[Any, ...]] = []
        while (row := rows.next()) is not None:
            fetched.append(row)
        return fetched

    def setinputsizes(self, sizes: Any) -> None:
        return None

    def setoutputsize(self, size: Any, column: int | None = None) -> None:
        return None

    def close(self) -> None:
        if self._rows is not None and hasattr(self._rows, "close"):
            self._rows.close()
        self._rows = None
        self._closed = True

    def __iter__(self) -> Iterator[tuple[Any, ...]]:
        while (row := self.fetchone()) is not None:
            yield row

    def _set_rows(self, rows: Any) -> None:
        self._rows = rows
        columns = getattr(rows, "columns", None) or []
        self.description = tuple((name, None, None, None, None, None, None) for name in columns)
        self.rowcount = -1
        self.lastrowid = None

    def _set_result(self, result: Any) -> None:
        self._rows = None
        self.description = None
        self.rowcount = int(result.rows_affected())
        self.lastrowid = int(result.last_insert_id())

    def _require_rows(self) -> Any:
        self._ensure_usable()
        if self._rows is None:
            raise ProgrammingError("no result set: the last statement did not return rows")
        return self._rows

    def _ensure_usable(self) -> None:
        if self._closed:
            raise InterfaceError("cursor is closed")
        if self.connection.closed:
            raise InterfaceError(f"connection {self.connection.dsn} is already closed")


def _coerce_parameters(parameters: Sequence[Any] | None) -> tuple[Any, ...]:
    if parameters is None:
        return ()
    if isinstance(parameters, Mapping):
        raise ProgrammingError(f"paramstyle '{paramstyle}' takes a sequence of parameters, not a mapping")
    if isinstance(parameters, (str, bytes)):
        raise ProgrammingError("parameters must be a sequence of values, not a single string")
    return tuple(parameters)

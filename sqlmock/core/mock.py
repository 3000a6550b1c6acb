"""Declaration API used by tests to program a mock database session.

Typical use::

    mock, db = new()
    mock.expect_begin()
    mock.expect_query(r"SELECT (.+) FROM orders (.+) FOR UPDATE").with_args(1).will_return_rows(
        Rows(["id", "status"]).from_csv_string("1,1")
    )
    mock.expect_rollback()

    cancel_order(db, 1)

    mock.close()  # raises UnfulfilledExpectationError if anything was left over
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import TracebackType
from typing import TypeVar

from sqlmock.core.config import Settings, build_observer
from sqlmock.core.connection import MockConnection
from sqlmock.core.errors import InterfaceError
from sqlmock.core.expectations import (
    Expectation,
    ExpectedBegin,
    ExpectedCommit,
    ExpectedExec,
    ExpectedPrepare,
    ExpectedQuery,
    ExpectedRollback,
)
from sqlmock.core.observability import DispatchObservationSink
from sqlmock.core.registry import DEFAULT_REGISTRY, DriverRegistry
from sqlmock.integrations import dbapi
from sqlmock.integrations.rows import Rows

LOGGER = logging.getLogger(__name__)

_E = TypeVar("_E", bound=Expectation)


@dataclass(eq=False)
class MockDB:
    """Declares expectations on the session behind a DB-API connection."""

    connection: MockConnection
    db: dbapi.Connection
    settings: Settings

    def expect_begin(self) -> ExpectedBegin:
        return self._declare(ExpectedBegin())

    def expect_commit(self) -> ExpectedCommit:
        return self._declare(ExpectedCommit())

    def expect_rollback(self) -> ExpectedRollback:
        return self._declare(ExpectedRollback())

    def expect_prepare(self) -> ExpectedPrepare:
        return self._declare(ExpectedPrepare())

    def expect_exec(self, pattern: str) -> ExpectedExec:
        """Expect an exec whose normalized SQL is searched by *pattern*."""

        return self._declare(ExpectedExec.from_pattern(pattern))

    def expect_query(self, pattern: str) -> ExpectedQuery:
        """Expect a query whose normalized SQL is searched by *pattern*."""

        return self._declare(ExpectedQuery.from_pattern(pattern))

    def new_rows(self, columns: list[str], csv_text: str | None = None) -> Rows:
        """Build a row set honouring the configured CSV null token and delimiter."""

        rows = Rows(columns)
        if csv_text is not None:
            rows.from_csv_string(
                csv_text,
                null_token=self.settings.rows.null_token,
                delimiter=self.settings.rows.delimiter,
            )
        return rows

    def expectations_were_met(self) -> bool:
        return self.connection.ledger.all_fulfilled()

    def close(self) -> None:
        """Close the session; raises if any expectation was never triggered."""

        self.db.close()

    def _declare(self, expectation: _E) -> _E:
        self.connection.expect(expectation)
        return expectation

    def __enter__(self) -> MockDB:
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
            self.db.__exit__(exc_type, exc, traceback)


def new(
    registry: DriverRegistry | None = None,
    settings: Settings | None = None,
    observer: DispatchObservationSink | None = None,
) -> tuple[MockDB, dbapi.Connection]:
    """Open a fresh mock session and return its declaration API and connection."""

    active_settings = settings if settings is not None else Settings()
    if registry is None:
        registry = DriverRegistry.from_settings(settings) if settings is not None else DEFAULT_REGISTRY
    if observer is None:
        observer = build_observer(active_settings)

    dsn = registry.reserve_dsn()
    db = dbapi.connect(dsn, registry=registry, observer=observer)
    connection = registry.get_connection(dsn)
    if connection is None:
        raise InterfaceError(f"failed when looking up connection {dsn}")
    LOGGER.debug("Created mock session %s", dsn)
    return MockDB(connection=connection, db=db, settings=active_settings), db

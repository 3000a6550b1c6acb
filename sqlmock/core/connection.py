"""Dispatch state machine binding one expectation ledger to one mock session.

Every driver-level call (begin, commit, rollback, prepare, exec, query) is
funnelled through :class:`MockConnection`, which:
- Picks the oldest unfulfilled expectation from the ledger.
- Rejects the call when its kind differs from the pending expectation.
- Runs the SQL pattern and argument matchers for exec/query calls.
- Returns the programmed payload or raises the programmed error.

There is no locking here: one connection serves one logical flow of calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

from sqlmock.core.errors import (
    ArgMismatchError,
    ConnectionClosedError,
    ExpectationError,
    MisconfiguredExpectationError,
    QueryMismatchError,
    SequenceMismatchError,
    UnexpectedCallError,
    UnfulfilledExpectationError,
)
from sqlmock.core.expectations import Expectation, ExpectationKind, StatementExpectation
from sqlmock.core.handles import Statement, Transaction
from sqlmock.core.ledger import ExpectationLedger
from sqlmock.core.matchers import args_match, normalize_query, query_matches
from sqlmock.core.observability import SESSION_CLOSED_EVENT, DispatchObservationSink

LOGGER = logging.getLogger(__name__)

_PAYLOAD_NAMES = {
    ExpectationKind.EXEC: "result",
    ExpectationKind.QUERY: "rows",
}


class ConnectionState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(eq=False)
class MockConnection:
    """Consumes declared expectations strictly in declaration order."""

    session_id: str = "sqlmock"
    observer: DispatchObservationSink | None = None
    ledger: ExpectationLedger = field(default_factory=ExpectationLedger)
    state: ConnectionState = ConnectionState.OPEN

    @property
    def closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    def expect(self, expectation: Expectation) -> Expectation:
        """Append *expectation* to the ledger; allowed between calls too."""

        self._ensure_open("declare an expectation")
        self.ledger.append(expectation)
        self._log_event(
            "expectation_declared",
            {"kind": expectation.kind.value, "position": len(self.ledger) - 1},
        )
        return expectation

    def begin(self) -> Transaction:
        self._trigger(ExpectationKind.BEGIN, "begin transaction")
        return Transaction(self)

    def commit(self) -> None:
        self._trigger(ExpectationKind.COMMIT, "commit transaction")

    def rollback(self) -> None:
        self._trigger(ExpectationKind.ROLLBACK, "rollback transaction")

    def prepare(self, query: str) -> Statement:
        """Prepare *query*; unmatched prepares succeed without consuming anything."""

        self._ensure_open("prepare a statement")
        sql = normalize_query(query)
        pending = self.ledger.next()
        if pending is None or pending.kind is not ExpectationKind.PREPARE:
            LOGGER.debug("Prepare of '%s' accepted without a declared expectation", sql)
            return Statement(self, sql)

        pending.mark_fulfilled()
        self._log_event("expectation_matched", {"kind": pending.kind.value, "query": sql})
        if pending.planned_error is not None:
            raise pending.planned_error
        return Statement(self, sql)

    def exec(self, query: str, args: Sequence[Any] | None = None) -> Any:
        return self._trigger_statement(ExpectationKind.EXEC, query, args)

    def query(self, query: str, args: Sequence[Any] | None = None) -> Any:
        return self._trigger_statement(ExpectationKind.QUERY, query, args)

    def close(self) -> None:
        """Audit the ledger, then tear the session down whatever the outcome."""

        if self.closed:
            return

        unmet = self.ledger.first_unfulfilled()
        self.ledger.clear()
        self.state = ConnectionState.CLOSED
        self._log_event(
            SESSION_CLOSED_EVENT,
            {"unfulfilled": unmet.kind.value if unmet is not None else None},
        )
        if unmet is not None:
            LOGGER.warning("Session %s closed with unmet expectation %s", self.session_id, unmet.kind.value)
            raise UnfulfilledExpectationError(
                f"there is a remaining expectation Expected{unmet.kind.value} which was not matched yet:\n"
                f"{unmet.describe()}"
            )

    def _trigger(self, kind: ExpectationKind, operation: str) -> Expectation:
        expectation = self._next_of_kind(kind, operation)
        expectation.mark_fulfilled()
        self._log_event("expectation_matched", {"kind": kind.value})
        if expectation.planned_error is not None:
            raise expectation.planned_error
        return expectation

    def _trigger_statement(self, kind: ExpectationKind, query: str, args: Sequence[Any] | None) -> Any:
        sql = normalize_query(query)
        values = tuple(args) if args is not None else ()
        label = "exec query" if kind is ExpectationKind.EXEC else "query"
        expectation = self._next_of_kind(kind, f"{label} '{sql}' with args {list(values)!r}")
        assert isinstance(expectation, StatementExpectation)  # for mypy; exec and query kinds are statements

        # consumed once reached, even if the finer checks below fail
        expectation.mark_fulfilled()
        if expectation.planned_error is not None:
            self._log_event("expectation_matched", {"kind": kind.value, "query": sql, "planned_error": True})
            raise expectation.planned_error

        payload = expectation.payload
        if payload is None:
            raise self._failed(
                MisconfiguredExpectationError(
                    f"{label} '{sql}' with args {list(values)!r} must return "
                    f"{_PAYLOAD_NAMES[kind]}, but it was not set for expectation:\n{expectation.describe()}"
                )
            )

        if not query_matches(expectation.sql_pattern, sql):
            raise self._failed(
                QueryMismatchError(
                    f"{label} '{sql}' does not match regex [{expectation.pattern}]"
                )
            )

        outcome = args_match(values, expectation.expected_args)
        if not outcome.matched:
            expected = list(expectation.expected_args or ())
            raise self._failed(
                ArgMismatchError(
                    f"{label} '{sql}', args {list(values)!r} do not match expected "
                    f"{expected!r}: {outcome.reason}"
                )
            )

        self._log_event("expectation_matched", {"kind": kind.value, "query": sql, "args": list(values)})
        LOGGER.debug("Matched %s expectation for '%s'", kind.value, sql)
        return payload

    def _next_of_kind(self, kind: ExpectationKind, operation: str) -> Expectation:
        self._ensure_open(operation)
        expectation = self.ledger.next()
        if expectation is None:
            raise self._failed(
                UnexpectedCallError(
                    f"all expectations were already fulfilled, call to {operation} was not expected"
                )
            )
        if expectation.kind is not kind:
            raise self._failed(
                SequenceMismatchError(
                    f"call to {operation} was not expected, next expectation is:\n{expectation.describe()}"
                )
            )
        return expectation

    def _ensure_open(self, operation: str) -> None:
        if self.closed:
            raise ConnectionClosedError(f"cannot {operation}: mock connection {self.session_id} is closed")

    def _failed(self, error: ExpectationError) -> ExpectationError:
        LOGGER.debug("Dispatch failed on %s: %s", self.session_id, error.message)
        self._log_event("dispatch_failed", {"error_kind": error.kind.value, "message": error.message})
        return error

    def _log_event(self, event: str, payload: dict[str, Any]) -> None:
        if self.observer is not None:
            self.observer.log_event(self.session_id, event, payload)

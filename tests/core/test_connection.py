"""Tests for the mock connection dispatch state machine."""

from __future__ import annotations

import pytest

from sqlmock.core.connection import ConnectionState, MockConnection
from sqlmock.core.errors import (
    ArgMismatchError,
    ConnectionClosedError,
    ErrorKind,
    MisconfiguredExpectationError,
    QueryMismatchError,
    SequenceMismatchError,
    UnexpectedCallError,
    UnfulfilledExpectationError,
)
from sqlmock.core.expectations import (
    ExpectedBegin,
    ExpectedCommit,
    ExpectedExec,
    ExpectedPrepare,
    ExpectedQuery,
    ExpectedRollback,
)
from sqlmock.core.handles import Statement, Transaction
from sqlmock.core.observability import InMemoryDispatchLogger
from sqlmock.integrations.rows import Result, Rows


def _articles() -> Rows:
    return Rows(["id", "title"]).from_csv_string("5,hello world")


def test_calls_consume_expectations_in_declaration_order() -> None:
    conn = MockConnection()
    declared = [
        conn.expect(ExpectedBegin()),
        conn.expect(ExpectedQuery.from_pattern("SELECT").will_return_rows(_articles())),
        conn.expect(ExpectedExec.from_pattern("UPDATE").will_return_result(Result(0, 1))),
        conn.expect(ExpectedCommit()),
    ]

    assert conn.ledger.next() is declared[0]
    tx = conn.begin()
    assert [item.fulfilled for item in declared] == [True, False, False, False]
    assert conn.ledger.next() is declared[1]
    conn.query("SELECT * FROM articles")
    assert conn.ledger.next() is declared[2]
    conn.exec("UPDATE articles SET title = ?", ["x"])
    assert conn.ledger.next() is declared[3]
    tx.commit()

    assert all(item.fulfilled for item in declared)
    assert conn.ledger.next() is None
    conn.close()


def test_exec_returns_programmed_result() -> None:
    conn = MockConnection()
    conn.expect(ExpectedExec.from_pattern("^INSERT INTO articles").with_args("hello").will_return_result(Result(1, 1)))

    result = conn.exec("INSERT INTO articles (title) VALUES (?)", ["hello"])

    assert result.last_insert_id() == 1
    assert result.rows_affected() == 1


def test_query_argument_mismatch_is_reported() -> None:
    conn = MockConnection()
    rows = _articles()
    pattern = "SELECT (.+) FROM articles WHERE id = ?"
    conn.expect(ExpectedQuery.from_pattern(pattern).with_args(5).will_return_rows(rows))
    conn.expect(ExpectedQuery.from_pattern(pattern).with_args(5).will_return_rows(rows))

    assert conn.query("SELECT (.+) FROM articles WHERE id = ?", [5]) is rows

    with pytest.raises(ArgMismatchError) as excinfo:
        conn.query("SELECT (.+) FROM articles WHERE id = ?", [6])

    assert excinfo.value.kind is ErrorKind.ARG_MISMATCH
    assert "[6]" in str(excinfo.value)
    assert "[5]" in str(excinfo.value)


def test_begin_without_expectations_is_unexpected() -> None:
    conn = MockConnection()

    with pytest.raises(UnexpectedCallError) as excinfo:
        conn.begin()

    assert excinfo.value.kind is ErrorKind.UNEXPECTED
    assert "begin transaction" in str(excinfo.value)


def test_wrong_kind_reports_pending_expectation() -> None:
    conn = MockConnection()
    conn.expect(ExpectedBegin())

    with pytest.raises(SequenceMismatchError) as excinfo:
        conn.query("SELECT 1")

    assert "ExpectedBegin" in str(excinfo.value)
    assert conn.ledger.next() is not None
    assert not conn.ledger.all_fulfilled()


def test_later_matching_expectation_is_not_used_out_of_order() -> None:
    conn = MockConnection()
    conn.expect(ExpectedBegin())
    query = conn.expect(ExpectedQuery.from_pattern("SELECT").will_return_rows(_articles()))

    with pytest.raises(SequenceMismatchError):
        conn.query("SELECT * FROM articles")

    assert query.fulfilled is False


def test_statement_expectation_is_consumed_even_when_pattern_fails() -> None:
    conn = MockConnection()
    first = conn.expect(ExpectedQuery.from_pattern("^SELECT id").will_return_rows(_articles()))
    conn.expect(ExpectedCommit())

    with pytest.raises(QueryMismatchError) as excinfo:
        conn.query("DELETE FROM articles")

    assert first.fulfilled is True
    assert "DELETE FROM articles" in str(excinfo.value)
    assert "^SELECT id" in str(excinfo.value)
    conn.commit()
    conn.close()


def test_planned_error_is_raised_verbatim_and_fulfils() -> None:
    conn = MockConnection()
    boom = RuntimeError("deadlock occurred")
    expectation = conn.expect(ExpectedCommit().will_return_error(boom))

    with pytest.raises(RuntimeError) as excinfo:
        conn.commit()

    assert excinfo.value is boom
    assert expectation.fulfilled is True


def test_planned_error_skips_payload_and_matchers() -> None:
    conn = MockConnection()
    boom = ValueError("nope")
    conn.expect(ExpectedExec.from_pattern("^never").will_return_error(boom))

    with pytest.raises(ValueError) as excinfo:
        conn.exec("UPDATE x SET y = 1", [1, 2])

    assert excinfo.value is boom


def test_missing_payload_is_misconfiguration() -> None:
    conn = MockConnection()
    expectation = conn.expect(ExpectedQuery.from_pattern("SELECT"))

    with pytest.raises(MisconfiguredExpectationError) as excinfo:
        conn.query("SELECT 1")

    assert excinfo.value.kind is ErrorKind.MISCONFIGURED
    assert expectation.fulfilled is True


def test_multiline_sql_is_normalized_before_matching() -> None:
    conn = MockConnection()
    rows = _articles()
    conn.expect(ExpectedQuery.from_pattern("^SELECT id, title FROM articles WHERE id = \\?$").will_return_rows(rows))

    result = conn.query(
        """
        SELECT id, title
          FROM articles
         WHERE id = ?
        """,
        [5],
    )

    assert result is rows


def test_prepare_without_expectations_returns_bare_statement() -> None:
    conn = MockConnection()

    stmt = conn.prepare("SELECT (.+) FROM articles WHERE id = ?")

    assert isinstance(stmt, Statement)
    assert stmt.sql == "SELECT (.+) FROM articles WHERE id = ?"
    assert stmt.num_input == -1
    with pytest.raises(UnexpectedCallError):
        stmt.query([5])
    with pytest.raises(UnexpectedCallError):
        conn.exec("DELETE FROM articles")


def test_prepare_does_not_consume_other_kinds() -> None:
    conn = MockConnection()
    rows = _articles()
    query = conn.expect(ExpectedQuery.from_pattern("FROM articles").with_args(5).will_return_rows(rows))

    stmt = conn.prepare("SELECT * FROM articles WHERE id = ?")

    assert query.fulfilled is False
    assert stmt.query([5]) is rows
    assert query.fulfilled is True


def test_prepare_expectation_consumed_and_error_planned() -> None:
    conn = MockConnection()
    ok = conn.expect(ExpectedPrepare())
    failing = conn.expect(ExpectedPrepare().will_return_error(RuntimeError("Some DB error occurred")))

    assert isinstance(conn.prepare("SELECT 1"), Statement)
    assert ok.fulfilled is True
    with pytest.raises(RuntimeError):
        conn.prepare("SELECT 1")
    assert failing.fulfilled is True


def test_transaction_handle_forwards_to_ledger() -> None:
    conn = MockConnection()
    conn.expect(ExpectedBegin())
    conn.expect(ExpectedRollback())

    tx = conn.begin()

    assert isinstance(tx, Transaction)
    assert tx.connection is conn
    tx.rollback()
    assert conn.ledger.all_fulfilled()


def test_transaction_context_manager_commits_or_rolls_back() -> None:
    conn = MockConnection()
    conn.expect(ExpectedBegin())
    conn.expect(ExpectedCommit())
    conn.expect(ExpectedBegin())
    conn.expect(ExpectedRollback())

    with conn.begin():
        pass
    with pytest.raises(KeyError):
        with conn.begin():
            raise KeyError("boom")

    assert conn.ledger.all_fulfilled()


def test_close_reports_unfulfilled_and_clears_ledger() -> None:
    conn = MockConnection()
    conn.expect(ExpectedQuery.from_pattern("some sql query which will not be called").will_return_rows(Rows(["id"])))
    before = conn.ledger.all_fulfilled()

    with pytest.raises(UnfulfilledExpectationError) as excinfo:
        conn.close()

    assert before is False
    assert conn.ledger.all_fulfilled() is before
    assert excinfo.value.kind is ErrorKind.UNFULFILLED
    assert "ExpectedQuery" in str(excinfo.value)
    assert len(conn.ledger) == 0
    assert conn.state is ConnectionState.CLOSED


def test_close_does_not_fulfil_retroactively() -> None:
    conn = MockConnection()
    pending = conn.expect(ExpectedRollback())

    with pytest.raises(UnfulfilledExpectationError):
        conn.close()

    assert pending.fulfilled is False


def test_closed_connection_rejects_calls() -> None:
    conn = MockConnection()
    conn.close()

    with pytest.raises(ConnectionClosedError):
        conn.begin()
    with pytest.raises(ConnectionClosedError):
        conn.expect(ExpectedBegin())
    conn.close()


def test_observer_records_dispatch_events() -> None:
    observer = InMemoryDispatchLogger()
    conn = MockConnection(session_id="sqlmock://db/7", observer=observer)
    conn.expect(ExpectedBegin())

    conn.begin()
    with pytest.raises(UnexpectedCallError):
        conn.commit()
    conn.close()

    assert observer.names() == [
        "expectation_declared",
        "expectation_matched",
        "dispatch_failed",
        "connection_closed",
    ]
    assert observer.events[2]["error_kind"] == "unexpected"
    assert all(event["session_id"] == "sqlmock://db/7" for event in observer.events)

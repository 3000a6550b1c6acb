"""Declare a whole expectation ledger from a YAML script.

A script is a top-level list of mappings, one per expectation, in call
order::

    - kind: begin
    - kind: query
      pattern: "SELECT (.+) FROM articles WHERE id = \\\\?"
      args: [5]
      rows:
        columns: [id, title]
        csv: "5,hello world"
    - kind: commit
      error: "deadlock detected"

Entries are validated with pydantic before anything is declared, so a
broken script never leaves a half-programmed session behind.
"""

from __future__ import annotations

import argparse
import json
import logging
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator

from sqlmock.core.config import Settings, load_settings
from sqlmock.core.expectations import (
    Expectation,
    ExpectedBegin,
    ExpectedCommit,
    ExpectedExec,
    ExpectedPrepare,
    ExpectedQuery,
    ExpectedRollback,
)
from sqlmock.core.mock import MockDB
from sqlmock.integrations.rows import Result, Rows

LOGGER = logging.getLogger(__name__)

_STATEMENT_KINDS = {"exec", "query"}


class RowsPayload(BaseModel):
    columns: list[str] = Field(..., min_length=1)
    csv: str | None = None
    values: list[list[Any]] = Field(default_factory=list)


class ResultPayload(BaseModel):
    last_insert_id: int = 0
    rows_affected: int = 0


class ScriptedExpectation(BaseModel):
    kind: Literal["begin", "commit", "rollback", "prepare", "exec", "query"]
    pattern: str | None = None
    args: list[Any] | None = None
    rows: RowsPayload | None = None
    result: ResultPayload | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _check_fields_for_kind(self) -> ScriptedExpectation:
        if self.kind in _STATEMENT_KINDS:
            if not self.pattern:
                raise ValueError(f"'{self.kind}' entries require a pattern")
            try:
                re.compile(self.pattern)
            except re.error as exc:
                raise ValueError(f"invalid pattern {self.pattern!r}: {exc}") from exc
        elif self.pattern is not None or self.args is not None:
            raise ValueError(f"'{self.kind}' entries take no pattern or args")
        if self.rows is not None and self.kind != "query":
            raise ValueError("only 'query' entries may declare rows")
        if self.result is not None and self.kind != "exec":
            raise ValueError("only 'exec' entries may declare a result")
        return self


def load_script(path: str | Path) -> list[ScriptedExpectation]:
    """Read and validate the expectation script at *path*."""

    target = Path(path)
    with target.open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or []
    if not isinstance(payload, list):
        raise ValueError("Expectation script must contain a top-level list")
    entries: list[ScriptedExpectation] = []
    for entry in payload:
        if not isinstance(entry, dict):
            raise ValueError("Expectation script entries must be mappings")
        entries.append(ScriptedExpectation.model_validate({str(key): value for key, value in entry.items()}))
    return entries


def build_expectations(entries: list[ScriptedExpectation], settings: Settings | None = None) -> list[Expectation]:
    """Turn validated entries into programmed expectations, in order."""

    active = settings if settings is not None else Settings()
    return [_build_one(entry, active) for entry in entries]


def apply_script(mock: MockDB, entries: list[ScriptedExpectation]) -> list[Expectation]:
    """Declare every entry on *mock* and return the created expectations."""

    expectations = build_expectations(entries, mock.settings)
    for expectation in expectations:
        mock.connection.expect(expectation)
    LOGGER.debug("Declared %d scripted expectations", len(expectations))
    return expectations


def summarize_script(entries: list[ScriptedExpectation]) -> dict[str, Any]:
    return {
        "count": len(entries),
        "entries": [
            {
                "kind": entry.kind,
                "pattern": entry.pattern,
                "with_args": entry.args is not None,
                "has_payload": entry.rows is not None or entry.result is not None,
                "returns_error": entry.error is not None,
            }
            for entry in entries
        ],
    }


def _build_one(entry: ScriptedExpectation, settings: Settings) -> Expectation:
    expectation: Expectation
    if entry.kind == "begin":
        expectation = ExpectedBegin()
    elif entry.kind == "commit":
        expectation = ExpectedCommit()
    elif entry.kind == "rollback":
        expectation = ExpectedRollback()
    elif entry.kind == "prepare":
        expectation = ExpectedPrepare()
    elif entry.kind == "exec":
        assert entry.pattern is not None  # for mypy; guaranteed by ScriptedExpectation
        exec_expectation = ExpectedExec.from_pattern(entry.pattern)
        if entry.result is not None:
            exec_expectation.will_return_result(
                Result(insert_id=entry.result.last_insert_id, affected=entry.result.rows_affected)
            )
        expectation = exec_expectation
    else:
        assert entry.pattern is not None  # for mypy; guaranteed by ScriptedExpectation
        query_expectation = ExpectedQuery.from_pattern(entry.pattern)
        if entry.rows is not None:
            query_expectation.will_return_rows(_build_rows(entry.rows, settings))
        expectation = query_expectation

    if entry.args is not None and isinstance(expectation, (ExpectedExec, ExpectedQuery)):
        expectation.with_args(*entry.args)
    if entry.error is not None:
        expectation.will_return_error(entry.error)
    return expectation


def _build_rows(payload: RowsPayload, settings: Settings) -> Rows:
    rows = Rows(list(payload.columns))
    for values in payload.values:
        rows.add_row(*values)
    if payload.csv is not None:
        rows.from_csv_string(
            payload.csv,
            null_token=settings.rows.null_token,
            delimiter=settings.rows.delimiter,
        )
    return rows


def _configure_logging(debug: bool) -> None:
    root_logger = logging.getLogger()
    if root_logger.handlers:
        if debug:
            root_logger.setLevel(logging.DEBUG)
        return
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entry point validating an expectation script."""

    parser = argparse.ArgumentParser(description="Validate a sqlmock expectation script")
    parser.add_argument("path", type=Path, help="Path to the YAML expectation script")
    parser.add_argument("--config", default=None, help="Path to a YAML settings file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    _configure_logging(debug=args.debug)
    settings = load_settings(args.config) if args.config else Settings()
    entries = load_script(args.path)
    expectations = build_expectations(entries, settings)
    LOGGER.info("Validated %d expectations from %s", len(expectations), args.path)

    summary = summarize_script(entries)
    print(json.dumps(summary, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()

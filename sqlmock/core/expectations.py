"""Declared expectations and the builder methods used to program them.

Each concrete class tags itself with an :class:`ExpectationKind`; the mock
connection compares that tag against the kind of the incoming call instead
of relying on ``isinstance`` checks.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Self

from sqlmock.core.errors import MisconfiguredExpectationError, PlannedError


class ExpectationKind(str, Enum):
    BEGIN = "Begin"
    COMMIT = "Commit"
    ROLLBACK = "Rollback"
    PREPARE = "Prepare"
    EXEC = "Exec"
    QUERY = "Query"


_KIND_LABELS: dict[ExpectationKind, str] = {
    ExpectationKind.BEGIN: "database transaction Begin",
    ExpectationKind.COMMIT: "transaction Commit",
    ExpectationKind.ROLLBACK: "transaction Rollback",
    ExpectationKind.PREPARE: "statement Prepare",
}


@dataclass(slots=True)
class Expectation:
    """Common state for every declared expectation."""

    kind: ClassVar[ExpectationKind]

    fulfilled: bool = field(default=False, init=False)
    planned_error: BaseException | None = field(default=None, init=False)

    def will_return_error(self, error: BaseException | str) -> Self:
        """Raise *error* instead of succeeding when this expectation triggers."""

        self._ensure_mutable()
        if isinstance(error, BaseException):
            self.planned_error = error
        else:
            self.planned_error = PlannedError(str(error))
        return self

    def mark_fulfilled(self) -> None:
        self.fulfilled = True

    def describe(self) -> str:
        text = f"Expected{self.kind.value} => expecting {_KIND_LABELS[self.kind]}"
        if self.planned_error is not None:
            text += f", which should return error: {self.planned_error!r}"
        return text

    def _ensure_mutable(self) -> None:
        if self.fulfilled:
            raise MisconfiguredExpectationError(
                f"cannot reprogram an expectation that was already triggered: {self.describe()}"
            )

    def __str__(self) -> str:
        return self.describe()


@dataclass(slots=True)
class ExpectedBegin(Expectation):
    kind = ExpectationKind.BEGIN


@dataclass(slots=True)
class ExpectedCommit(Expectation):
    kind = ExpectationKind.COMMIT


@dataclass(slots=True)
class ExpectedRollback(Expectation):
    kind = ExpectationKind.ROLLBACK


@dataclass(slots=True)
class ExpectedPrepare(Expectation):
    kind = ExpectationKind.PREPARE


@dataclass(slots=True)
class StatementExpectation(Expectation):
    """Shared matching rule for expectations that carry SQL and arguments."""

    sql_pattern: re.Pattern[str]
    expected_args: tuple[Any, ...] | None = field(default=None, init=False)

    @classmethod
    def from_pattern(cls, pattern: str) -> Self:
        """Compile *pattern* once; an invalid expression raises ``re.error``."""

        return cls(sql_pattern=re.compile(pattern))

    @property
    def pattern(self) -> str:
        return self.sql_pattern.pattern

    def with_args(self, *args: Any) -> Self:
        """Require the call to bind exactly *args*, compared positionally."""

        self._ensure_mutable()
        self.expected_args = tuple(args)
        return self

    @property
    def payload(self) -> Any:  # pragma: no cover - overridden
        raise NotImplementedError

    def describe(self) -> str:
        text = f"Expected{self.kind.value} => expecting {self.kind.value} matching: {self.pattern}"
        if self.expected_args is not None:
            text += f"\n  - with args: {list(self.expected_args)!r}"
        else:
            text += "\n  - with any args"
        if self.planned_error is not None:
            text += f"\n  - should return error: {self.planned_error!r}"
        return text


@dataclass(slots=True)
class ExpectedExec(StatementExpectation):
    kind = ExpectationKind.EXEC

    result: Any = field(default=None, init=False)

    def will_return_result(self, result: Any) -> Self:
        self._ensure_mutable()
        self.result = result
        return self

    @property
    def payload(self) -> Any:
        return self.result

    def describe(self) -> str:
        text = StatementExpectation.describe(self)
        if self.result is not None:
            text += f"\n  - should return result: {self.result!r}"
        return text


@dataclass(slots=True)
class ExpectedQuery(StatementExpectation):
    kind = ExpectationKind.QUERY

    rows: Any = field(default=None, init=False)

    def will_return_rows(self, rows: Any) -> Self:
        self._ensure_mutable()
        self.rows = rows
        return self

    @property
    def payload(self) -> Any:
        return self.rows

    def describe(self) -> str:
        text = StatementExpectation.describe(self)
        if self.rows is not None:
            text += f"\n  - should return rows: {self.rows!r}"
        return text

"""Exception hierarchy shared by the mock driver and the DB-API adapter.

The PEP 249 classes let application code catch mock failures with the same
``except module.Error`` clauses it uses against a real driver. Expectation
failures additionally carry an :class:`ErrorKind` so tests can assert on the
exact reason a call was rejected.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    UNEXPECTED = "unexpected"
    SEQUENCE_MISMATCH = "sequence_mismatch"
    QUERY_MISMATCH = "query_mismatch"
    ARG_MISMATCH = "arg_mismatch"
    MISCONFIGURED = "misconfigured"
    UNFULFILLED = "unfulfilled"
    PLANNED_ERROR = "planned_error"


class Warning(Exception):  # noqa: A001 - name mandated by PEP 249
    """Important warnings like data truncations."""


class Error(Exception):
    """Base class of every error raised through the DB-API surface."""


class InterfaceError(Error):
    """Errors related to the driver interface rather than the database."""


class DatabaseError(Error):
    """Errors related to the (mocked) database."""


class DataError(DatabaseError):
    pass


class OperationalError(DatabaseError):
    pass


class IntegrityError(DatabaseError):
    pass


class InternalError(DatabaseError):
    pass


class ProgrammingError(DatabaseError):
    pass


class NotSupportedError(DatabaseError):
    pass


class ConnectionClosedError(InterfaceError):
    """Raised when a closed mock connection receives another call."""


class DSNCollisionError(InterfaceError):
    """Raised when the registry is asked to open a DSN twice."""


class ExpectationError(DatabaseError):
    """A call did not line up with the declared expectations."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnexpectedCallError(ExpectationError):
    kind = ErrorKind.UNEXPECTED


class SequenceMismatchError(ExpectationError):
    kind = ErrorKind.SEQUENCE_MISMATCH


class QueryMismatchError(ExpectationError):
    kind = ErrorKind.QUERY_MISMATCH


class ArgMismatchError(ExpectationError):
    kind = ErrorKind.ARG_MISMATCH


class MisconfiguredExpectationError(ExpectationError):
    kind = ErrorKind.MISCONFIGURED


class UnfulfilledExpectationError(ExpectationError):
    kind = ErrorKind.UNFULFILLED


class PlannedError(DatabaseError):
    """Wraps a plain message handed to ``will_return_error``.

    Exception instances are raised as given; only non-exception values are
    wrapped, once, when the expectation is declared.
    """

    kind = ErrorKind.PLANNED_ERROR

"""Pure matching helpers for SQL text and bound arguments."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

_WHITESPACE_RE = re.compile(r"\s+")


class ArgClass(str, Enum):
    SIGNED_INTEGER = "signed_integer"
    FLOAT = "float"
    TEXT = "text"
    OTHER = "other"


_VALUE_CLASSES = {ArgClass.SIGNED_INTEGER, ArgClass.FLOAT, ArgClass.TEXT}


@dataclass(frozen=True, slots=True)
class ArgMatch:
    matched: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.matched


def normalize_query(query: str) -> str:
    """Collapse whitespace runs so multi-line SQL matches one-line patterns."""

    return _WHITESPACE_RE.sub(" ", query).strip()


def query_matches(pattern: re.Pattern[str], query: str) -> bool:
    return pattern.search(query) is not None


def classify_value(value: Any) -> ArgClass:
    """Return the coarse comparison class for a bound value.

    ``bool`` is deliberately not numeric, and Python integers are unbounded
    so they always classify as signed.
    """

    if isinstance(value, bool):
        return ArgClass.OTHER
    if isinstance(value, int):
        return ArgClass.SIGNED_INTEGER
    if isinstance(value, float):
        return ArgClass.FLOAT
    if isinstance(value, (str, bytes, bytearray)):
        return ArgClass.TEXT
    return ArgClass.OTHER


def compare_arg(actual: Any, expected: Any) -> ArgMatch:
    """Compare one positional argument pair.

    Values of the "other" class (timestamps, dates, ``None``, ``Decimal`` ...)
    only have their types compared, never their contents. Two different
    ``datetime`` instants therefore match.

    The type check is exact rather than a broad "opaque value" bucket: a
    ``date`` does not match a ``datetime``, and ``None`` only matches ``None``.
    """

    try:
        actual_class = classify_value(actual)
        expected_class = classify_value(expected)
        if actual_class is not expected_class:
            return ArgMatch(
                False,
                f"argument {actual!r} is {actual_class.value}, expected {expected_class.value}",
            )
        if actual_class in _VALUE_CLASSES:
            if bool(actual != expected):
                return ArgMatch(False, f"argument {actual!r} does not equal {expected!r}")
            return ArgMatch(True)
        if type(actual) is not type(expected):
            return ArgMatch(
                False,
                f"argument of type {type(actual).__name__} does not match "
                f"expected type {type(expected).__name__}",
            )
        return ArgMatch(True)
    except Exception as exc:  # noqa: BLE001 - any comparison fault is reported as a mismatch
        return ArgMatch(False, f"failed to compare query arguments: {exc}")


def args_match(actual: Sequence[Any], expected: Sequence[Any] | None) -> ArgMatch:
    """Match *actual* against *expected*; ``None`` accepts any arguments."""

    if expected is None:
        return ArgMatch(True)
    try:
        actual_values = list(actual)
        expected_values = list(expected)
    except Exception as exc:  # noqa: BLE001 - see compare_arg
        return ArgMatch(False, f"failed to compare query arguments: {exc}")
    if len(actual_values) != len(expected_values):
        return ArgMatch(
            False,
            f"expected {len(expected_values)} arguments, got {len(actual_values)}",
        )
    for position, (actual_value, expected_value) in enumerate(zip(actual_values, expected_values)):
        outcome = compare_arg(actual_value, expected_value)
        if not outcome.matched:
            return ArgMatch(False, f"position {position}: {outcome.reason}")
    return ArgMatch(True)

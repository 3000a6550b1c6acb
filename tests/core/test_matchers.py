"""Tests for SQL normalization and the argument matcher."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from decimal import Decimal

from sqlmock.core.matchers import (
    ArgClass,
    args_match,
    classify_value,
    compare_arg,
    normalize_query,
    query_matches,
)


class _Incomparable:
    def __ne__(self, other: object) -> bool:
        raise TypeError("cannot compare")


class _IncomparableText(str):
    def __ne__(self, other: object) -> bool:
        raise TypeError("cannot compare text")


def test_normalize_query_collapses_whitespace() -> None:
    assert normalize_query("  SELECT *\n\tFROM  orders\n WHERE id = ?  ") == "SELECT * FROM orders WHERE id = ?"


def test_query_matches_uses_search_semantics() -> None:
    pattern = re.compile("FROM orders")

    assert query_matches(pattern, "SELECT * FROM orders WHERE id = 1")
    assert not query_matches(re.compile("^FROM orders"), "SELECT * FROM orders")
    assert not query_matches(re.compile("from orders"), "SELECT * FROM orders")


def test_classify_value() -> None:
    assert classify_value(5) is ArgClass.SIGNED_INTEGER
    assert classify_value(-5) is ArgClass.SIGNED_INTEGER
    assert classify_value(5.5) is ArgClass.FLOAT
    assert classify_value("x") is ArgClass.TEXT
    assert classify_value(b"x") is ArgClass.TEXT
    assert classify_value(True) is ArgClass.OTHER
    assert classify_value(None) is ArgClass.OTHER
    assert classify_value(datetime.now()) is ArgClass.OTHER


def test_none_expected_accepts_anything() -> None:
    assert args_match((1, "a", None), None).matched


def test_length_mismatch_fails() -> None:
    outcome = args_match((1, 2), (1,))

    assert not outcome.matched
    assert "expected 1 arguments, got 2" in (outcome.reason or "")


def test_same_class_values_compare_by_value() -> None:
    assert args_match((5, 2.5, "hello"), (5, 2.5, "hello")).matched
    assert not args_match((6,), (5,)).matched
    assert not args_match(("bye",), ("hello",)).matched


def test_cross_class_values_do_not_match() -> None:
    outcome = args_match((5,), (5.5,))

    assert not outcome.matched
    assert "signed_integer" in (outcome.reason or "")
    assert not args_match((5,), (5.0,)).matched
    assert not args_match(("5",), (5,)).matched


def test_temporal_values_compare_by_type_only() -> None:
    # known looseness: different instants of the same type are equal
    now = datetime(2024, 1, 1, 12, 0, 0)
    later = now + timedelta(days=365)

    assert compare_arg(now, later).matched
    assert args_match((now,), (later,)).matched
    assert not compare_arg(now, date(2024, 1, 1)).matched


def test_other_class_values_compare_by_type_only() -> None:
    assert compare_arg(True, False).matched
    assert compare_arg(None, None).matched
    assert compare_arg(Decimal("1.10"), Decimal("2.20")).matched
    assert not compare_arg(None, True).matched
    assert not compare_arg(None, datetime(2024, 1, 1)).matched


def test_comparison_failures_are_reported_not_raised() -> None:
    outcome = compare_arg(_IncomparableText("a"), "a")

    assert not outcome.matched
    assert "failed to compare query arguments" in (outcome.reason or "")


def test_incomparable_other_values_fall_back_to_type() -> None:
    assert compare_arg(_Incomparable(), _Incomparable()).matched


def test_reason_names_failing_position() -> None:
    outcome = args_match((1, "x", 3), (1, "x", 4))

    assert not outcome
    assert (outcome.reason or "").startswith("position 2:")

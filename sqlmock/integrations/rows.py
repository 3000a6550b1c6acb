"""Builders for the payloads returned by exec and query expectations.

Rows can be assembled from literal Python values or from a small CSV
mini-format, for example::

    Rows(["id", "title"]).from_csv_string("1,hello\\n2,NULL")

Fields are trimmed, and the null token (``NULL`` by default) becomes ``None``
so nullable columns can be expressed in CSV. Every other CSV field stays a
string; use :meth:`Rows.add_row` when typed values are required.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Sequence

DEFAULT_NULL_TOKEN = "NULL"


@dataclass(slots=True)
class Result:
    """Outcome of a mocked exec call."""

    insert_id: int = 0
    affected: int = 0

    def last_insert_id(self) -> int:
        return self.insert_id

    def rows_affected(self) -> int:
        return self.affected


def new_result(last_insert_id: int, rows_affected: int) -> Result:
    return Result(insert_id=last_insert_id, affected=rows_affected)


@dataclass(slots=True)
class Rows:
    """A forward-only row set with a fixed list of column names."""

    columns: list[str]
    _rows: list[tuple[Any, ...]] = field(init=False, default_factory=list)
    _position: int = field(init=False, default=0)
    _closed: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        self.columns = [str(column) for column in self.columns]
        if not self.columns:
            raise ValueError("Rows require at least one column")

    def add_row(self, *values: Any) -> Rows:
        if len(values) != len(self.columns):
            raise ValueError(
                f"expected {len(self.columns)} values for columns {self.columns}, got {len(values)}"
            )
        self._rows.append(tuple(values))
        return self

    def from_csv_string(
        self,
        text: str,
        *,
        null_token: str | None = DEFAULT_NULL_TOKEN,
        delimiter: str = ",",
    ) -> Rows:
        """Append one row per non-blank CSV line of *text*."""

        reader = csv.reader(io.StringIO(text.strip()), delimiter=delimiter, skipinitialspace=True)
        for record in reader:
            if not record or all(not value.strip() for value in record):
                continue
            self.add_row(*(_convert_field(value, null_token) for value in record))
        return self

    @property
    def closed(self) -> bool:
        return self._closed

    def next(self) -> tuple[Any, ...] | None:
        """Return the next row, or ``None`` once the set is exhausted."""

        if self._closed or self._position >= len(self._rows):
            return None
        row = self._rows[self._position]
        self._position += 1
        return row

    def reset(self) -> None:
        """Rewind so the same row set can be returned again."""

        self._position = 0
        self._closed = False

    def close(self) -> None:
        self._closed = True

    def __iter__(self) -> Iterator[tuple[Any, ...]]:
        while True:
            row = self.next()
            if row is None:
                return
            yield row

    def __len__(self) -> int:
        return len(self._rows)


def _convert_field(value: str, null_token: str | None) -> Any:
    trimmed = value.strip()
    if null_token is not None and trimmed == null_token:
        return None
    return trimmed


def rows_from_records(columns: Sequence[str], records: Sequence[Sequence[Any]]) -> Rows:
    """Build a row set from literal value lists."""

    rows = Rows(list(columns))
    for record in records:
        rows.add_row(*record)
    return rows

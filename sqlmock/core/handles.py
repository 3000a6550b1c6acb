"""Transaction and prepared-statement handles returned by a mock connection.

Both are forwarding proxies: all matching happens in
:class:`~sqlmock.core.connection.MockConnection`.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType
from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:
    from sqlmock.core.connection import MockConnection


@dataclass(slots=True, eq=False)
class Transaction:
    """Handle produced by a matched ``Begin``."""

    connection: MockConnection

    def commit(self) -> None:
        self.connection.commit()

    def rollback(self) -> None:
        self.connection.rollback()

    def __enter__(self) -> Transaction:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()


@dataclass(slots=True, eq=False)
class Statement:
    """Handle produced by ``Prepare``; replays its query text on every call."""

    connection: MockConnection
    sql: str

    @property
    def num_input(self) -> int:
        # placeholder count is unknown without parsing the SQL
        return -1

    def exec(self, args: Sequence[Any] = ()) -> Any:
        return self.connection.exec(self.sql, args)

    def query(self, args: Sequence[Any] = ()) -> Any:
        return self.connection.query(self.sql, args)

    def close(self) -> None:
        return None

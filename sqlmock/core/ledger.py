"""Ordered, append-only storage for declared expectations."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from sqlmock.core.expectations import Expectation


@dataclass(slots=True)
class ExpectationLedger:
    """Keeps expectations in declaration order, which is also call order.

    Fulfilled expectations are never removed so failures can still describe
    what was already consumed. Clearing drops the entries but remembers
    whether any of them was left unmet, so :meth:`all_fulfilled` reports the
    same outcome before and after a failed close.
    """

    _entries: list[Expectation] = field(default_factory=list)
    _cleared_unmet: bool = field(init=False, default=False)

    def append(self, expectation: Expectation) -> Expectation:
        self._entries.append(expectation)
        return expectation

    def next(self) -> Expectation | None:
        """Return the oldest unfulfilled expectation, whatever its kind."""

        for expectation in self._entries:
            if not expectation.fulfilled:
                return expectation
        return None

    def all_fulfilled(self) -> bool:
        if self._cleared_unmet:
            return False
        return all(expectation.fulfilled for expectation in self._entries)

    def first_unfulfilled(self) -> Expectation | None:
        return self.next()

    def clear(self) -> None:
        if self.next() is not None:
            self._cleared_unmet = True
        self._entries.clear()

    def __iter__(self) -> Iterator[Expectation]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

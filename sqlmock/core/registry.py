"""Process-wide registry mapping reserved DSNs to mock connections."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from sqlmock.core.connection import MockConnection
from sqlmock.core.errors import DSNCollisionError
from sqlmock.core.observability import DispatchObservationSink

if TYPE_CHECKING:
    from sqlmock.core.config import Settings

LOGGER = logging.getLogger(__name__)

DEFAULT_DRIVER_NAME = "sqlmock"
DEFAULT_DSN_TEMPLATE = "sqlmock://db/{sequence}"


class DriverRegistry:
    """Thread-safe store of open mock sessions.

    Several independent mock sessions may be created concurrently by a test
    runner, so every lookup, insert and sequence bump happens under one lock.
    The connections themselves are not locked.
    """

    def __init__(
        self,
        driver_name: str = DEFAULT_DRIVER_NAME,
        dsn_template: str = DEFAULT_DSN_TEMPLATE,
    ) -> None:
        if "{sequence}" not in dsn_template:
            raise ValueError("dsn_template must contain a '{sequence}' placeholder")
        self.driver_name = driver_name
        self.dsn_template = dsn_template
        self._sequence = 0
        self._connections: dict[str, MockConnection] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> DriverRegistry:
        return cls(driver_name=settings.driver.name, dsn_template=settings.driver.dsn_template)

    def reserve_dsn(self) -> str:
        """Return a DSN that no other session of this registry will receive."""

        with self._lock:
            dsn = self.dsn_template.format(sequence=self._sequence)
            self._sequence += 1
        return dsn

    def open(self, dsn: str, observer: DispatchObservationSink | None = None) -> MockConnection:
        with self._lock:
            if dsn in self._connections:
                raise DSNCollisionError(f"DSN collision error: {dsn} is already open")
            connection = MockConnection(session_id=dsn, observer=observer)
            self._connections[dsn] = connection
        LOGGER.info("Opened mock session %s on driver %s", dsn, self.driver_name)
        return connection

    def get_connection(self, dsn: str) -> MockConnection | None:
        with self._lock:
            return self._connections.get(dsn)

    def release(self, dsn: str) -> None:
        with self._lock:
            released = self._connections.pop(dsn, None)
        if released is not None:
            LOGGER.info("Released mock session %s", dsn)

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, dsn: object) -> bool:
        with self._lock:
            return dsn in self._connections


DEFAULT_REGISTRY = DriverRegistry()

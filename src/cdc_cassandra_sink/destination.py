from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from cdc_cassandra_sink.models import Record
from cdc_cassandra_sink.session import CassandraSession, connect
from cdc_cassandra_sink.settings import Settings
from cdc_cassandra_sink.writer import RecordWriter

LOGGER = logging.getLogger(__name__)


class CassandraDestination:
    """Owns the driver session for one target table across open/write/teardown."""

    def __init__(
        self,
        settings: Settings,
        *,
        connector: Callable[[Settings], CassandraSession] = connect,
    ) -> None:
        self._settings = settings
        self._connector = connector
        self._session: CassandraSession | None = None
        self._writer: RecordWriter | None = None

    def __enter__(self) -> CassandraDestination:
        self.open()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.teardown()

    @property
    def session(self) -> CassandraSession | None:
        return self._session

    def open(self) -> None:
        if self._session is not None:
            raise RuntimeError("destination is already open")

        self._session = self._connector(self._settings)
        self._writer = RecordWriter(session=self._session, target=self._settings.target)
        LOGGER.info(
            "destination_open",
            extra={
                "keyspace": self._settings.keyspace,
                "table": self._settings.table,
            },
        )

    def write(self, records: Sequence[Record]) -> int:
        if self._writer is None:
            raise RuntimeError("destination is not open")
        return self._writer.write(records)

    def teardown(self) -> None:
        session = self._session
        self._session = None
        self._writer = None
        if session is None:
            return

        session.close()
        LOGGER.info("destination_closed", extra={"table": self._settings.table})

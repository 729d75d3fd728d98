from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Mapping, Sequence
from typing import Any

from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import Cluster, Session
from cassandra.query import PreparedStatement

from cdc_cassandra_sink.models import TableTarget
from cdc_cassandra_sink.settings import Settings
from cdc_cassandra_sink.statements import Statement, build_select

LOGGER = logging.getLogger(__name__)


class RowNotFoundError(LookupError):
    """Raised when a keyed read finds no row."""


class CassandraSession:
    """Executes built statements as prepared CQL on a driver session."""

    def __init__(
        self,
        *,
        session: Session,
        cluster: Cluster | None = None,
        max_prepared: int = 512,
    ) -> None:
        if max_prepared <= 0:
            raise ValueError("max_prepared must be > 0")
        self._session = session
        self._cluster = cluster
        self._max_prepared = max_prepared
        self._prepared: OrderedDict[str, PreparedStatement] = OrderedDict()

    @property
    def driver_session(self) -> Session:
        return self._session

    def execute(self, statement: Statement) -> None:
        self._session.execute(self._prepare(statement.cql), statement.values)

    def fetch_row(
        self,
        target: TableTarget,
        *,
        key: Mapping[str, Any],
        columns: Sequence[str],
    ) -> dict[str, Any]:
        statement = build_select(target, key=key, columns=columns)
        row = self._session.execute(self._prepare(statement.cql), statement.values).one()
        if row is None:
            raise RowNotFoundError(f"no row in {target.qualified_name} for key {dict(key)!r}")
        return dict(zip(columns, row, strict=True))

    def close(self) -> None:
        if self._cluster is not None:
            self._cluster.shutdown()
        else:
            self._session.shutdown()

    def _prepare(self, cql: str) -> PreparedStatement:
        prepared = self._prepared.get(cql)
        if prepared is not None:
            self._prepared.move_to_end(cql)
            return prepared

        prepared = self._session.prepare(cql)
        self._prepared[cql] = prepared
        # Least recently used first.
        if len(self._prepared) > self._max_prepared:
            self._prepared.popitem(last=False)
        return prepared


def create_cluster(settings: Settings) -> Cluster:
    auth_provider = None
    if settings.auth_mechanism == "basic":
        auth_provider = PlainTextAuthProvider(
            username=settings.auth_username,
            password=settings.auth_password,
        )

    return Cluster(
        contact_points=settings.contact_points,
        port=settings.cassandra_port,
        auth_provider=auth_provider,
        connect_timeout=settings.connect_timeout_s,
    )


def connect(settings: Settings) -> CassandraSession:
    cluster = create_cluster(settings)
    try:
        session = cluster.connect()
    except Exception:
        cluster.shutdown()
        raise

    session.default_timeout = settings.request_timeout_s
    LOGGER.info(
        "cassandra_connected",
        extra={
            "contact_points": settings.contact_points,
            "port": settings.cassandra_port,
            "auth_mechanism": settings.auth_mechanism,
        },
    )
    return CassandraSession(session=session, cluster=cluster)

from __future__ import annotations

import pytest

from cdc_cassandra_sink.destination import CassandraDestination
from cdc_cassandra_sink.models import Change, Operation, Record, StructuredData
from cdc_cassandra_sink.settings import Settings
from cdc_cassandra_sink.statements import Statement


class _StubSession:
    def __init__(self) -> None:
        self.statements: list[Statement] = []
        self.close_calls = 0

    def execute(self, statement: Statement) -> None:
        self.statements.append(statement)

    def close(self) -> None:
        self.close_calls += 1


@pytest.fixture()
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.setenv("CASSANDRA_HOST", "127.0.0.1")
    monkeypatch.setenv("CASSANDRA_KEYSPACE", "conduit_test")
    monkeypatch.setenv("CASSANDRA_TABLE", "users")
    monkeypatch.delenv("CASSANDRA_AUTH_MECHANISM", raising=False)
    return Settings()


def _record() -> Record:
    return Record(
        operation=Operation.SNAPSHOT,
        key=StructuredData(fields={"id": 1}),
        payload=Change(after=StructuredData(fields={"value": 10})),
    )


def test_write_before_open_fails(settings: Settings) -> None:
    destination = CassandraDestination(settings, connector=lambda _: _StubSession())  # type: ignore[arg-type,return-value]

    with pytest.raises(RuntimeError, match="not open"):
        destination.write([_record()])


def test_open_write_teardown_round(settings: Settings) -> None:
    stub = _StubSession()
    destination = CassandraDestination(settings, connector=lambda _: stub)  # type: ignore[arg-type,return-value]

    destination.open()
    applied = destination.write([_record()])
    destination.teardown()
    destination.teardown()

    assert applied == 1
    assert stub.statements[0].cql == "INSERT INTO conduit_test.users (id, value) VALUES (?, ?)"
    assert stub.close_calls == 1
    assert destination.session is None


def test_open_twice_fails(settings: Settings) -> None:
    destination = CassandraDestination(settings, connector=lambda _: _StubSession())  # type: ignore[arg-type,return-value]
    destination.open()

    with pytest.raises(RuntimeError, match="already open"):
        destination.open()


def test_context_manager_closes_session_on_error(settings: Settings) -> None:
    stub = _StubSession()

    with pytest.raises(ValueError):
        with CassandraDestination(settings, connector=lambda _: stub):  # type: ignore[arg-type,return-value]
            raise ValueError("boom")

    assert stub.close_calls == 1

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID

from cassandra.metadata import protect_name
from cassandra.util import Duration
from pydantic import BaseModel, ConfigDict

from cdc_cassandra_sink.models import Record, StructuredData, TableTarget

# datetime and timedelta are handled before this tuple; datetime subclasses date.
_PASSTHROUGH_TYPES = (bool, int, float, Decimal, str, bytes, UUID, date, time)


class StatementBuildError(ValueError):
    """Raised when a record cannot be translated into a CQL statement."""


class UnsupportedValueError(StatementBuildError):
    pass


class ColumnConflictError(StatementBuildError):
    pass


class Statement(BaseModel):
    """Parameterized CQL plus its bind values, one value per ``?`` marker."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["upsert", "delete", "select"]
    cql: str
    columns: tuple[str, ...]
    values: tuple[Any, ...]


def build_statement(record: Record, *, target: TableTarget) -> Statement:
    key_fields = _key_fields(record)

    if not record.operation.is_upsert:
        return _build_delete(key_fields, target=target)

    after = record.payload.after
    if not isinstance(after, StructuredData):
        raise StatementBuildError(
            f"cannot build upsert for {record.operation.value} operation without structured payload"
        )
    return _build_upsert(key_fields, after.fields, target=target)


def build_select(
    target: TableTarget,
    *,
    key: Mapping[str, Any],
    columns: Sequence[str],
) -> Statement:
    if not key:
        raise StatementBuildError("cannot address a row without key columns")
    if not columns:
        raise StatementBuildError("select requires at least one column")

    where_sql, key_columns, key_values = _where_clause(key)
    cql = (
        f"SELECT {', '.join(protect_name(c) for c in columns)} "
        f"FROM {target.qualified_name} WHERE {where_sql}"
    )
    return Statement(kind="select", cql=cql, columns=key_columns, values=key_values)


def bind_value(column: str, value: Any) -> Any:
    """Adapt a record value for the driver without coercing its type.

    Datetimes lose sub-millisecond digits because Cassandra stores timestamps
    with millisecond precision, and timedeltas become driver ``Duration``
    values. Containers keep their kind, so frozensets stay hashable inside
    sets and map keys.
    """
    try:
        return _adapt(column, value)
    except TypeError as exc:
        raise UnsupportedValueError(f"column {column!r} has an unbindable value: {exc}") from exc


def _adapt(column: str, value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(microsecond=value.microsecond - value.microsecond % 1000)
    if isinstance(value, timedelta):
        return _duration(value)
    if isinstance(value, _PASSTHROUGH_TYPES):
        return value
    if isinstance(value, bytearray):
        return bytes(value)
    if isinstance(value, list):
        return [_adapt(column, item) for item in value]
    if isinstance(value, tuple):
        return tuple(_adapt(column, item) for item in value)
    if isinstance(value, frozenset):
        return frozenset(_adapt(column, item) for item in value)
    if isinstance(value, set):
        return {_adapt(column, item) for item in value}
    if isinstance(value, dict):
        return {_adapt(column, k): _adapt(column, v) for k, v in value.items()}

    raise UnsupportedValueError(
        f"column {column!r} has unsupported value type {type(value).__name__}"
    )


def _duration(value: timedelta) -> Duration:
    # CQL durations need every component to carry the same sign.
    sign = -1 if value < timedelta(0) else 1
    magnitude = abs(value)
    nanoseconds = (magnitude.seconds * 1_000_000 + magnitude.microseconds) * 1000
    return Duration(months=0, days=sign * magnitude.days, nanoseconds=sign * nanoseconds)


def _key_fields(record: Record) -> dict[str, Any]:
    key = record.key
    if not isinstance(key, StructuredData) or not key.fields:
        raise StatementBuildError("cannot address a row without key columns")
    return key.fields


def _build_upsert(
    key_fields: Mapping[str, Any],
    payload_fields: Mapping[str, Any],
    *,
    target: TableTarget,
) -> Statement:
    columns: list[str] = []
    values: list[Any] = []
    for column, value in key_fields.items():
        columns.append(column)
        values.append(bind_value(column, value))

    for column, value in payload_fields.items():
        if column in key_fields:
            if value != key_fields[column]:
                raise ColumnConflictError(
                    f"payload column {column!r} conflicts with key value "
                    f"({value!r} != {key_fields[column]!r})"
                )
            continue
        columns.append(column)
        values.append(bind_value(column, value))

    cql = (
        f"INSERT INTO {target.qualified_name} "
        f"({', '.join(protect_name(c) for c in columns)}) "
        f"VALUES ({', '.join('?' for _ in columns)})"
    )
    return Statement(kind="upsert", cql=cql, columns=tuple(columns), values=tuple(values))


def _build_delete(key_fields: Mapping[str, Any], *, target: TableTarget) -> Statement:
    where_sql, columns, values = _where_clause(key_fields)
    cql = f"DELETE FROM {target.qualified_name} WHERE {where_sql}"
    return Statement(kind="delete", cql=cql, columns=columns, values=values)


def _where_clause(key: Mapping[str, Any]) -> tuple[str, tuple[str, ...], tuple[Any, ...]]:
    columns = tuple(key)
    values = tuple(bind_value(column, key[column]) for column in columns)
    predicate = " AND ".join(f"{protect_name(column)} = ?" for column in columns)
    return predicate, columns, values

from __future__ import annotations

from cdc_cassandra_sink.models import Record, StructuredData


class RecordShapeError(ValueError):
    """Raised when a record's key or payload cannot be mapped onto columns."""


class KeyNotStructuredError(RecordShapeError):
    pass


class PayloadNotStructuredError(RecordShapeError):
    pass


def validate_record(record: Record) -> None:
    key = record.key
    if not isinstance(key, StructuredData):
        raise KeyNotStructuredError(f"key should be structured data, got {key.kind} data")
    if not key.fields:
        raise KeyNotStructuredError("key should be structured data with at least one field")

    if not record.operation.is_upsert:
        # Deletes only need the key; the payload may be empty or raw.
        return

    after = record.payload.after
    if after is None:
        raise PayloadNotStructuredError(
            f"payload should be structured data for {record.operation.value} operation, got nothing"
        )
    if not isinstance(after, StructuredData):
        raise PayloadNotStructuredError(
            f"payload should be structured data for {record.operation.value} operation, "
            f"got {after.kind} data"
        )

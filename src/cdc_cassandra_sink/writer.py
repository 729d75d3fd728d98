from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from cdc_cassandra_sink.models import Operation, Record, TableTarget
from cdc_cassandra_sink.statements import Statement, StatementBuildError, build_statement
from cdc_cassandra_sink.validation import RecordShapeError, validate_record

LOGGER = logging.getLogger(__name__)


class StoreSession(Protocol):
    def execute(self, statement: Statement) -> None:
        ...


class BatchWriteError(RuntimeError):
    """Raised when a batch stops at a record that could not be applied.

    ``applied`` records before ``index`` are durably written; the caller
    resumes from ``index`` (or the record's ``position``) on retry.
    """

    def __init__(
        self,
        *,
        applied: int,
        index: int,
        operation: Operation,
        position: bytes,
        cause: BaseException,
    ) -> None:
        super().__init__(f"record {index} ({operation.value}) was not applied: {cause}")
        self.applied = applied
        self.index = index
        self.operation = operation
        self.position = position
        self.cause = cause


class RecordWriter:
    """Applies change records to one table, one row write per record, in order."""

    def __init__(self, *, session: StoreSession, target: TableTarget) -> None:
        self._session = session
        self._target = target

    @property
    def target(self) -> TableTarget:
        return self._target

    def write(self, records: Sequence[Record]) -> int:
        applied = 0
        for index, record in enumerate(records):
            try:
                validate_record(record)
                statement = build_statement(record, target=self._target)
            except (RecordShapeError, StatementBuildError) as exc:
                LOGGER.error(
                    "record_rejected",
                    extra={
                        "index": index,
                        "operation": record.operation.value,
                        "applied": applied,
                        "reason": str(exc),
                    },
                )
                raise self._batch_error(applied=applied, index=index, record=record, cause=exc) from exc

            try:
                self._session.execute(statement)
            except Exception as exc:
                LOGGER.error(
                    "record_write_failed",
                    extra={
                        "index": index,
                        "operation": record.operation.value,
                        "statement_kind": statement.kind,
                        "applied": applied,
                        "error_type": type(exc).__name__,
                    },
                )
                raise self._batch_error(applied=applied, index=index, record=record, cause=exc) from exc

            applied += 1

        LOGGER.debug(
            "batch_applied",
            extra={"applied": applied, "table": self._target.qualified_name},
        )
        return applied

    def _batch_error(
        self,
        *,
        applied: int,
        index: int,
        record: Record,
        cause: BaseException,
    ) -> BatchWriteError:
        return BatchWriteError(
            applied=applied,
            index=index,
            operation=record.operation,
            position=record.position,
            cause=cause,
        )

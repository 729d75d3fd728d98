from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal

from cassandra.metadata import protect_name
from pydantic import BaseModel, ConfigDict, Field


class Operation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    SNAPSHOT = "snapshot"
    DELETE = "delete"

    @property
    def is_upsert(self) -> bool:
        return self is not Operation.DELETE


class StructuredData(BaseModel):
    """Named fields, column name to value, in upstream order."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["structured"] = "structured"
    fields: dict[str, Any] = Field(default_factory=dict)


class RawData(BaseModel):
    """Opaque bytes that cannot be decomposed into columns."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["raw"] = "raw"
    raw: bytes = b""


Data = Annotated[StructuredData | RawData, Field(discriminator="kind")]


class Change(BaseModel):
    model_config = ConfigDict(frozen=True)

    before: Data | None = None
    after: Data | None = None


class Record(BaseModel):
    """Single change event destined for a Cassandra table."""

    model_config = ConfigDict(frozen=True)

    operation: Operation
    key: Data
    payload: Change = Field(default_factory=Change)
    position: bytes = b""
    metadata: dict[str, str] = Field(default_factory=dict)


class TableTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    keyspace: str
    table: str

    @property
    def qualified_name(self) -> str:
        # protect_name only quotes identifiers that CQL would otherwise fold or reject.
        return f"{protect_name(self.keyspace)}.{protect_name(self.table)}"

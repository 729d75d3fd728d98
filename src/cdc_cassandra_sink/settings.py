from __future__ import annotations

import re
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cdc_cassandra_sink.models import TableTarget

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=False)

    cassandra_host: str = Field(alias="CASSANDRA_HOST")
    cassandra_port: int = Field(default=9042, alias="CASSANDRA_PORT")
    keyspace: str = Field(alias="CASSANDRA_KEYSPACE")
    table: str = Field(alias="CASSANDRA_TABLE")

    auth_mechanism: Literal["none", "basic"] = Field(default="none", alias="CASSANDRA_AUTH_MECHANISM")
    auth_username: str | None = Field(default=None, alias="CASSANDRA_AUTH_USERNAME")
    auth_password: str | None = Field(default=None, alias="CASSANDRA_AUTH_PASSWORD")

    connect_timeout_s: float = Field(default=5.0, alias="CONNECT_TIMEOUT_S")
    request_timeout_s: float = Field(default=10.0, alias="REQUEST_TIMEOUT_S")

    @field_validator("cassandra_host")
    @classmethod
    def _validate_host(cls, value: str) -> str:
        if not any(part.strip() for part in value.split(",")):
            raise ValueError("CASSANDRA_HOST must list at least one node")
        return value

    @field_validator("cassandra_port")
    @classmethod
    def _validate_port(cls, value: int) -> int:
        if value < 1 or value > 65535:
            raise ValueError("CASSANDRA_PORT must be between 1 and 65535")
        return value

    @field_validator("keyspace", "table")
    @classmethod
    def _validate_identifier(cls, value: str) -> str:
        if not _IDENTIFIER_PATTERN.fullmatch(value):
            raise ValueError(
                "CASSANDRA_KEYSPACE and CASSANDRA_TABLE must only contain ASCII letters, "
                "numbers, and underscore"
            )
        return value

    @field_validator("connect_timeout_s", "request_timeout_s")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be > 0")
        return value

    @model_validator(mode="after")
    def _validate_basic_auth(self) -> Settings:
        if self.auth_mechanism == "basic" and not (self.auth_username and self.auth_password):
            raise ValueError(
                "CASSANDRA_AUTH_USERNAME and CASSANDRA_AUTH_PASSWORD are required for basic auth"
            )
        return self

    @property
    def contact_points(self) -> list[str]:
        return [part.strip() for part in self.cassandra_host.split(",") if part.strip()]

    @property
    def target(self) -> TableTarget:
        return TableTarget(keyspace=self.keyspace, table=self.table)

"""Declarative store schema: column specs, storage types and the YAML loader.

The schema drives everything user-shaped in Authify: which fields a new user
must supply, which defaults apply, which fields are returned after login and
which fields become access-token claims. Adding a column is a schema edit only.
"""

import json
import logging
import uuid
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError, field_validator
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    Table,
    Text,
    Uuid,
)
from sqlalchemy.dialects import postgresql
from sqlalchemy.types import TypeEngine

from authify.exceptions import InvalidSchemaError, StoreConfigError, UnsupportedTypeError

logger = logging.getLogger(__name__)

PASSWORD_COLUMN = "password"
USERNAME_COLUMN = "username"
SUPPORTED_CONFIG_VERSION = 1

# Claims set by the token engine itself; schema columns may not map onto them.
RESERVED_CLAIMS = frozenset({"iss", "exp", "iat", "refreshed_at"})

_TRUE_VALUES = frozenset({"true", "t", "1", "yes", "y"})
_FALSE_VALUES = frozenset({"false", "f", "0", "no", "n"})


class ColumnType(str, Enum):
    """Closed set of storage types a column may declare."""

    TEXT = "text"
    INT = "int"
    BOOL = "bool"
    UUID = "uuid"
    JSONB = "jsonb"
    TIMESTAMP = "timestamp"

    def sql_type(self) -> TypeEngine:
        """SQLAlchemy type used when the column is created in a relational store."""
        if self is ColumnType.TEXT:
            return Text()
        if self is ColumnType.INT:
            return Integer()
        if self is ColumnType.BOOL:
            return Boolean()
        if self is ColumnType.UUID:
            return Uuid()
        if self is ColumnType.JSONB:
            return JSON().with_variant(postgresql.JSONB(), "postgresql")
        return DateTime()

    def to_python(self, value: str) -> Any:
        """Convert the text form of a value to the column's storage type. Raises ValueError."""
        if self is ColumnType.TEXT:
            return value
        if self is ColumnType.INT:
            return int(value)
        if self is ColumnType.BOOL:
            lowered = value.strip().lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
            raise ValueError(f"not a boolean: {value!r}")
        if self is ColumnType.UUID:
            return uuid.UUID(value)
        if self is ColumnType.JSONB:
            return json.loads(value)
        return datetime.fromisoformat(value)

    def to_text(self, value: Any) -> str:
        """Render a stored value back to the text form used in user info and claims."""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, datetime):
            return value.isoformat()
        if self is ColumnType.JSONB and not isinstance(value, str):
            return json.dumps(value)
        return str(value)


class ColumnSpec(BaseModel):
    """One column of the user table."""

    type: str
    primary_key: bool = False
    unique: bool = False
    required: bool = False
    default: str | None = None
    hidden: bool = False
    jwt_claim: str | None = None

    @field_validator("default", mode="before")
    @classmethod
    def default_as_text(cls, v: Any) -> str | None:
        # YAML may hand us bools or numbers; defaults are kept in their text form.
        if v is None or v == "":
            return None
        if isinstance(v, bool):
            return "true" if v else "false"
        return str(v)

    @field_validator("jwt_claim", mode="before")
    @classmethod
    def blank_claim_is_unset(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def column_type(self) -> ColumnType:
        return ColumnType(self.type)


class TableSchema(BaseModel):
    """Table name, auto-create flag and the ordered column specs."""

    name: str
    auto_create: bool = False
    columns: dict[str, ColumnSpec]

    def validate_schema(self) -> None:
        """Check column types, primary key count and claim names. Pure; raises on failure."""
        if not self.name.strip():
            raise InvalidSchemaError("table name must be non-empty")
        if not self.columns:
            raise InvalidSchemaError("table must declare at least one column")
        allowed = {t.value for t in ColumnType}
        primary_keys = []
        for name, spec in self.columns.items():
            if spec.type not in allowed:
                raise UnsupportedTypeError(name, spec.type)
            if spec.primary_key:
                primary_keys.append(name)
            if spec.jwt_claim in RESERVED_CLAIMS:
                raise InvalidSchemaError(
                    f"column {name} maps to reserved claim {spec.jwt_claim!r}"
                )
        if len(primary_keys) > 1:
            raise InvalidSchemaError(
                f"at most one primary key column is allowed, got {', '.join(primary_keys)}"
            )

    @property
    def username_column(self) -> str:
        """The primary-key column, or the column named ``username`` if none is flagged."""
        for name, spec in self.columns.items():
            if spec.primary_key:
                return name
        return USERNAME_COLUMN

    @property
    def has_password(self) -> bool:
        return PASSWORD_COLUMN in self.columns

    def readable_columns(self, include_hidden: bool = False) -> list[str]:
        """Columns a successful login may return; the password column never is."""
        return [
            name
            for name, spec in self.columns.items()
            if name != PASSWORD_COLUMN and (include_hidden or not spec.hidden)
        ]

    def claim_mapping(self) -> dict[str, str]:
        """Column name -> claim name for every claim-mapped column."""
        return {
            name: spec.jwt_claim
            for name, spec in self.columns.items()
            if spec.jwt_claim and name != PASSWORD_COLUMN
        }

    def column_definitions(self) -> list[Column]:
        columns = []
        for name, spec in self.columns.items():
            columns.append(
                Column(
                    name,
                    spec.column_type.sql_type(),
                    nullable=not (spec.required or spec.primary_key),
                    unique=spec.unique and not spec.primary_key,
                    server_default=spec.default,
                )
            )
        return columns

    def primary_key_clause(self) -> PrimaryKeyConstraint | None:
        keys = [name for name, spec in self.columns.items() if spec.primary_key]
        if not keys:
            return None
        return PrimaryKeyConstraint(*keys)

    def build_table(self, metadata: MetaData) -> Table:
        """Compose the column definitions and primary key clause into a Table."""
        args: list[Any] = list(self.column_definitions())
        primary_key = self.primary_key_clause()
        if primary_key is not None:
            args.append(primary_key)
        return Table(self.name, metadata, *args)


class StoreConfig(BaseModel):
    """Top-level store configuration file (``configs/store.yml``)."""

    version: int
    table: TableSchema

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: int) -> int:
        if v != SUPPORTED_CONFIG_VERSION:
            raise ValueError(f"unsupported store config version: {v}")
        return v


def load_store_config(path: str | Path) -> StoreConfig:
    """
    Read and validate a YAML store configuration.
    Raises StoreConfigError for unreadable or malformed files, or the schema error
    (UnsupportedTypeError, InvalidSchemaError) when the columns are invalid.
    """
    try:
        with open(path, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except OSError as e:
        raise StoreConfigError(f"unable to read store config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise StoreConfigError(f"unable to parse store config {path}: {e}") from e

    if not isinstance(raw, dict):
        raise StoreConfigError(f"store config {path} must be a mapping")
    try:
        config = StoreConfig.model_validate(raw)
    except ValidationError as e:
        raise StoreConfigError(f"invalid store config {path}: {e}") from e

    config.table.validate_schema()
    logger.info(
        "Loaded store config: table=%s auto_create=%s columns=%s",
        config.table.name,
        config.table.auto_create,
        ", ".join(config.table.columns),
    )
    return config

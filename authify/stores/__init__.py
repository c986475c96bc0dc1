"""Schema-driven credential stores."""

from authify.stores.base import CredentialStore
from authify.stores.memory import InMemoryCredentialStore
from authify.stores.relational import RelationalCredentialStore
from authify.stores.schema import (
    ColumnSpec,
    ColumnType,
    StoreConfig,
    TableSchema,
    load_store_config,
)

__all__ = [
    "ColumnSpec",
    "ColumnType",
    "CredentialStore",
    "InMemoryCredentialStore",
    "RelationalCredentialStore",
    "StoreConfig",
    "TableSchema",
    "load_store_config",
]

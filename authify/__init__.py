"""Authify: schema-driven credential store with JWT access and refresh tokens."""

from authify.services import Authify, TokenEngine, TokenEngineConfig, TokenManager
from authify.stores import (
    CredentialStore,
    InMemoryCredentialStore,
    RelationalCredentialStore,
    TableSchema,
    load_store_config,
)

__all__ = [
    "Authify",
    "CredentialStore",
    "InMemoryCredentialStore",
    "RelationalCredentialStore",
    "TableSchema",
    "TokenEngine",
    "TokenEngineConfig",
    "TokenManager",
    "load_store_config",
]

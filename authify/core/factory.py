"""Wire a store and a token engine together from application settings."""

import logging
from functools import lru_cache

from authify.core.config import Settings, get_settings
from authify.core.database import get_engine
from authify.services.auth_service import Authify
from authify.services.tokens import TokenEngine
from authify.stores.base import CredentialStore
from authify.stores.memory import InMemoryCredentialStore
from authify.stores.relational import RelationalCredentialStore
from authify.stores.schema import load_store_config

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> CredentialStore:
    """Load the YAML schema and build the configured store backend."""
    store_config = load_store_config(settings.STORE_CONFIG_PATH)
    if settings.STORE_BACKEND == "relational":
        store: CredentialStore = RelationalCredentialStore(
            get_engine(), store_config.table, hash_rounds=settings.BCRYPT_ROUNDS
        )
    else:
        store = InMemoryCredentialStore(store_config.table, hash_rounds=settings.BCRYPT_ROUNDS)
    logger.info("Using %s credential store for table %s", settings.STORE_BACKEND, store_config.table.name)
    return store


def build_authify(settings: Settings) -> Authify:
    """Build the facade. Raises ConfigurationError or StoreError if settings are incomplete."""
    store = build_store(settings)
    return Authify(store=store, tokens=TokenEngine.from_settings(settings, store))


@lru_cache
def get_authify() -> Authify:
    """Return the process-wide Authify instance (safe to call from dependencies)."""
    return build_authify(get_settings())

"""End-to-end tests for the Authify facade and its construction from settings."""

import unittest
from pathlib import Path
from unittest.mock import patch

from pydantic import SecretStr

from authify.core.config import Settings
from authify.core.factory import build_authify, build_store
from authify.exceptions import (
    ConfigErrorKind,
    InvalidPasswordError,
    MissingConfigurationError,
    StoreConfigError,
    UserExistsError,
)
from authify.services.auth_service import Authify
from authify.services.tokens import TokenEngine
from authify.stores.memory import InMemoryCredentialStore
from authify.stores.relational import RelationalCredentialStore

STORE_CONFIG = str(Path(__file__).resolve().parents[1] / "configs" / "store.yml")
ACCESS_SECRET = "facade-access-secret-" + "a" * 48
REFRESH_SECRET = "facade-refresh-secret-" + "r" * 48


def _settings(**overrides: object) -> Settings:
    options: dict = {
        "_env_file": None,
        "STORE_BACKEND": "memory",
        "STORE_CONFIG_PATH": STORE_CONFIG,
        "BCRYPT_ROUNDS": 4,
        "JWT_SECRET": SecretStr(ACCESS_SECRET),
        "JWT_REFRESH_SECRET": SecretStr(REFRESH_SECRET),
    }
    options.update(overrides)
    return Settings(**options)


class TestBuildAuthify(unittest.TestCase):
    """build_authify wires the configured store into a token engine."""

    def test_memory_backend(self) -> None:
        authify = build_authify(_settings())
        self.assertIsInstance(authify, Authify)
        self.assertIsInstance(authify.store, InMemoryCredentialStore)
        self.assertIsInstance(authify.tokens, TokenEngine)
        self.assertIs(authify.tokens.config.store, authify.store)

    def test_relational_backend_uses_shared_engine(self) -> None:
        from sqlalchemy import create_engine
        from sqlalchemy.pool import StaticPool

        engine = create_engine(
            "sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False}
        )
        with patch("authify.core.factory.get_engine", return_value=engine):
            store = build_store(_settings(STORE_BACKEND="relational"))
        self.assertIsInstance(store, RelationalCredentialStore)
        store.create_user({"username": "alice", "password": "secret1"})
        self.assertEqual(store.get_user_info("alice", "secret1")["role"], "user")

    def test_missing_secret(self) -> None:
        with self.assertRaises(MissingConfigurationError) as ctx:
            build_authify(_settings(JWT_REFRESH_SECRET=None))
        self.assertEqual(ctx.exception.kind, ConfigErrorKind.MISSING_REFRESH_SECRET)

    def test_blank_secret_treated_as_missing(self) -> None:
        with self.assertRaises(MissingConfigurationError):
            build_authify(_settings(JWT_SECRET=SecretStr("   ")))

    def test_missing_store_config(self) -> None:
        with self.assertRaises(StoreConfigError):
            build_authify(_settings(STORE_CONFIG_PATH="/nonexistent/store.yml"))


class TestAuthifyScenario(unittest.TestCase):
    """The full lifecycle: create, log in, verify, refresh."""

    def setUp(self) -> None:
        self.authify = build_authify(_settings())

    def test_lifecycle(self) -> None:
        self.authify.store.create_user(
            {"username": "alice", "password": "secret1", "email": "a@example.com"}
        )

        info = self.authify.store.get_user_info("alice", "secret1")
        self.assertEqual(info, {"username": "alice", "role": "user", "email": "a@example.com"})

        access = self.authify.tokens.generate_token("alice", "secret1")
        refresh = self.authify.tokens.generate_refresh_token("alice", "127.0.0.1")
        self.assertEqual(self.authify.tokens.verify_token(access), ("alice", "user"))
        self.assertEqual(
            self.authify.tokens.verify_token(refresh, is_refresh=True), ("alice", None)
        )

        new_access, username = self.authify.tokens.refresh_token(access, refresh)
        self.assertEqual(username, "alice")
        self.assertNotEqual(new_access, access)
        self.assertEqual(self.authify.tokens.verify_token(new_access), ("alice", "user"))

    def test_duplicate_and_bad_password(self) -> None:
        self.authify.store.create_user({"username": "alice", "password": "secret1"})
        with self.assertRaises(UserExistsError):
            self.authify.store.create_user({"username": "alice", "password": "secret1"})
        with self.assertRaises(InvalidPasswordError):
            self.authify.tokens.generate_token("alice", "secret2")

    def test_admin_role(self) -> None:
        self.authify.store.create_user({"username": "root", "password": "pw", "role": "admin"})
        access = self.authify.tokens.generate_token("root", "pw")
        self.assertEqual(self.authify.tokens.verify_token(access).role, "admin")


if __name__ == "__main__":
    unittest.main()

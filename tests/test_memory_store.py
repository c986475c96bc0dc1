"""Unit tests for authify.stores.memory: schema-driven creation, authentication and locking."""

import threading
import unittest
from concurrent.futures import ThreadPoolExecutor

from authify.exceptions import (
    InvalidPasswordError,
    MissingFieldError,
    UnsupportedTypeError,
    UserExistsError,
    UserNotFoundError,
)
from authify.stores.memory import InMemoryCredentialStore, ReadWriteLock
from authify.stores.schema import TableSchema

# Lowest bcrypt cost keeps the tests fast.
TEST_ROUNDS = 4


def _store(**extra_columns: dict) -> InMemoryCredentialStore:
    columns = {
        "username": {"type": "text", "primary_key": True, "required": True, "jwt_claim": "username"},
        "password": {"type": "text", "required": True, "hidden": True},
        "role": {"type": "text", "default": "user", "jwt_claim": "role"},
    }
    columns.update(extra_columns)
    schema = TableSchema.model_validate({"name": "users", "columns": columns})
    return InMemoryCredentialStore(schema, hash_rounds=TEST_ROUNDS)


class TestCreateUser(unittest.TestCase):
    """create_user applies defaults, hashes passwords and rejects duplicates."""

    def test_create_and_authenticate(self) -> None:
        store = _store()
        store.create_user({"username": "alice", "password": "secret1"})
        info = store.get_user_info("alice", "secret1")
        self.assertEqual(info, {"username": "alice", "role": "user"})

    def test_supplied_value_overrides_default(self) -> None:
        store = _store()
        store.create_user({"username": "root", "password": "secret1", "role": "admin"})
        self.assertEqual(store.get_user_info("root", "secret1")["role"], "admin")

    def test_password_is_hashed(self) -> None:
        store = _store()
        store.create_user({"username": "alice", "password": "secret1"})
        stored = store._users["alice"]["password"]
        self.assertNotEqual(stored, "secret1")
        self.assertTrue(stored.startswith("$2"))

    def test_duplicate_username(self) -> None:
        store = _store()
        store.create_user({"username": "alice", "password": "secret1"})
        with self.assertRaises(UserExistsError):
            store.create_user({"username": "alice", "password": "other-password"})
        # The first record is untouched.
        self.assertEqual(store.get_user_info("alice", "secret1")["username"], "alice")

    def test_missing_required_field(self) -> None:
        store = _store()
        with self.assertRaises(MissingFieldError) as ctx:
            store.create_user({"username": "alice"})
        self.assertEqual(ctx.exception.field, "password")
        with self.assertRaises(UserNotFoundError):
            store.get_user_info("alice", "secret1")

    def test_missing_username(self) -> None:
        store = _store()
        with self.assertRaises(MissingFieldError) as ctx:
            store.create_user({"password": "secret1"})
        self.assertEqual(ctx.exception.field, "username")

    def test_optional_column_without_default_is_skipped(self) -> None:
        store = _store(email={"type": "text"})
        store.create_user({"username": "alice", "password": "secret1"})
        self.assertNotIn("email", store.get_user_info("alice", "secret1"))

    def test_unknown_fields_ignored(self) -> None:
        store = _store()
        store.create_user({"username": "alice", "password": "secret1", "shoe_size": "9"})
        self.assertNotIn("shoe_size", store.get_user_info("alice", "secret1"))

    def test_invalid_schema_rejected_at_construction(self) -> None:
        with self.assertRaises(UnsupportedTypeError):
            _store(age={"type": "float"})


class TestGetUserInfo(unittest.TestCase):
    """get_user_info authenticates and hides hidden columns."""

    def setUp(self) -> None:
        self.store = _store(
            email={"type": "text"},
            secret_code={"type": "text", "hidden": True, "jwt_claim": "code"},
        )
        self.store.create_user(
            {"username": "alice", "password": "secret1", "email": "a@example.com", "secret_code": "xyz"}
        )

    def test_unknown_user(self) -> None:
        with self.assertRaises(UserNotFoundError):
            self.store.get_user_info("bob", "secret1")

    def test_wrong_password(self) -> None:
        with self.assertRaises(InvalidPasswordError):
            self.store.get_user_info("alice", "wrong")

    def test_hidden_columns_excluded(self) -> None:
        info = self.store.get_user_info("alice", "secret1")
        self.assertEqual(info, {"username": "alice", "role": "user", "email": "a@example.com"})

    def test_include_hidden_still_omits_password(self) -> None:
        info = self.store.get_user_info("alice", "secret1", include_hidden=True)
        self.assertEqual(info["secret_code"], "xyz")
        self.assertNotIn("password", info)

    def test_integer_key_lookup(self) -> None:
        schema = TableSchema.model_validate(
            {
                "name": "members",
                "columns": {
                    "member_id": {"type": "int", "primary_key": True, "required": True},
                    "password": {"type": "text", "required": True},
                },
            }
        )
        store = InMemoryCredentialStore(schema, hash_rounds=TEST_ROUNDS)
        store.create_user({"member_id": "007", "password": "pw"})
        self.assertEqual(store.get_user_info("7", "pw"), {"member_id": "7"})
        with self.assertRaises(UserExistsError):
            store.create_user({"member_id": "7", "password": "pw"})
        with self.assertRaises(UserNotFoundError):
            store.get_user_info("seven", "pw")

    def test_schema_accessor(self) -> None:
        self.assertEqual(self.store.schema().name, "users")


class TestConcurrency(unittest.TestCase):
    """Creation is exclusive; concurrent creates of one username yield exactly one user."""

    def test_concurrent_distinct_users(self) -> None:
        store = _store()
        names = [f"user{i}" for i in range(8)]
        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(lambda n: store.create_user({"username": n, "password": "pw"}), names))
        for name in names:
            self.assertEqual(store.get_user_info(name, "pw")["username"], name)

    def test_concurrent_same_user(self) -> None:
        store = _store()

        def create(_: int) -> bool:
            try:
                store.create_user({"username": "alice", "password": "pw"})
                return True
            except UserExistsError:
                return False

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(create, range(6)))
        self.assertEqual(results.count(True), 1)


class TestReadWriteLock(unittest.TestCase):
    """Readers share the lock; a writer waits until readers are done."""

    def test_readers_share(self) -> None:
        lock = ReadWriteLock()
        inside = threading.Event()

        def reader() -> None:
            with lock.read():
                inside.set()

        with lock.read():
            t = threading.Thread(target=reader)
            t.start()
            self.assertTrue(inside.wait(timeout=2))
        t.join(timeout=2)

    def test_writer_waits_for_reader(self) -> None:
        lock = ReadWriteLock()
        written = threading.Event()

        def writer() -> None:
            with lock.write():
                written.set()

        with lock.read():
            t = threading.Thread(target=writer)
            t.start()
            self.assertFalse(written.wait(timeout=0.2))
        self.assertTrue(written.wait(timeout=2))
        t.join(timeout=2)


if __name__ == "__main__":
    unittest.main()

"""In-memory credential store, driven by the same schema as the relational store."""

import logging
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager

from authify.core.security import BCRYPT_ROUNDS, verify_password
from authify.exceptions import InvalidPasswordError, UserExistsError, UserNotFoundError
from authify.stores.base import CredentialStore
from authify.stores.schema import PASSWORD_COLUMN, TableSchema

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Many concurrent readers or one writer; waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class InMemoryCredentialStore(CredentialStore):
    """
    Keeps user records in a dict keyed by username.

    Values are stored in canonical text form (the password as a bcrypt hash)
    and unique columns are checked on insert. The whole table is guarded by one
    reader/writer lock: creation is exclusive, authentication is shared.
    """

    def __init__(self, table_schema: TableSchema, hash_rounds: int = BCRYPT_ROUNDS):
        super().__init__(table_schema, hash_rounds=hash_rounds)
        self._users: dict[str, dict[str, str]] = {}
        self._lock = ReadWriteLock()
        self._unique_columns = [
            name
            for name, spec in table_schema.columns.items()
            if spec.unique and not spec.primary_key
        ]

    def create_user(self, fields: Mapping[str, str]) -> None:
        username_column = self._schema.username_column
        with self._lock.write():
            record = self._build_record(fields)
            username = record[username_column]
            if username in self._users:
                raise UserExistsError()
            for name in self._unique_columns:
                value = record.get(name)
                if value is not None and any(u.get(name) == value for u in self._users.values()):
                    raise UserExistsError(f"user with this {name} already exists")
            self._users[username] = record
        logger.info("Created user %s", username)

    def get_user_info(
        self, username: str, password: str, *, include_hidden: bool = False
    ) -> dict[str, str]:
        try:
            column_type = self._schema.columns[self._schema.username_column].column_type
            key = column_type.to_text(column_type.to_python(username))
        except (KeyError, TypeError, ValueError):
            # A username that cannot be a key value cannot match any record.
            raise UserNotFoundError() from None
        with self._lock.read():
            user = self._users.get(key)
            if user is None:
                raise UserNotFoundError()
            hashed = user.get(PASSWORD_COLUMN)
            if hashed is None or not verify_password(password, hashed):
                raise InvalidPasswordError()
            return {
                name: user[name]
                for name in self._schema.readable_columns(include_hidden)
                if name in user
            }

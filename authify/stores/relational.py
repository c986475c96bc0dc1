"""Relational credential store on SQLAlchemy Core, with the table built from the schema."""

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import Engine, MetaData, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from authify.core.security import BCRYPT_ROUNDS, verify_password
from authify.exceptions import (
    InvalidPasswordError,
    InvalidValueError,
    StorageError,
    UserExistsError,
    UserNotFoundError,
)
from authify.stores.base import CredentialStore
from authify.stores.schema import PASSWORD_COLUMN, TableSchema

logger = logging.getLogger(__name__)


class RelationalCredentialStore(CredentialStore):
    """
    Stores users in a database table whose columns come from the schema.

    Each insert runs in its own transaction; the store does not serialize
    callers, so concurrent creations of the same username race in the database
    and the loser gets UserExistsError. Table auto-creation happens once at
    construction and is not atomic with later inserts.
    """

    def __init__(
        self,
        engine: Engine,
        table_schema: TableSchema,
        hash_rounds: int = BCRYPT_ROUNDS,
    ):
        super().__init__(table_schema, hash_rounds=hash_rounds)
        self._engine = engine
        self._table = table_schema.build_table(MetaData())
        if table_schema.auto_create:
            self._create_table_if_not_exists()

    def _create_table_if_not_exists(self) -> None:
        try:
            self._table.create(self._engine, checkfirst=True)
        except SQLAlchemyError as e:
            raise StorageError(f"unable to create table {self._table.name}: {e}") from e
        logger.info("Ensured table %s exists", self._table.name)

    def _to_row(self, record: Mapping[str, str]) -> dict[str, Any]:
        row = {}
        for name, value in record.items():
            column_type = self._schema.columns[name].column_type
            try:
                row[name] = column_type.to_python(value)
            except (TypeError, ValueError) as e:
                raise InvalidValueError(name, column_type.value) from e
        return row

    def create_user(self, fields: Mapping[str, str]) -> None:
        row = self._to_row(self._build_record(fields))
        try:
            with self._engine.begin() as conn:
                conn.execute(insert(self._table).values(**row))
        except IntegrityError as e:
            raise UserExistsError() from e
        except SQLAlchemyError as e:
            raise StorageError(f"unable to insert user: {e}") from e
        logger.info("Created user %s", row[self._schema.username_column])

    def get_user_info(
        self, username: str, password: str, *, include_hidden: bool = False
    ) -> dict[str, str]:
        username_column = self._schema.username_column
        try:
            key = self._schema.columns[username_column].column_type.to_python(username)
        except (KeyError, TypeError, ValueError):
            # A username that cannot be a key value cannot match any row.
            raise UserNotFoundError() from None
        query = select(self._table).where(self._table.c[username_column] == key)
        try:
            with self._engine.connect() as conn:
                user = conn.execute(query).mappings().first()
        except SQLAlchemyError as e:
            raise StorageError(f"unable to read user: {e}") from e
        if user is None:
            raise UserNotFoundError()

        hashed = user.get(PASSWORD_COLUMN) if self._schema.has_password else None
        if hashed is None or not verify_password(password, hashed):
            raise InvalidPasswordError()

        info = {}
        for name in self._schema.readable_columns(include_hidden):
            value = user[name]
            if value is not None:
                info[name] = self._schema.columns[name].column_type.to_text(value)
        return info

"""Credential store interface shared by the in-memory and relational stores."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from authify.core.security import BCRYPT_ROUNDS, hash_password
from authify.exceptions import InvalidValueError, MissingFieldError
from authify.stores.schema import PASSWORD_COLUMN, TableSchema


class CredentialStore(ABC):
    """Creates users from a declarative schema and authenticates them."""

    def __init__(self, table_schema: TableSchema, hash_rounds: int = BCRYPT_ROUNDS):
        table_schema.validate_schema()
        self._schema = table_schema
        self._hash_rounds = hash_rounds

    def schema(self) -> TableSchema:
        return self._schema

    @abstractmethod
    def create_user(self, fields: Mapping[str, str]) -> None:
        """Create and persist one user record from column-keyed input."""

    @abstractmethod
    def get_user_info(
        self, username: str, password: str, *, include_hidden: bool = False
    ) -> dict[str, str]:
        """
        Authenticate and return the user's readable columns.

        Hidden columns are left out unless include_hidden is set (the token
        engine uses it to reach claim-mapped hidden columns). The password
        column is never returned.
        """

    def _build_record(self, fields: Mapping[str, str]) -> dict[str, Any]:
        """
        Resolve input against the schema: take supplied values (hashing the
        password), fill defaults, reject missing required columns.

        Every value is checked against its column type and kept in canonical
        text form, so all stores accept the same input and return the same text.
        An empty value counts as not supplied.
        """
        username_column = self._schema.username_column
        if not fields.get(username_column):
            raise MissingFieldError(username_column)

        record: dict[str, Any] = {}
        for name, spec in self._schema.columns.items():
            value = fields.get(name)
            if value is None or value == "":
                if spec.default is not None:
                    value = spec.default
                elif spec.required:
                    raise MissingFieldError(name)
                else:
                    continue
            if name == PASSWORD_COLUMN:
                value = hash_password(value, rounds=self._hash_rounds)
            else:
                value = self._canonical(name, value)
            record[name] = value
        return record

    def _canonical(self, name: str, value: str) -> str:
        """Round-trip a value through its column type. Raises InvalidValueError."""
        column_type = self._schema.columns[name].column_type
        try:
            return column_type.to_text(column_type.to_python(value))
        except (TypeError, ValueError) as e:
            raise InvalidValueError(name, column_type.value) from e

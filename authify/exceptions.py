"""Authify exceptions.

Every failure raised by the stores, the token engine or the configuration layer
is an ``AuthifyError`` carrying a ``kind`` from a closed enum, so transports can
match on the kind instead of comparing messages.
"""

from enum import Enum


class StoreErrorKind(str, Enum):
    USER_EXISTS = "user_exists"
    USER_NOT_FOUND = "user_not_found"
    INVALID_PASSWORD = "invalid_password"
    MISSING_FIELD = "missing_field"
    INVALID_VALUE = "invalid_value"
    UNSUPPORTED_TYPE = "unsupported_type"
    INVALID_SCHEMA = "invalid_schema"
    STORAGE = "storage"


class ConfigErrorKind(str, Enum):
    MISSING_ACCESS_SECRET = "missing_access_secret"
    MISSING_REFRESH_SECRET = "missing_refresh_secret"
    MISSING_STORE = "missing_store"
    MISSING_TOKEN_LIFETIME = "missing_token_lifetime"
    INVALID_ALGORITHM = "invalid_algorithm"
    SHARED_SECRET = "shared_secret"
    INVALID_STORE_CONFIG = "invalid_store_config"


class TokenErrorKind(str, Enum):
    INVALID_TOKEN = "invalid_token"
    CLAIMS_INVALID = "claims_invalid"
    UNEXPECTED_SIGNING_METHOD = "unexpected_signing_method"
    MISSING_USERNAME = "missing_username"
    MISSING_ROLE = "missing_role"
    TOKEN_EXPIRED = "token_expired"
    REFRESH_TOKEN_EXPIRED = "refresh_token_expired"

    @property
    def is_temporal(self) -> bool:
        return self in (TokenErrorKind.TOKEN_EXPIRED, TokenErrorKind.REFRESH_TOKEN_EXPIRED)


class AuthifyError(Exception):
    """Base exception for all Authify errors."""

    def __init__(self, message: str = "Authify error"):
        self.message = message
        super().__init__(self.message)


# Store errors


class StoreError(AuthifyError):
    """Raised by credential stores."""

    kind: StoreErrorKind = StoreErrorKind.STORAGE

    def __init__(self, message: str = "Credential store error"):
        super().__init__(message)


class UserExistsError(StoreError):
    kind = StoreErrorKind.USER_EXISTS

    def __init__(self, message: str = "user already exists"):
        super().__init__(message)


class UserNotFoundError(StoreError):
    kind = StoreErrorKind.USER_NOT_FOUND

    def __init__(self, message: str = "user not found"):
        super().__init__(message)


class InvalidPasswordError(StoreError):
    kind = StoreErrorKind.INVALID_PASSWORD

    def __init__(self, message: str = "invalid password for user"):
        super().__init__(message)


class MissingFieldError(StoreError):
    """Raised when a required column without a default is absent at creation."""

    kind = StoreErrorKind.MISSING_FIELD

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"missing required field: {field}")


class InvalidValueError(StoreError):
    """Raised when a value cannot be converted to its column's storage type."""

    kind = StoreErrorKind.INVALID_VALUE

    def __init__(self, field: str, column_type: str):
        self.field = field
        self.column_type = column_type
        super().__init__(f"invalid value for field {field} of type {column_type}")


class UnsupportedTypeError(StoreError):
    kind = StoreErrorKind.UNSUPPORTED_TYPE

    def __init__(self, column: str, column_type: str):
        self.column = column
        self.column_type = column_type
        super().__init__(f"unsupported column type: {column_type} (column {column})")


class InvalidSchemaError(StoreError):
    kind = StoreErrorKind.INVALID_SCHEMA

    def __init__(self, message: str = "invalid store schema"):
        super().__init__(message)


class StorageError(StoreError):
    """Raised when the backing database fails for a reason other than a conflict."""

    kind = StoreErrorKind.STORAGE


# Configuration errors


class ConfigurationError(AuthifyError):
    """Raised when the engine or store configuration is incomplete or invalid."""

    kind: ConfigErrorKind = ConfigErrorKind.INVALID_STORE_CONFIG

    def __init__(self, message: str, kind: ConfigErrorKind | None = None):
        if kind is not None:
            self.kind = kind
        super().__init__(message)


_MISSING_CONFIG_KINDS = {
    "access_secret": ConfigErrorKind.MISSING_ACCESS_SECRET,
    "refresh_secret": ConfigErrorKind.MISSING_REFRESH_SECRET,
    "store": ConfigErrorKind.MISSING_STORE,
    "token_lifetime": ConfigErrorKind.MISSING_TOKEN_LIFETIME,
}


class MissingConfigurationError(ConfigurationError):
    """Raised when a required token engine setting is not provided."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(
            f"{field.replace('_', ' ')} not provided",
            kind=_MISSING_CONFIG_KINDS[field],
        )


class StoreConfigError(ConfigurationError):
    """Raised when the YAML store configuration cannot be loaded."""

    def __init__(self, message: str):
        super().__init__(message, kind=ConfigErrorKind.INVALID_STORE_CONFIG)


# Token errors


class TokenError(AuthifyError):
    """Raised when token creation or verification fails."""

    kind: TokenErrorKind = TokenErrorKind.INVALID_TOKEN

    def __init__(self, message: str = "token is invalid"):
        super().__init__(message)

    @property
    def is_temporal(self) -> bool:
        return self.kind.is_temporal


class InvalidTokenError(TokenError):
    kind = TokenErrorKind.INVALID_TOKEN


class ClaimsInvalidError(TokenError):
    kind = TokenErrorKind.CLAIMS_INVALID

    def __init__(self, message: str = "invalid claims"):
        super().__init__(message)


class UnexpectedSigningMethodError(TokenError):
    kind = TokenErrorKind.UNEXPECTED_SIGNING_METHOD

    def __init__(self, message: str = "unexpected signing method"):
        super().__init__(message)


class MissingUsernameError(TokenError):
    kind = TokenErrorKind.MISSING_USERNAME

    def __init__(self, message: str = "username missing in token"):
        super().__init__(message)


class MissingRoleError(TokenError):
    kind = TokenErrorKind.MISSING_ROLE

    def __init__(self, message: str = "role missing in token"):
        super().__init__(message)


class TokenExpiredError(TokenError):
    kind = TokenErrorKind.TOKEN_EXPIRED

    def __init__(self, message: str = "token has expired"):
        super().__init__(message)


class RefreshTokenExpiredError(TokenError):
    """Raised when renewal is attempted with an expired refresh token; log in again."""

    kind = TokenErrorKind.REFRESH_TOKEN_EXPIRED

    def __init__(
        self,
        message: str = "refresh token is expired, cannot do refresh, please log in again",
    ):
        super().__init__(message)

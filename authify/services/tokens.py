"""JWT access/refresh token issuance, verification and renewal.

Access tokens carry the issuer, an expiry and the schema's claim-mapped user
fields; refresh tokens carry a fixed claim set. The two classes are signed with
different secrets, so one can never pass verification as the other.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, NamedTuple

import jwt
from pydantic import ValidationError

from authify.core.config import HMAC_ALGORITHMS
from authify.exceptions import (
    ClaimsInvalidError,
    ConfigErrorKind,
    ConfigurationError,
    InvalidTokenError,
    MissingConfigurationError,
    MissingRoleError,
    MissingUsernameError,
    RefreshTokenExpiredError,
    TokenExpiredError,
    UnexpectedSigningMethodError,
)
from authify.schemas.claims import ISSUER, AccessClaims, RefreshClaims
from authify.stores.base import CredentialStore

if TYPE_CHECKING:
    from authify.core.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_ACCESS_TOKEN_LIFETIME = timedelta(minutes=15)
DEFAULT_REFRESH_TOKEN_LIFETIME = timedelta(days=3)
DEFAULT_REFRESH_TOKEN_ABSOLUTE_LIFETIME = timedelta(days=15)


def _now() -> datetime:
    return datetime.now(UTC)


class TokenIdentity(NamedTuple):
    """Result of verifying a token. role is None for refresh tokens."""

    username: str
    role: str | None


class RefreshResult(NamedTuple):
    access_token: str
    username: str


class TokenManager(ABC):
    """Token capability exposed to the facade and the transports."""

    @abstractmethod
    def generate_token(self, username: str, password: str) -> str:
        """Authenticate against the store and issue a signed access token."""

    @abstractmethod
    def generate_refresh_token(self, username: str, ip_address: str) -> str:
        """Issue a signed refresh token. Callers must have authenticated already."""

    @abstractmethod
    def verify_token(self, token: str, is_refresh: bool = False) -> TokenIdentity:
        """Check signature, expiry and required claims."""

    @abstractmethod
    def refresh_token(self, access_token: str, refresh_token: str) -> RefreshResult:
        """Exchange an access token (possibly expired) and a valid refresh token for a new access token."""


@dataclass(frozen=True)
class TokenEngineConfig:
    """
    Everything the token engine needs, validated on construction.

    enforce_absolute_expiry decides whether a refresh token's absolute ceiling
    (aexp) is checked; by default it is carried but not enforced.
    """

    access_secret: str | None = None
    refresh_secret: str | None = None
    store: CredentialStore | None = None
    token_lifetime: timedelta | None = DEFAULT_ACCESS_TOKEN_LIFETIME
    refresh_lifetime: timedelta = DEFAULT_REFRESH_TOKEN_LIFETIME
    refresh_absolute_lifetime: timedelta = DEFAULT_REFRESH_TOKEN_ABSOLUTE_LIFETIME
    enforce_absolute_expiry: bool = False
    algorithm: str = "HS256"

    def __post_init__(self) -> None:
        if not self.access_secret:
            raise MissingConfigurationError("access_secret")
        if not self.refresh_secret:
            raise MissingConfigurationError("refresh_secret")
        if self.store is None:
            raise MissingConfigurationError("store")
        if self.token_lifetime is None or self.token_lifetime <= timedelta(0):
            raise MissingConfigurationError("token_lifetime")
        if self.access_secret == self.refresh_secret:
            raise ConfigurationError(
                "access and refresh secrets must differ",
                kind=ConfigErrorKind.SHARED_SECRET,
            )
        if self.algorithm not in HMAC_ALGORITHMS:
            raise ConfigurationError(
                f"unsupported signing algorithm: {self.algorithm}",
                kind=ConfigErrorKind.INVALID_ALGORITHM,
            )

    @classmethod
    def from_settings(cls, settings: Settings, store: CredentialStore) -> TokenEngineConfig:
        return cls(
            access_secret=settings.JWT_SECRET.get_secret_value() if settings.JWT_SECRET else None,
            refresh_secret=(
                settings.JWT_REFRESH_SECRET.get_secret_value()
                if settings.JWT_REFRESH_SECRET
                else None
            ),
            store=store,
            token_lifetime=timedelta(minutes=settings.TOKEN_EXPIRATION_TIME_MINUTES),
            refresh_lifetime=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            refresh_absolute_lifetime=timedelta(days=settings.REFRESH_TOKEN_ABSOLUTE_EXPIRE_DAYS),
            enforce_absolute_expiry=settings.ENFORCE_REFRESH_ABSOLUTE_EXPIRY,
            algorithm=settings.JWT_ALGORITHM,
        )


class TokenEngine(TokenManager):
    """Stateless after construction; safe to share between threads."""

    def __init__(self, config: TokenEngineConfig):
        self._config = config
        self._store: CredentialStore = config.store  # type: ignore[assignment]

    @classmethod
    def from_settings(cls, settings: Settings, store: CredentialStore) -> TokenEngine:
        return cls(TokenEngineConfig.from_settings(settings, store))

    @property
    def config(self) -> TokenEngineConfig:
        return self._config

    def generate_token(self, username: str, password: str) -> str:
        # Hidden columns may still be claim-mapped, so ask the store for them too.
        info = self._store.get_user_info(username, password, include_hidden=True)
        claims: dict[str, Any] = {}
        for column, claim in self._store.schema().claim_mapping().items():
            if column in info:
                claims[claim] = info[column]
        claims.setdefault("username", username)
        token = self._sign_access(claims)
        logger.info("Issued access token for %s", username)
        return token

    def generate_refresh_token(self, username: str, ip_address: str) -> str:
        now = _now()
        payload = {
            "username": username,
            "ip_address": ip_address,
            "iat": int(now.timestamp()),
            "exp": int((now + self._config.refresh_lifetime).timestamp()),
            "aexp": int((now + self._config.refresh_absolute_lifetime).timestamp()),
            "valid": True,
        }
        token = jwt.encode(payload, self._config.refresh_secret, algorithm=self._config.algorithm)
        logger.info("Issued refresh token for %s", username)
        return token

    def verify_token(self, token: str, is_refresh: bool = False) -> TokenIdentity:
        payload = self._decode(token, is_refresh)
        if is_refresh:
            refresh = self._refresh_claims(payload)
            return TokenIdentity(refresh.username, None)
        access = self._access_claims(payload)
        return TokenIdentity(access.username, access.role)

    def refresh_token(self, access_token: str, refresh_token: str) -> RefreshResult:
        try:
            refresh_identity = self.verify_token(refresh_token, is_refresh=True)
        except TokenExpiredError as e:
            raise RefreshTokenExpiredError() from e

        try:
            claims = self._access_claims(self._decode(access_token, is_refresh=False))
        except TokenExpiredError:
            # The refresh token was verified above; it vouches for the expired
            # access token, whose claims are recovered without a signature check.
            claims = self._recover_expired_claims(access_token)
            logger.info("Recovered claims from expired access token for %s", claims.username)

        # A refresh token only renews access tokens of the user it was issued to.
        if claims.username != refresh_identity.username:
            raise InvalidTokenError("refresh token was issued to a different user")

        new_token = self._sign_access(claims.identity_claims(), refreshed=True)
        logger.info("Refreshed access token for %s", claims.username)
        return RefreshResult(new_token, claims.username)

    def _sign_access(self, claims: dict[str, Any], refreshed: bool = False) -> str:
        payload = dict(claims)
        payload["iss"] = ISSUER
        payload["exp"] = int((_now() + self._config.token_lifetime).timestamp())
        if refreshed:
            payload["refreshed_at"] = time.time_ns()
        return jwt.encode(payload, self._config.access_secret, algorithm=self._config.algorithm)

    def _decode(self, token: str, is_refresh: bool) -> dict[str, Any]:
        secret = self._config.refresh_secret if is_refresh else self._config.access_secret
        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as e:
            raise InvalidTokenError() from e
        if header.get("alg") not in HMAC_ALGORITHMS:
            raise UnexpectedSigningMethodError()

        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=list(HMAC_ALGORITHMS),
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError() from e
        except jwt.PyJWTError as e:
            raise InvalidTokenError() from e

        if _now().timestamp() >= payload["exp"]:
            raise TokenExpiredError()
        return payload

    def _access_claims(self, payload: dict[str, Any]) -> AccessClaims:
        if payload.get("username") is None:
            raise MissingUsernameError()
        if payload.get("role") is None:
            raise MissingRoleError()
        try:
            return AccessClaims.model_validate(payload)
        except ValidationError as e:
            raise ClaimsInvalidError() from e

    def _refresh_claims(self, payload: dict[str, Any]) -> RefreshClaims:
        if payload.get("valid") is not True:
            raise InvalidTokenError("refresh token invalidated")
        if payload.get("username") is None:
            raise MissingUsernameError()
        try:
            claims = RefreshClaims.model_validate(payload)
        except ValidationError as e:
            raise ClaimsInvalidError() from e
        if self._absolute_expiry_elapsed(claims):
            raise TokenExpiredError("refresh token passed its absolute expiry")
        return claims

    def _absolute_expiry_elapsed(self, claims: RefreshClaims) -> bool:
        """Single policy point for the refresh token's absolute ceiling."""
        if not self._config.enforce_absolute_expiry:
            return False
        return _now().timestamp() >= claims.aexp

    def _recover_expired_claims(self, access_token: str) -> AccessClaims:
        try:
            payload = jwt.decode(access_token, options={"verify_signature": False})
        except jwt.PyJWTError as e:
            raise InvalidTokenError() from e
        return self._access_claims(payload)

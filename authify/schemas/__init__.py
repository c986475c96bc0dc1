"""Pydantic request/response and token claim schemas."""

from authify.schemas.auth import (
    ErrorDetail,
    RefreshedTokenResponse,
    TokenPairResponse,
    UserCreatedResponse,
    VerifiedTokenResponse,
)
from authify.schemas.claims import AccessClaims, RefreshClaims
from authify.schemas.health import HealthResponse

__all__ = [
    "AccessClaims",
    "ErrorDetail",
    "HealthResponse",
    "RefreshClaims",
    "RefreshedTokenResponse",
    "TokenPairResponse",
    "UserCreatedResponse",
    "VerifiedTokenResponse",
]

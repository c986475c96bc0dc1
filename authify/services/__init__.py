"""Token engine and service facade."""

from authify.services.auth_service import Authify
from authify.services.tokens import (
    RefreshResult,
    TokenEngine,
    TokenEngineConfig,
    TokenIdentity,
    TokenManager,
)

__all__ = [
    "Authify",
    "RefreshResult",
    "TokenEngine",
    "TokenEngineConfig",
    "TokenIdentity",
    "TokenManager",
]

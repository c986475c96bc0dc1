"""Service facade: one credential store plus one token manager."""

from dataclasses import dataclass

from authify.services.tokens import TokenManager
from authify.stores.base import CredentialStore


@dataclass(frozen=True)
class Authify:
    """
    Composes a CredentialStore and a TokenManager for the transports.

    Callers create users through ``store`` and issue, verify and refresh tokens
    through ``tokens``; the facade adds no behavior of its own.
    """

    store: CredentialStore
    tokens: TokenManager

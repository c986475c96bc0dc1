"""Typed JWT claim sets for access and refresh tokens."""

from typing import Any

from pydantic import BaseModel, ConfigDict, StrictBool, StrictInt, StrictStr

ISSUER = "authify-issuer"

# Claims the engine stamps on every access token; everything else comes from the user record.
ENGINE_ACCESS_CLAIMS = ("iss", "exp", "iat", "refreshed_at")


class AccessClaims(BaseModel):
    """
    Decoded access token payload.

    username and role are required; schema-mapped claims (e.g. email) are kept
    as extra fields so a reissued token carries them unchanged.
    """

    model_config = ConfigDict(extra="allow")

    username: StrictStr
    role: StrictStr
    exp: StrictInt
    iss: StrictStr | None = None
    refreshed_at: StrictInt | None = None

    def identity_claims(self) -> dict[str, Any]:
        """Claims that survive a reissue: everything except the engine-stamped ones."""
        return {
            name: value
            for name, value in self.model_dump().items()
            if name not in ENGINE_ACCESS_CLAIMS and value is not None
        }


class RefreshClaims(BaseModel):
    """Decoded refresh token payload."""

    username: StrictStr
    ip_address: StrictStr
    iat: StrictInt
    exp: StrictInt
    aexp: StrictInt
    valid: StrictBool

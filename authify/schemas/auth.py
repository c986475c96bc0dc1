"""Request/response schemas for auth endpoints."""

from pydantic import BaseModel, Field


class UserCreatedResponse(BaseModel):
    """Returned after a user is created (no password or hidden fields)."""

    username: str = Field(..., description="Username of the created user")


class TokenPairResponse(BaseModel):
    """Access and refresh tokens returned after a successful login."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")


class VerifiedTokenResponse(BaseModel):
    """Identity carried by a verified access token."""

    username: str
    role: str


class RefreshedTokenResponse(BaseModel):
    """New access token issued by the refresh protocol."""

    access_token: str = Field(..., description="New JWT access token")
    username: str
    token_type: str = Field(default="bearer", description="Token type")


class ErrorDetail(BaseModel):
    """Error body: the error kind and a human-readable message."""

    kind: str
    message: str

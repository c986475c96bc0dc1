"""Auth endpoints: create users and issue, verify and refresh tokens.

Credentials and tokens travel in ``authify-*`` headers: one header per schema
column for user creation (``authify-username``, ``authify-password``, ...),
``authify-access`` and ``authify-refresh`` for tokens.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from authify.core.factory import get_authify
from authify.exceptions import AuthifyError, StoreError, StoreErrorKind, TokenError
from authify.schemas.auth import (
    ErrorDetail,
    RefreshedTokenResponse,
    TokenPairResponse,
    UserCreatedResponse,
    VerifiedTokenResponse,
)
from authify.services.auth_service import Authify
from authify.stores.schema import TableSchema

logger = logging.getLogger(__name__)

router = APIRouter()

HEADER_PREFIX = "authify-"

_STORE_STATUS = {
    StoreErrorKind.USER_EXISTS: status.HTTP_409_CONFLICT,
    StoreErrorKind.MISSING_FIELD: status.HTTP_422_UNPROCESSABLE_ENTITY,
    StoreErrorKind.INVALID_VALUE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    StoreErrorKind.USER_NOT_FOUND: status.HTTP_401_UNAUTHORIZED,
    StoreErrorKind.INVALID_PASSWORD: status.HTTP_401_UNAUTHORIZED,
}


def error_to_http(exc: AuthifyError) -> HTTPException:
    """Map an Authify error to an HTTPException; the kind goes in X-Authify-Error."""
    if isinstance(exc, TokenError):
        status_code = status.HTTP_401_UNAUTHORIZED
    elif isinstance(exc, StoreError):
        status_code = _STORE_STATUS.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    kind = exc.kind.value
    headers = {"X-Authify-Error": kind}
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers["WWW-Authenticate"] = "Bearer"
    return HTTPException(
        status_code=status_code,
        detail=ErrorDetail(kind=kind, message=exc.message).model_dump(),
        headers=headers,
    )


def parse_user_headers(request: Request, table_schema: TableSchema) -> dict[str, str]:
    """
    Collect ``authify-<column>`` headers for every schema column.
    Raises 422 when a required column without a default is missing.
    """
    fields: dict[str, str] = {}
    for name, spec in table_schema.columns.items():
        header_name = f"{HEADER_PREFIX}{name.lower()}"
        value = request.headers.get(header_name)
        if not value:
            if spec.required and spec.default is None:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail=ErrorDetail(
                        kind=StoreErrorKind.MISSING_FIELD.value,
                        message=f"missing required header: {header_name}",
                    ).model_dump(),
                )
            continue
        fields[name] = value
    return fields


@router.post("/users", response_model=UserCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    request: Request,
    authify: Annotated[Authify, Depends(get_authify)],
) -> UserCreatedResponse:
    """Create a user from ``authify-<column>`` headers."""
    table_schema = authify.store.schema()
    fields = parse_user_headers(request, table_schema)
    try:
        authify.store.create_user(fields)
    except StoreError as e:
        raise error_to_http(e) from e
    return UserCreatedResponse(username=fields[table_schema.username_column])


@router.post("/tokens", response_model=TokenPairResponse)
def generate_tokens(
    request: Request,
    authify: Annotated[Authify, Depends(get_authify)],
    username: Annotated[str, Header(alias="authify-username")],
    password: Annotated[str, Header(alias="authify-password")],
) -> TokenPairResponse:
    """
    Authenticate with username and password; returns an access and a refresh token.
    The refresh token is bound to the caller's address.
    """
    ip_address = request.client.host if request.client else "unknown"
    try:
        access_token = authify.tokens.generate_token(username, password)
        refresh_token = authify.tokens.generate_refresh_token(username, ip_address)
    except AuthifyError as e:
        raise error_to_http(e) from e
    return TokenPairResponse(access_token=access_token, refresh_token=refresh_token)


@router.post("/tokens/verify", response_model=VerifiedTokenResponse)
def verify_token(
    authify: Annotated[Authify, Depends(get_authify)],
    access_token: Annotated[str, Header(alias="authify-access")],
) -> VerifiedTokenResponse:
    """Verify an access token and return the identity it carries."""
    try:
        username, role = authify.tokens.verify_token(access_token, is_refresh=False)
    except TokenError as e:
        raise error_to_http(e) from e
    logger.info("Verified token for user %s", username)
    return VerifiedTokenResponse(username=username, role=role or "")


@router.post("/tokens/refresh", response_model=RefreshedTokenResponse)
def refresh_token(
    authify: Annotated[Authify, Depends(get_authify)],
    access_token: Annotated[str, Header(alias="authify-access")],
    refresh_token: Annotated[str, Header(alias="authify-refresh")],
) -> RefreshedTokenResponse:
    """
    Exchange an access token (expired or not) and a valid refresh token for a new access token.
    A 401 with kind refresh_token_expired means the client must log in again.
    """
    try:
        new_token, username = authify.tokens.refresh_token(access_token, refresh_token)
    except TokenError as e:
        raise error_to_http(e) from e
    return RefreshedTokenResponse(access_token=new_token, username=username)

"""Pydantic request/response schemas."""

from storefront.schemas.auth import (
    CurrentUser,
    LoginRequest,
    RefreshTokenRequest,
    Role,
    SignupRequest,
    TokenClaims,
    TokenResponse,
    UsersListResponse,
)
from storefront.schemas.errors import ErrorItem, ErrorResponse, itemize_errors, parse_request
from storefront.schemas.health import HealthResponse

__all__ = [
    "CurrentUser",
    "ErrorItem",
    "ErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "RefreshTokenRequest",
    "Role",
    "SignupRequest",
    "TokenClaims",
    "TokenResponse",
    "UsersListResponse",
    "itemize_errors",
    "parse_request",
]

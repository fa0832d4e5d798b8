"""Signup, login, refresh-token rotation and auth dependencies (get_current_user, require_admin)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from storefront.core.config import get_settings
from storefront.core.database import get_db
from storefront.core.errors import InvalidTokenError, PermissionDeniedError
from storefront.models import ROLE_ADMIN
from storefront.schemas.auth import (
    CurrentUser,
    LoginRequest,
    RefreshTokenRequest,
    SignupRequest,
    TokenResponse,
    UsersListResponse,
)
from storefront.schemas.errors import ErrorResponse
from storefront.services import auth as auth_service
from storefront.services.refresh_tokens import RefreshTokenRegistry, registry_for
from storefront.services.users import list_users

router = APIRouter()
security = HTTPBearer(auto_error=False)


def get_refresh_token_registry(
    db: Annotated[Session, Depends(get_db)],
) -> RefreshTokenRegistry:
    """Dependency: the refresh-token registry selected by REFRESH_TOKEN_STORE."""
    return registry_for(db, get_settings())


@router.post(
    "/signup",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def signup(
    body: SignupRequest,
    db: Annotated[Session, Depends(get_db)],
    registry: Annotated[RefreshTokenRegistry, Depends(get_refresh_token_registry)],
) -> TokenResponse:
    """
    Create a customer account; returns an access token and a refresh token.
    Include the access token in the Authorization header as: Bearer <accessToken>
    """
    return auth_service.signup(db, registry, body)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
    registry: Annotated[RefreshTokenRegistry, Depends(get_refresh_token_registry)],
) -> TokenResponse:
    """Authenticate with email and password; returns an access token and a refresh token."""
    return auth_service.login(db, registry, body)


@router.post(
    "/refreshToken",
    response_model=TokenResponse,
    responses={400: {"model": ErrorResponse}},
)
def refresh_token(
    body: RefreshTokenRequest,
    db: Annotated[Session, Depends(get_db)],
    registry: Annotated[RefreshTokenRegistry, Depends(get_refresh_token_registry)],
) -> TokenResponse:
    """Redeem a refresh token once for a new access/refresh pair."""
    return auth_service.redeem_refresh_token(db, registry, body.token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    body: RefreshTokenRequest,
    db: Annotated[Session, Depends(get_db)],
    registry: Annotated[RefreshTokenRegistry, Depends(get_refresh_token_registry)],
) -> Response:
    """Revoke a refresh token. Succeeds whether or not the token was still valid."""
    auth_service.logout(db, registry, body.token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> CurrentUser:
    """Dependency: require valid Bearer JWT and return the current user. Raises 401 if missing or invalid."""
    if credentials is None or not credentials.credentials:
        raise InvalidTokenError("Not authenticated")
    user = auth_service.resolve_access_token(db, credentials.credentials)
    return CurrentUser.model_validate(user)


def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: require authenticated user with role 'admin'. Raises 403 for non-admin."""
    if current_user.role != ROLE_ADMIN:
        raise PermissionDeniedError("Admin access required")
    return current_user


@router.get("/me", response_model=CurrentUser, responses={401: {"model": ErrorResponse}})
def me(current_user: Annotated[CurrentUser, Depends(get_current_user)]) -> CurrentUser:
    """Return the authenticated user."""
    return current_user


@router.get(
    "",
    response_model=UsersListResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def get_users(
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> UsersListResponse:
    """List all users (admin only)."""
    users = list_users(db)
    return UsersListResponse(users=[CurrentUser.model_validate(u) for u in users])

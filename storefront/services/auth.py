"""
Auth service: signup, login, refresh-token rotation, logout and access-token resolution.

Every flow that succeeds hands back a fresh access token and a registered
refresh token. Each flow commits once at the end; store and signing failures
roll the whole flow back, are logged here and surface as InternalError so no
internal detail reaches the client.
"""

import logging
import secrets
from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache

import jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.core.errors import (
    AuthenticationError,
    ConflictError,
    InternalError,
    InvalidTokenError,
    NotFoundError,
)
from storefront.core.security import (
    TokenClaims,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    hash_password,
    verify_access_token,
    verify_password,
)
from storefront.models import ROLE_CUSTOMER, User
from storefront.schemas.auth import LoginRequest, SignupRequest, TokenResponse
from storefront.services.refresh_tokens import RefreshTokenRegistry
from storefront.services.users import (
    EMAIL_EXISTS_MESSAGE,
    get_user_by_email,
    get_user_by_id,
    insert_user,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
INVALID_REFRESH_TOKEN_MESSAGE = "Refresh Token Invalid"
USER_NOT_FOUND_MESSAGE = "User not found"


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    """Hash checked when the email is unknown, so both login failures cost one bcrypt verify."""
    return hash_password(secrets.token_urlsafe(16))


@contextmanager
def _store_guard(operation: str, session: Session | None = None) -> Iterator[None]:
    try:
        yield
    except (SQLAlchemyError, jwt.PyJWTError) as e:
        if session is not None:
            session.rollback()
        logger.exception("Auth %s failed: %s", operation, type(e).__name__)
        raise InternalError() from e


def claims_for(user: User) -> TokenClaims:
    """The fixed claim set for a user. Nothing else from the row is signed."""
    return TokenClaims(id=user.id, username=user.username, email=user.email, role=user.role)


def issue_refresh_token(registry: RefreshTokenRegistry, claims: TokenClaims) -> str:
    """Mint a refresh token and register it so it can be redeemed once."""
    token, expires_at = create_refresh_token(claims)
    registry.add(token, claims.id, expires_at)
    return token


def _issue_token_pair(registry: RefreshTokenRegistry, user: User) -> TokenResponse:
    claims = claims_for(user)
    return TokenResponse(
        access_token=create_access_token(claims),
        refresh_token=issue_refresh_token(registry, claims),
    )


def signup(
    session: Session,
    registry: RefreshTokenRegistry,
    request: SignupRequest,
) -> TokenResponse:
    """
    Create a customer account and return a token pair.

    The existence check only gives a friendlier error; the unique index on
    users.email rejects a concurrent duplicate with the same ConflictError.
    """
    with _store_guard("signup", session):
        if get_user_by_email(session, request.email) is not None:
            raise ConflictError(EMAIL_EXISTS_MESSAGE)
        user = insert_user(
            session,
            email=request.email,
            username=request.username,
            password=request.password,
            role=ROLE_CUSTOMER,
        )
        tokens = _issue_token_pair(registry, user)
        user_id, role = user.id, user.role
        session.commit()
    logger.info("User signed up", extra={"user_id": user_id, "role": role})
    return tokens


def login(
    session: Session,
    registry: RefreshTokenRegistry,
    request: LoginRequest,
) -> TokenResponse:
    """
    Check credentials and return a token pair.

    Unknown email and wrong password raise the same AuthenticationError.
    """
    with _store_guard("login", session):
        user = get_user_by_email(session, request.email)
        if user is None:
            verify_password(request.password, _dummy_password_hash())
            logger.info("Login rejected", extra={"reason": "invalid_credentials"})
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)
        if not verify_password(request.password, user.password_hash):
            logger.info("Login rejected", extra={"reason": "invalid_credentials"})
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)
        tokens = _issue_token_pair(registry, user)
        user_id = user.id
        session.commit()
    logger.info("User logged in", extra={"user_id": user_id})
    return tokens


def redeem_refresh_token(
    session: Session,
    registry: RefreshTokenRegistry,
    token: str,
) -> TokenResponse:
    """
    Rotate a refresh token: swap it for a new one and issue a new access/refresh pair.

    Claims are rebuilt from the current user row, so a role or username change
    shows up in the new tokens. The new pair is minted before the swap and the
    swap is committed once, so any failure leaves the presented token redeemable.
    """
    with _store_guard("refresh", session):
        claims = decode_refresh_token(token)
        user = get_user_by_id(session, claims.id)
        if user is None:
            # The token still gets consumed; a deleted account cannot rotate it later.
            if not registry.remove_if_present(token):
                raise InvalidTokenError(INVALID_REFRESH_TOKEN_MESSAGE, status_code=400)
            session.commit()
            raise NotFoundError(USER_NOT_FOUND_MESSAGE)
        new_claims = claims_for(user)
        new_refresh_token, expires_at = create_refresh_token(new_claims)
        access_token = create_access_token(new_claims)
        if not registry.rotate(token, new_refresh_token, user.id, expires_at):
            session.rollback()
            raise InvalidTokenError(INVALID_REFRESH_TOKEN_MESSAGE, status_code=400)
        session.commit()
    logger.info("Refresh token rotated", extra={"user_id": new_claims.id})
    return TokenResponse(access_token=access_token, refresh_token=new_refresh_token)


def logout(session: Session, registry: RefreshTokenRegistry, token: str) -> bool:
    """Revoke a refresh token. Returns False if it was already gone."""
    with _store_guard("logout", session):
        removed = registry.remove_if_present(token)
        session.commit()
    return removed


def resolve_access_token(session: Session, token: str) -> User:
    """
    Verify an access token and load the user it names.

    A structurally valid token for a user that no longer exists is rejected.
    """
    claims = verify_access_token(token)
    with _store_guard("token resolution", session):
        user = get_user_by_id(session, claims.id)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND_MESSAGE)
    return user

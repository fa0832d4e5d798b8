"""Password hashing and JWT creation/verification for authentication."""

import hashlib
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

import bcrypt
import jwt
import pydantic
from pydantic import BaseModel, ConfigDict

from storefront.core.config import settings
from storefront.core.errors import InvalidTokenError

# bcrypt only looks at the first 72 bytes of the password.
BCRYPT_MAX_BYTES = 72

Role = Literal["admin", "customer"]


class TokenClaims(BaseModel):
    """
    The fixed claim set signed into every access and refresh token.

    Registered claims (exp, iat, jti) are ignored on parse.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    username: str
    email: str
    role: Role


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def _encode(
    claims: TokenClaims,
    secret: str,
    lifetime: timedelta,
    extra: dict[str, Any] | None = None,
) -> tuple[str, datetime]:
    now = datetime.now(UTC).replace(microsecond=0)
    expire = now + lifetime
    payload: dict[str, Any] = claims.model_dump()
    payload.update({"exp": expire, "iat": now})
    if extra:
        payload.update(extra)
    token = jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)
    return token, expire


def create_access_token(claims: TokenClaims, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token carrying the user claims plus exp and iat."""
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token, _ = _encode(claims, settings.ACCESS_TOKEN_SECRET.get_secret_value(), lifetime)
    return token


def create_refresh_token(
    claims: TokenClaims, expires_delta: timedelta | None = None
) -> tuple[str, datetime]:
    """
    Create a JWT refresh token and return it with its expiry.

    A random jti keeps tokens minted in the same second for the same user distinct.
    The token is not valid until it is added to a refresh-token registry.
    """
    lifetime = expires_delta or timedelta(minutes=settings.REFRESH_TOKEN_EXPIRE_MINUTES)
    return _encode(
        claims,
        settings.REFRESH_TOKEN_SECRET.get_secret_value(),
        lifetime,
        extra={"jti": uuid.uuid4().hex},
    )


def _claims_from_payload(payload: dict[str, Any]) -> TokenClaims:
    try:
        return TokenClaims.model_validate(payload)
    except pydantic.ValidationError as e:
        raise InvalidTokenError("Invalid token payload") from e


def verify_access_token(token: str) -> TokenClaims:
    """
    Check signature and expiry of an access token and return its claims.

    Stateless: no registry or database lookup. Raises InvalidTokenError.
    """
    try:
        payload = jwt.decode(
            token,
            settings.ACCESS_TOKEN_SECRET.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp"]},
        )
    except jwt.PyJWTError as e:
        raise InvalidTokenError("Invalid or expired token") from e
    return _claims_from_payload(payload)


def decode_refresh_token(token: str) -> TokenClaims:
    """
    Check the signature of a refresh token and return its claims.

    Expiry is not checked here: registry membership decides validity.
    """
    try:
        payload = jwt.decode(
            token,
            settings.REFRESH_TOKEN_SECRET.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": False},
        )
    except jwt.PyJWTError as e:
        raise InvalidTokenError("Refresh Token Invalid", status_code=400) from e
    return _claims_from_payload(payload)


def token_fingerprint(token: str) -> str:
    """SHA-256 hex digest used as the registry key for a refresh token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

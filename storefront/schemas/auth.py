"""Request/response schemas for auth endpoints."""

import re

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from storefront.core.security import Role, TokenClaims

# Syntactic check only: one "@", no whitespace, a dot in the domain.
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

USERNAME_MAX_LEN = 255
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128


def _check_email(v: str) -> str:
    if len(v) > 320 or not EMAIL_PATTERN.match(v):
        raise ValueError("Invalid email address")
    return v


class SignupRequest(BaseModel):
    """New account: email, password (+ confirmation) and display name."""

    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(..., description="Email address (unique)")
    password: str = Field(..., description="Password, 6-128 characters")
    confirm_password: str = Field(..., alias="confirmPassword", description="Must equal password")
    username: str = Field(..., description="Display name")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < PASSWORD_MIN_LEN:
            raise ValueError(f"Password must be at least {PASSWORD_MIN_LEN} characters long")
        if len(v) > PASSWORD_MAX_LEN:
            raise ValueError(f"Password must be at most {PASSWORD_MAX_LEN} characters long")
        return v

    @field_validator("confirm_password")
    @classmethod
    def validate_confirm_password(cls, v: str, info: ValidationInfo) -> str:
        # password is absent from info.data when it failed its own validation
        password = info.data.get("password")
        if password is not None and v != password:
            raise ValueError("Passwords do not match")
        return v

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Username is required")
        if len(v) > USERNAME_MAX_LEN:
            raise ValueError(f"Username must be at most {USERNAME_MAX_LEN} characters long")
        return v


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: str = Field(..., description="Email address")
    password: str = Field(..., description="Password")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class RefreshTokenRequest(BaseModel):
    """Body for /refreshToken and /logout."""

    token: str = Field(..., min_length=1, description="Refresh token")


class TokenResponse(BaseModel):
    """Access/refresh token pair returned by signup, login and refresh."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken", description="JWT access token")
    refresh_token: str = Field(..., alias="refreshToken", description="JWT refresh token")
    token_type: str = Field(default="bearer", alias="tokenType", description="Token type")


class CurrentUser(BaseModel):
    """Authenticated user resolved by the auth dependency."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: Role


class UsersListResponse(BaseModel):
    """Response for the admin user listing."""

    users: list[CurrentUser]

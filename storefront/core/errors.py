"""Error taxonomy for the auth core.

Each error carries a client-safe message and the HTTP status it maps to. The
exception handlers in ``storefront.main`` render them as
``{"errors": [{"msg": ...}]}``.
"""

from typing import Any


class StorefrontError(Exception):
    """Base class for errors that are reported to the client."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        errors: list[dict[str, Any]] | None = None,
        status_code: int | None = None,
    ) -> None:
        self.message = message
        self.errors = errors if errors is not None else [{"msg": message}]
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(StorefrontError):
    """Malformed input; ``errors`` holds one entry per offending field."""

    status_code = 400


class ConflictError(StorefrontError):
    """Unique constraint violated (duplicate email)."""

    status_code = 400


class AuthenticationError(StorefrontError):
    """Bad credentials. The message never says which check failed."""

    status_code = 401


class InvalidTokenError(StorefrontError):
    """Bad, expired or unknown token."""

    status_code = 401


class NotFoundError(StorefrontError):
    """The identity in a token no longer resolves to a user."""

    status_code = 401


class PermissionDeniedError(StorefrontError):
    """Authenticated, but the role does not allow the operation."""

    status_code = 403


class InternalError(StorefrontError):
    """Store or signing failure. Details are logged, never returned."""

    status_code = 500

    def __init__(self, message: str = "Server error") -> None:
        super().__init__(message)

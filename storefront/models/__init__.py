"""SQLAlchemy ORM models."""

from storefront.models.base import Base
from storefront.models.refresh_token import RefreshToken
from storefront.models.user import ROLE_ADMIN, ROLE_CUSTOMER, User

__all__ = ["Base", "ROLE_ADMIN", "ROLE_CUSTOMER", "RefreshToken", "User"]

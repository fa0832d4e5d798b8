"""ORM model for shop accounts (credential store)."""

from sqlalchemy import Column, DateTime, Integer, String, func

from storefront.models.base import Base

ROLE_ADMIN = "admin"
ROLE_CUSTOMER = "customer"


class User(Base):
    """
    Shop account used for JWT authentication and role-based access.

    email is unique at the storage layer; that index, not the pre-insert
    lookup in signup, is what prevents duplicate accounts.
    role: 'admin' or 'customer'
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(320), nullable=False, unique=True, index=True)
    username = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default=ROLE_CUSTOMER)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role!r}>"

"""Credential store: user lookups and inserts backed by the users table."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.core.errors import ConflictError, NotFoundError
from storefront.core.security import hash_password
from storefront.models import ROLE_CUSTOMER, User

logger = logging.getLogger(__name__)

EMAIL_EXISTS_MESSAGE = "Email already exists"


def get_user_by_email(session: Session, email: str) -> User | None:
    return session.query(User).filter(User.email == email).first()


def get_user_by_id(session: Session, user_id: int) -> User | None:
    return session.query(User).filter(User.id == user_id).first()


def list_users(session: Session) -> list[User]:
    return session.query(User).order_by(User.id).all()


def insert_user(
    session: Session,
    email: str,
    username: str,
    password: str,
    role: str = ROLE_CUSTOMER,
) -> User:
    """
    Hash the password and stage a new user; return it with its generated id.

    Only flushes; the caller commits. Raises ConflictError when the unique
    email index rejects the row, which covers concurrent signups that both
    passed an earlier existence check.
    """
    user = User(
        email=email,
        username=username,
        password_hash=hash_password(password),
        role=role,
    )
    session.add(user)
    try:
        session.flush()
    except IntegrityError as e:
        session.rollback()
        logger.info("Insert rejected by unique constraint", extra={"reason": "duplicate_email"})
        raise ConflictError(EMAIL_EXISTS_MESSAGE) from e
    return user


def set_user_role(session: Session, email: str, role: str) -> User:
    """Out-of-band role assignment (provisioning only; no HTTP route uses this)."""
    user = get_user_by_email(session, email)
    if user is None:
        raise NotFoundError(f"No user with email {email!r}")
    user.role = role
    session.commit()
    session.refresh(user)
    return user

"""ORM model for currently valid refresh tokens."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func

from storefront.models.base import Base


class RefreshToken(Base):
    """
    One row per redeemable refresh token, keyed by the SHA-256 of the token.

    A token is valid while its row exists and expires_at is in the future.
    Redemption deletes the row; the raw token is never stored.
    """

    __tablename__ = "refresh_tokens"

    token_hash = Column(String(64), primary_key=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

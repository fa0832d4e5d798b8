"""
Refresh-token registry: the set of refresh tokens that may still be redeemed.

Membership is the only thing that makes a refresh token valid. Redemption goes
through remove_if_present (or rotate), which must succeed for exactly one caller
when the same token is redeemed concurrently.

The SQL registry only flushes. The caller owns the transaction and commits once,
so a rotation that fails halfway rolls back and leaves the old token redeemable.
"""

import logging
import threading
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol

from sqlalchemy.orm import Session

from storefront.core.security import token_fingerprint
from storefront.models import RefreshToken

if TYPE_CHECKING:
    from storefront.core.config import Settings

logger = logging.getLogger(__name__)


class RefreshTokenRegistry(Protocol):
    def add(self, token: str, user_id: int, expires_at: datetime) -> None: ...

    def remove_if_present(self, token: str) -> bool: ...

    def rotate(self, old_token: str, new_token: str, user_id: int, expires_at: datetime) -> bool: ...

    def purge_expired(self) -> int: ...


class InMemoryRefreshTokenRegistry:
    """
    Process-wide registry held in a dict and guarded by a lock.

    Lost on restart and not shared between workers; use the SQL registry for
    anything beyond a single process.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._expiry_by_hash: dict[str, datetime] = {}

    def add(self, token: str, user_id: int, expires_at: datetime) -> None:
        with self._lock:
            self._expiry_by_hash[token_fingerprint(token)] = expires_at

    def remove_if_present(self, token: str) -> bool:
        key = token_fingerprint(token)
        with self._lock:
            expires_at = self._expiry_by_hash.pop(key, None)
        return expires_at is not None and expires_at > datetime.now(UTC)

    def rotate(self, old_token: str, new_token: str, user_id: int, expires_at: datetime) -> bool:
        """Swap old_token for new_token in one step; False if old_token was not live."""
        old_key = token_fingerprint(old_token)
        with self._lock:
            old_expiry = self._expiry_by_hash.pop(old_key, None)
            if old_expiry is None or old_expiry <= datetime.now(UTC):
                return False
            self._expiry_by_hash[token_fingerprint(new_token)] = expires_at
        return True

    def purge_expired(self) -> int:
        now = datetime.now(UTC)
        with self._lock:
            expired = [k for k, exp in self._expiry_by_hash.items() if exp <= now]
            for key in expired:
                del self._expiry_by_hash[key]
        return len(expired)

    def __contains__(self, token: str) -> bool:
        with self._lock:
            expires_at = self._expiry_by_hash.get(token_fingerprint(token))
        return expires_at is not None and expires_at > datetime.now(UTC)

    def __len__(self) -> int:
        with self._lock:
            return len(self._expiry_by_hash)


class SqlRefreshTokenRegistry:
    """Registry backed by the refresh_tokens table; shared by every worker."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, token: str, user_id: int, expires_at: datetime) -> None:
        self.session.add(
            RefreshToken(
                token_hash=token_fingerprint(token),
                user_id=user_id,
                expires_at=expires_at,
            )
        )
        self.session.flush()

    def remove_if_present(self, token: str) -> bool:
        # One DELETE statement: the database decides which concurrent caller wins.
        deleted = (
            self.session.query(RefreshToken)
            .filter(
                RefreshToken.token_hash == token_fingerprint(token),
                RefreshToken.expires_at > datetime.now(UTC),
            )
            .delete(synchronize_session=False)
        )
        return deleted == 1

    def rotate(self, old_token: str, new_token: str, user_id: int, expires_at: datetime) -> bool:
        """Delete old_token and insert new_token in the caller's transaction."""
        if not self.remove_if_present(old_token):
            return False
        self.add(new_token, user_id, expires_at)
        return True

    def purge_expired(self) -> int:
        deleted = (
            self.session.query(RefreshToken)
            .filter(RefreshToken.expires_at <= datetime.now(UTC))
            .delete(synchronize_session=False)
        )
        if deleted > 0:
            logger.info("Purged expired refresh tokens: deleted=%s", deleted)
        return deleted

    def __contains__(self, token: str) -> bool:
        row = (
            self.session.query(RefreshToken.token_hash)
            .filter(
                RefreshToken.token_hash == token_fingerprint(token),
                RefreshToken.expires_at > datetime.now(UTC),
            )
            .first()
        )
        return row is not None


_memory_registry = InMemoryRefreshTokenRegistry()


def registry_for(session: Session, settings: "Settings") -> RefreshTokenRegistry:
    """Return the registry selected by REFRESH_TOKEN_STORE."""
    if settings.REFRESH_TOKEN_STORE == "memory":
        return _memory_registry
    return SqlRefreshTokenRegistry(session)

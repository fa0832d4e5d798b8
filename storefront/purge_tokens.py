"""
CLI entrypoint for purging expired refresh tokens. Run from cron, e.g.:

  python -m storefront.purge_tokens

Or hourly: 0 * * * * cd /path/to/storefront && .venv/bin/python -m storefront.purge_tokens
"""

import logging
import sys

from storefront.core.config import get_settings
from storefront.core.database import SessionLocal
from storefront.services.refresh_tokens import SqlRefreshTokenRegistry

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Delete refresh-token rows whose expiry has passed."""
    settings = get_settings()
    if settings.REFRESH_TOKEN_STORE != "database":
        logger.info("REFRESH_TOKEN_STORE=%s; nothing to purge.", settings.REFRESH_TOKEN_STORE)
        return 0
    db = SessionLocal()
    try:
        deleted = SqlRefreshTokenRegistry(db).purge_expired()
        db.commit()
        logger.info("Purge completed: refresh_tokens_deleted=%s", deleted)
        return 0
    except Exception as e:
        logger.exception("Purge job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())

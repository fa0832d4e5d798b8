"""Engine and per-request session for the credential store and refresh-token registry."""

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from storefront.core.config import settings


def _connect_args(url: str) -> dict[str, Any]:
    # FastAPI serves sync routes from a threadpool; sqlite connections must allow that.
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=settings.DEBUG,
    connect_args=_connect_args(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields a DB session and closes it when done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connected(db: Session) -> bool:
    """Health probe: True if a trivial query succeeds."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception:
        return False

"""Shared helpers: throwaway SQLite databases with the full schema."""

import os
import tempfile

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.models import Base


def make_memory_engine() -> Engine:
    """Single shared in-memory connection; fine for sequential access from any thread."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


def make_file_engine(directory: str) -> Engine:
    """
    File-backed database so concurrent sessions get their own connections.

    Transactions start with BEGIN IMMEDIATE: writers queue on the busy timeout
    instead of failing on a SHARED -> RESERVED lock upgrade.
    """
    path = os.path.join(directory, "test.db")
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(engine)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def temp_dir() -> tempfile.TemporaryDirectory:
    return tempfile.TemporaryDirectory(ignore_cleanup_errors=True)

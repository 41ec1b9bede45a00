"""SQLAlchemy engine, session factory, and the injectable storage handle.

``Database`` owns one engine and one session factory. It is constructed by
the process bootstrap (``create_app``) and attached to the application
state; request handlers receive sessions through the ``get_db``
dependency. SQLite connections enable WAL mode and foreign keys via event
listeners, and optionally open every transaction with ``BEGIN IMMEDIATE``
so read-recompute-write sequences never interleave between writers.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from draftroom.errors import ConflictError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


class Database:
    """Storage handle: engine + session factory for one database URL."""

    def __init__(self, url: str, echo: bool = False, serialize_writes: bool = True):
        self.url = url
        self.is_sqlite = url.startswith("sqlite")
        self.engine = self._create_engine(url, echo, serialize_writes)
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def _create_engine(self, url: str, echo: bool, serialize_writes: bool) -> Engine:
        connect_args = {}
        kwargs = {}
        if self.is_sqlite:
            connect_args["check_same_thread"] = False
            if _is_memory_url(url):
                # One shared connection, otherwise every session sees an empty database
                kwargs["poolclass"] = StaticPool
        engine = create_engine(url, connect_args=connect_args, echo=echo, **kwargs)

        if self.is_sqlite:
            @event.listens_for(engine, "connect")
            def _set_sqlite_pragma(dbapi_conn, connection_record):
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA journal_mode=WAL;")
                cursor.execute("PRAGMA foreign_keys=ON;")
                cursor.execute("PRAGMA encoding='UTF-8';")
                cursor.close()
                # Ensure Python sqlite3 returns str (UTF-8) for TEXT columns
                dbapi_conn.text_factory = str
                if serialize_writes:
                    # Hand transaction control to the "begin" listener below
                    dbapi_conn.isolation_level = None

            if serialize_writes:
                @event.listens_for(engine, "begin")
                def _begin_immediate(conn):
                    conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    def session(self) -> Session:
        return self._session_factory()

    def create_tables(self) -> None:
        """Create all tables from ORM metadata."""
        # Import for side effects: registers every model on Base.metadata
        from draftroom import models  # noqa: F401
        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def ensure_storage_dir(self) -> None:
        """Create the parent directory of a file-backed SQLite database."""
        if self.is_sqlite and not _is_memory_url(self.url):
            raw = self.url.split("///", 1)[-1]
            if raw:
                Path(raw).parent.mkdir(parents=True, exist_ok=True)

    def dispose(self) -> None:
        self.engine.dispose()


def _is_memory_url(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or ":memory:" in url


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Run a block as one transaction: commit on success, roll back on error.

    Uniqueness violations surface as ``ConflictError`` so the caller can
    retry; every other exception propagates unchanged after the rollback.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Transaction rolled back on integrity error: %s", exc.orig)
        raise ConflictError() from exc
    except Exception:
        db.rollback()
        raise


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency that yields a database session."""
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    finally:
        db.close()

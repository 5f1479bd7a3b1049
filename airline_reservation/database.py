"""Database helpers for the airline reservation system."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Tuple

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import Settings
from .models import Base

logger = logging.getLogger(__name__)

DEFAULT_DB_URL = "sqlite+pysqlite:///airline.db"


def _serialize_sqlite_writers(engine: Engine) -> None:
    """Make every SQLite transaction take the write lock up front.

    pysqlite defers ``BEGIN`` until the first write, which lets two sessions
    read the same seat map before either writes. Emitting ``BEGIN IMMEDIATE``
    ourselves serialises read-decide-write transactions.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # pragma: no cover - driver hook
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):  # pragma: no cover - driver hook
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_session_factory(
    db_url: str = DEFAULT_DB_URL,
    *,
    echo: bool = False,
    busy_timeout: float = 30.0,
    connect_args: Dict[str, object] | None = None,
) -> Tuple[Engine, sessionmaker[Session]]:
    """Return an engine/session factory pair configured for SQLite by default."""

    is_sqlite = db_url.startswith("sqlite")
    if is_sqlite:
        final_connect_args: Dict[str, object] = {"check_same_thread": False, "timeout": busy_timeout}
        if connect_args:
            final_connect_args.update(connect_args)
    else:
        final_connect_args = connect_args or {}

    if db_url.endswith(":memory:"):
        engine = create_engine(
            db_url,
            echo=echo,
            connect_args=final_connect_args,
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(
            db_url,
            echo=echo,
            connect_args=final_connect_args,
        )
    if is_sqlite:
        _serialize_sqlite_writers(engine)
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    return engine, session_factory


def init_db(
    db_url: Optional[str] = None,
    *,
    echo: bool = False,
    settings: Optional[Settings] = None,
) -> sessionmaker[Session]:
    """Create all tables and return a session factory."""

    if settings is not None:
        db_url = db_url or settings.db_url
        echo = echo or settings.db_echo
        busy_timeout = settings.db_busy_timeout
    else:
        busy_timeout = Settings.db_busy_timeout
    engine, session_factory = create_session_factory(
        db_url or DEFAULT_DB_URL, echo=echo, busy_timeout=busy_timeout
    )
    Base.metadata.create_all(engine)
    logger.debug("Initialised schema on %s", engine.url)
    return session_factory


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

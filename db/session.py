"""
db/session.py

Engine and session factory for the policy import store.

The engine is built lazily on first use so importing models or repositories
never opens a connection. PostgreSQL gets a pooled engine with an optional
per-statement timeout for long bulk inserts; SQLite (local runs) gets
foreign-key enforcement switched on per connection.
"""

from __future__ import annotations

import os
from collections.abc import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import resolve_database_url


def _env_flag(name: str, default: bool = False) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _connection_record) -> None:  # type: ignore[no-untyped-def]
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
        finally:
            cursor.close()


def build_engine(database_url: str | None = None) -> Engine:
    """
    Create an engine for ``database_url`` (or the configured URL).

    Only PostgreSQL and SQLite URLs are accepted.
    """

    url = database_url or resolve_database_url()
    echo = _env_flag("SQL_ECHO")

    if url.startswith("sqlite"):
        engine = create_engine(url, echo=echo, connect_args={"check_same_thread": False})
        _enable_sqlite_foreign_keys(engine)
        return engine

    if not url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL and SQLite database URLs are supported.")

    connect_args: dict[str, str] = {}
    statement_timeout_ms = _env_int("DB_STATEMENT_TIMEOUT_MS", 0)
    if statement_timeout_ms > 0:
        connect_args["options"] = f"-c statement_timeout={statement_timeout_ms}"

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_recycle=_env_int("DB_POOL_RECYCLE", 1800),
        pool_size=_env_int("DB_POOL_SIZE", 5),
        max_overflow=_env_int("DB_MAX_OVERFLOW", 10),
        connect_args=connect_args,
    )


_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def SessionLocal() -> Session:
    """
    Open a new session on the shared engine.

    Objects stay readable after commit.
    """

    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            class_=Session,
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory()


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency yielding one session per request.

    Work left uncommitted when the request fails is rolled back.
    """

    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Generator
from typing import Any

from flask import Flask, current_app, g
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def _engine_options(db_url: str) -> dict[str, Any]:
    opts: dict[str, Any] = {"future": True, "pool_pre_ping": True}
    if db_url.startswith("postgres"):
        opts.update(pool_recycle=1800, pool_size=5, max_overflow=10, pool_timeout=30)
    return opts


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    # SQLite leaves foreign keys off unless asked per connection.
    @event.listens_for(engine, "connect")
    def _fk_pragma(dbapi_connection, connection_record):  # type: ignore[no-redef]
        cur = dbapi_connection.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()


def init_db(app: Flask) -> None:
    db_url = app.config["DATABASE_URL"]
    engine = create_engine(db_url, **_engine_options(db_url))
    if engine.dialect.name == "sqlite":
        _enable_sqlite_foreign_keys(engine)

    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        expire_on_commit=False,
        future=True,
    )
    app.logger.debug("Database engine ready (dialect=%s)", engine.dialect.name)


def db_session(app: Flask | None = None) -> Session:
    """
    Request-scoped session, created on first use and closed at teardown.
    """
    s: Session | None = getattr(g, "db_session", None)
    if s is None:
        sm = (app or current_app).extensions["sqlalchemy_sessionmaker"]
        s = g.db_session = sm()
    return s


def teardown_db_session(_exc: BaseException | None) -> None:
    s: Session | None = g.pop("db_session", None)
    if s is not None:
        s.close()


@contextmanager
def atomic(s: Session) -> Generator[Session, None, None]:
    """
    One unit of work on an existing session: commit on success, roll back everything on error.
    """
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """
    Non-request helper for scripts and tests: a fresh session run as one unit of work.
    """
    s: Session = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        with atomic(s):
            yield s
    finally:
        s.close()

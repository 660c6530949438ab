from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import get_settings


def build_engine(url: str) -> Engine:
    """
    PostgreSQL is the production store (row locks via SELECT ... FOR UPDATE).

    SQLite is accepted for local runs and tests: FOR UPDATE compiles to
    nothing there, and pysqlite's implicit BEGIN handling is replaced so
    that SAVEPOINTs (used by the case history writer) behave.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True, future=True)

    kwargs = {"connect_args": {"check_same_thread": False}, "future": True}
    if ":memory:" in url or url.rstrip("/").endswith("sqlite:"):
        kwargs["poolclass"] = StaticPool
    eng = create_engine(url, **kwargs)

    @event.listens_for(eng, "connect")
    def _disable_pysqlite_begin(dbapi_connection, _record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return eng


def make_sessionmaker(eng: Engine) -> sessionmaker:
    # One session == one unit of work. Services commit or roll back
    # explicitly; row locks live exactly as long as that transaction.
    return sessionmaker(
        bind=eng,
        autoflush=False,
        autocommit=False,
        future=True,
    )


settings = get_settings()

engine = build_engine(settings.database_url)  # fail fast if missing

SessionLocal = make_sessionmaker(engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

"""
Database configuration and session management.
SQLAlchemy 2.0 engine, session factory and FastAPI dependency.
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, Session

from shared.config.settings import DATABASE_URL, settings


def _engine_options(url: str) -> dict:
    """Pool and timeout options; SQLite (local runs, CLI) takes none of them."""
    if make_url(url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": settings.database_pool_size,
        "max_overflow": 10,
        "pool_timeout": 30,  # Wait max 30s for a connection from the pool
        "pool_recycle": 1800,
        "connect_args": {"connect_timeout": settings.database_connect_timeout},
    }


def enable_sqlite_transactions(sqlite_engine: Engine) -> Engine:
    """
    Let SQLAlchemy own BEGIN on pysqlite connections.

    Without this the driver defers BEGIN until the first write, so a
    SAVEPOINT opened after only reads becomes the outer transaction and
    RELEASE commits it. A connection already inside a transaction (one
    shared through StaticPool) joins it instead of beginning again.
    """

    @event.listens_for(sqlite_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine, "begin")
    def _emit_begin(conn):
        if not conn.connection.dbapi_connection.in_transaction:
            conn.exec_driver_sql("BEGIN")

    return sqlite_engine


engine = create_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))

if engine.dialect.name == "sqlite":
    enable_sqlite_transactions(engine)

# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @router.get("/items")
        def get_items(db: Session = Depends(get_db)):
            ...

    The session is closed after the request completes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of FastAPI
    (CLI commands, websocket grant reloads).
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db: Session) -> None:
    """
    Commit with automatic rollback on failure.

    Raises the original exception after rolling back.
    """
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


def get_session_factory() -> sessionmaker:
    """
    FastAPI dependency returning the session factory.

    Long-lived consumers (WebSocket handlers) open short sessions per
    operation instead of holding one for the connection's lifetime.
    """
    return SessionLocal

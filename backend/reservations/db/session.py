import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from reservations.core import config
from reservations.core.db import register_query_timing

logger = logging.getLogger(__name__)

# Create Base class for models
Base = declarative_base()

# Internal lazy globals
_engine = None
_SessionLocal = None
_database_url = None


def _enable_sqlite_immediate_transactions(engine: Engine) -> None:
    """Make every SQLite transaction take the write lock up front.

    pysqlite defers BEGIN until the first write, so two connections can both
    read and then deadlock promoting to a write lock. BEGIN IMMEDIATE makes
    the second writer wait (bounded by the connect timeout) instead.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str) -> Engine:
    """Create an engine configured for the backend named in ``database_url``."""
    url = make_url(database_url)
    backend = url.get_backend_name()

    if backend in ("postgresql", "postgres"):
        engine = create_engine(
            database_url,
            pool_size=20,
            max_overflow=40,
            pool_pre_ping=True,  # Detects and refreshes stale connections
            pool_recycle=3600,
            connect_args={
                "application_name": "reservations",  # Visible in pg_stat_activity
                "connect_timeout": 10,
            },
            echo=False,
        )
    elif backend == "sqlite" and url.database in (None, "", ":memory:"):
        # Use a single shared in-memory database across the process
        # so DDL persists across connections.
        engine = create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    elif backend == "sqlite":
        engine = create_engine(
            database_url,
            echo=False,
            connect_args={
                "check_same_thread": False,
                "timeout": config.get_lock_timeout_seconds() * 2,
            },
        )
        _enable_sqlite_immediate_transactions(engine)
    else:
        engine = create_engine(database_url, echo=False, pool_pre_ping=True)

    register_query_timing(engine)
    logger.debug(
        "SQLAlchemy engine created",
        extra={"context": {"dialect": engine.dialect.name, "url": repr(engine.url)}},
    )
    return engine


def get_engine():
    """Return a cached SQLAlchemy engine, creating it from DATABASE_URL on
    first call. This allows tests to set DATABASE_URL before the engine is
    constructed."""
    global _engine, _SessionLocal, _database_url
    database_url = config.get_database_url()
    # If engine not created yet or DATABASE_URL changed, (re)create engine
    if _engine is None or _database_url != database_url:
        if _engine is not None:
            _engine.dispose()
        _engine = build_engine(database_url)
        _SessionLocal = None
        _database_url = database_url
    return _engine


def get_sessionmaker():
    """Return a cached sessionmaker bound to the lazy engine."""
    global _SessionLocal
    engine = get_engine()
    if _SessionLocal is None:
        _SessionLocal = make_sessionmaker(engine)
    return _SessionLocal


def make_sessionmaker(engine: Engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine: Engine = None) -> None:
    """Create all tables in the database (the lazy engine by default)."""
    # Ensure models are imported so Base.metadata is populated
    from reservations.db import base  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())


def drop_tables(engine: Engine = None) -> None:
    from reservations.db import base  # noqa: F401

    Base.metadata.drop_all(bind=engine or get_engine())

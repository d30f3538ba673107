from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from app.core.config import settings
import os
import logging

logger = logging.getLogger(__name__)

if os.getenv("PYTEST_RUN") == "1":
    SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
else:
    SQLALCHEMY_DATABASE_URL = settings.SQLALCHEMY_DATABASE_URL


def build_engine(url: str, **kwargs) -> Engine:
    """Create an engine with the connection settings the lifecycle engine relies on.

    Postgres gets row locks from ``SELECT ... FOR UPDATE``. SQLite has no row
    locks, so every transaction is opened with ``BEGIN IMMEDIATE`` which takes
    the database write lock up front and serializes concurrent writers.
    """
    is_sqlite = url.startswith("sqlite")
    pool_kwargs = {
        # Avoid stale idle connections causing first-hit failures after inactivity
        "pool_pre_ping": True,
    }
    if is_sqlite:
        connect_args = {"check_same_thread": False, "timeout": 15}
    else:
        connect_args = {}
        pool_kwargs.update({
            "pool_size": int(os.getenv("DB_POOL_SIZE") or 6),
            "max_overflow": int(os.getenv("DB_MAX_OVERFLOW") or 6),
            "pool_recycle": int(os.getenv("DB_POOL_RECYCLE") or 300),
            "pool_timeout": float(os.getenv("DB_POOL_TIMEOUT") or 5.0),
        })
    pool_kwargs.update(kwargs)

    engine = create_engine(url, connect_args=connect_args, **pool_kwargs)

    if is_sqlite:
        in_memory = ":memory:" in url

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore[no-redef]
            # Hand transaction control to SQLAlchemy so the "begin" hook below
            # decides the locking mode.
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            if not in_memory:
                # WAL improves read concurrency; NORMAL reduces fsync pressure.
                cursor.execute("PRAGMA journal_mode=WAL;")
                cursor.execute("PRAGMA synchronous=NORMAL;")
            # Back off rather than instantly failing on transient locks (ms)
            cursor.execute("PRAGMA busy_timeout=60000;")
            cursor.execute("PRAGMA foreign_keys=ON;")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _begin_immediate(conn):  # type: ignore[no-redef]
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine = build_engine(SQLALCHEMY_DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


# Dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


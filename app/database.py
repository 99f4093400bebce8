import os
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import JSON, create_engine, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Session, declarative_base, sessionmaker

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)

Base = declarative_base()

# JSONB on Postgres, plain JSON elsewhere (sqlite test databases).
JSONType = JSON().with_variant(JSONB(), "postgresql")

DATABASE_URL = ""
engine = None
_configured_database_url = None


def _get_database_url() -> str:
    return os.getenv("DATABASE_URL", "postgresql://localhost/project_ledger")


def _engine_kwargs(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


def _emit_sqlite_begin(sqlite_engine) -> None:
    """pysqlite defers BEGIN until the first write; savepoints need the transaction open first."""

    @event.listens_for(sqlite_engine, "connect")
    def _driver_autocommit(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")


def configure_database() -> None:
    global DATABASE_URL, engine, _configured_database_url

    database_url = _get_database_url()

    if engine is not None and _configured_database_url == database_url:
        return

    engine = create_engine(database_url, **_engine_kwargs(database_url))
    if database_url.startswith("sqlite"):
        _emit_sqlite_begin(engine)
    SessionLocal.configure(bind=engine)
    DATABASE_URL = database_url
    _configured_database_url = database_url


def is_postgres(db) -> bool:
    bind = db.get_bind()
    return getattr(bind.dialect, "name", "") == "postgresql"


configure_database()


@contextmanager
def session_scope(db: Optional[Session] = None) -> Iterator[Session]:
    """
    If db is provided, yield it untouched. Caller owns the transaction.
    If db is None, open a session, commit on success, roll back on error and close.
    """
    if db is not None:
        yield db
        return

    configure_database()
    owned = SessionLocal()
    try:
        yield owned
        owned.commit()
    except Exception:
        owned.rollback()
        raise
    finally:
        owned.close()

"""Engine/session helpers for the SQL backend."""
from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from quizstore.core.config import RelationalConfig

Base = declarative_base()


def _lower(value):
    return value.lower() if isinstance(value, str) else value


def _trim(value):
    return value.strip() if isinstance(value, str) else value


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless enabled per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    # built-in lower()/trim() only handle ASCII letters and spaces; titles are
    # compared and ordered with the same folding as repositories.base.title_key
    dbapi_connection.create_function("lower", 1, _lower, deterministic=True)
    dbapi_connection.create_function("trim", 1, _trim, deterministic=True)


def build_engine(config: RelationalConfig) -> Engine:
    engine = create_engine(config.url(), future=True, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _configure_sqlite_connection)
    return engine


def make_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)

"""Database helpers (engine/session construction, ORM rows, schema)."""

from .session import Base, build_engine, make_sessionmaker

__all__ = ["Base", "build_engine", "make_sessionmaker"]

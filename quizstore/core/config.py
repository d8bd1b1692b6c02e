"""
Configuration helpers for the quiz store.

Settings are read once from environment variables. The backend a process runs
on is described by a closed set of configuration variants (``EmbeddedConfig``
or ``RelationalConfig``) so the store selector can dispatch on ``kind`` instead
of inspecting repository types.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Union
import os

from sqlalchemy.engine import URL


class BackendKind(str, Enum):
    EMBEDDED = "embedded"
    RELATIONAL = "relational"


class DatabaseEngine(str, Enum):
    SQLITE = "sqlite"
    MARIADB = "mariadb"


@dataclass(frozen=True)
class EmbeddedConfig:
    """JSON-file backend; the four collection files share ``path_prefix``."""

    path_prefix: str = "quiz_"

    @property
    def kind(self) -> BackendKind:
        return BackendKind.EMBEDDED


@dataclass(frozen=True)
class RelationalConfig:
    """SQL backend. ``sqlite_file`` is used by SQLite, the rest by MariaDB."""

    engine: DatabaseEngine = DatabaseEngine.SQLITE
    sqlite_file: str = "quiz_dev.db"
    host: str = "localhost"
    port: int = 3306
    database: str = "quiz"
    user: str = ""
    password: str = ""

    @property
    def kind(self) -> BackendKind:
        return BackendKind.RELATIONAL

    def url(self) -> URL:
        if self.engine is DatabaseEngine.SQLITE:
            return URL.create("sqlite", database=self.sqlite_file)
        return URL.create(
            "mysql+pymysql",
            username=self.user or None,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.database,
        )


BackendConfig = Union[EmbeddedConfig, RelationalConfig]


@dataclass(frozen=True)
class Environment:
    """Named configuration profile (development, production, ...)."""

    name: str
    backend: BackendKind
    engine: DatabaseEngine | None
    sqlite_file: str = ""
    display_name: str = ""


ENVIRONMENTS: dict[str, Environment] = {
    "development": Environment("development", BackendKind.RELATIONAL, DatabaseEngine.SQLITE, "quiz_dev.db", "Development"),
    "production": Environment("production", BackendKind.RELATIONAL, DatabaseEngine.MARIADB, "", "Production"),
    "testing": Environment("testing", BackendKind.RELATIONAL, DatabaseEngine.SQLITE, "quiz_test.db", "Testing"),
    "local": Environment("local", BackendKind.EMBEDDED, None, "", "Local files"),
}

_ENV_ALIASES = {"dev": "development", "prod": "production", "test": "testing"}


def get_environment(name: str | None) -> Environment:
    key = (name or "development").strip().lower()
    key = _ENV_ALIASES.get(key, key)
    try:
        return ENVIRONMENTS[key]
    except KeyError:
        raise ValueError(f"Unknown environment: {name!r}") from None


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    environment: str
    backend: str
    db_engine: str
    sqlite_file: str
    db_host: str
    db_port: int
    db_name: str
    db_user: str
    db_password: str
    data_prefix: str
    log_level: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str | None, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    return Settings(
        environment=(os.getenv("QUIZ_ENV") or "development").strip().lower(),
        backend=(os.getenv("QUIZ_BACKEND") or "").strip().lower(),
        db_engine=(os.getenv("QUIZ_DB_ENGINE") or "").strip().lower(),
        sqlite_file=os.getenv("QUIZ_SQLITE_FILE", ""),
        db_host=os.getenv("QUIZ_DB_HOST", "localhost"),
        db_port=_int(os.getenv("QUIZ_DB_PORT", "3306"), 3306),
        db_name=os.getenv("QUIZ_DB_NAME", "quiz"),
        db_user=os.getenv("QUIZ_DB_USER", ""),
        db_password=os.getenv("QUIZ_DB_PASSWORD", ""),
        data_prefix=os.getenv("QUIZ_DATA_PREFIX", "quiz_"),
        log_level=(os.getenv("QUIZ_LOG_LEVEL") or "INFO").upper(),
    )


def resolve_backend_config(settings: Settings | None = None) -> BackendConfig:
    """
    Turn settings into a backend variant.

    The named environment provides defaults; ``QUIZ_BACKEND`` and
    ``QUIZ_DB_ENGINE`` override them.
    """
    settings = settings or get_settings()
    env = get_environment(settings.environment)
    backend = BackendKind(settings.backend) if settings.backend else env.backend
    if backend is BackendKind.EMBEDDED:
        return EmbeddedConfig(path_prefix=settings.data_prefix)

    if settings.db_engine:
        engine = DatabaseEngine(settings.db_engine)
    else:
        engine = env.engine or DatabaseEngine.SQLITE
    return RelationalConfig(
        engine=engine,
        sqlite_file=settings.sqlite_file or env.sqlite_file or "quiz_dev.db",
        host=settings.db_host,
        port=settings.db_port,
        database=settings.db_name,
        user=settings.db_user,
        password=settings.db_password,
    )

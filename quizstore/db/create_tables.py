"""Creates the relational schema (idempotent) for the configured engine."""
from __future__ import annotations

import logging

from sqlalchemy.engine import Dialect, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import CreateTable

from quizstore.core.errors import SchemaError
from .session import Base
from . import models  # noqa: F401  # ensure models are imported for metadata

logger = logging.getLogger(__name__)


class SchemaManager:
    """
    Creates whichever of Topics, Questions, Answers and QuizResults do not
    exist yet; running it twice is harmless.

    Column types follow the engine dialect: SQLite gets ``INTEGER PRIMARY KEY
    AUTOINCREMENT`` keys, MariaDB ``BIGINT AUTO_INCREMENT`` keys with
    ``VARCHAR(255)`` titles.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def ensure_schema(self) -> None:
        try:
            Base.metadata.create_all(bind=self.engine, checkfirst=True)
        except SQLAlchemyError as exc:
            raise SchemaError(f"Failed to create tables on {self.engine.dialect.name}: {exc}") from exc
        logger.info("Schema ready on %s", self.engine.dialect.name)

    def ddl(self, dialect: Dialect | None = None) -> list[str]:
        """Render the CREATE TABLE statements for ``dialect`` (default: the engine's)."""
        dialect = dialect or self.engine.dialect
        return [str(CreateTable(table).compile(dialect=dialect)).strip() for table in Base.metadata.sorted_tables]


def create_all(engine: Engine | None = None) -> None:
    if engine is None:
        from quizstore.core.config import BackendKind, resolve_backend_config
        from .session import build_engine

        config = resolve_backend_config()
        if config.kind is not BackendKind.RELATIONAL:
            raise SchemaError("The configured backend is not relational; set QUIZ_BACKEND=relational.")
        engine = build_engine(config)
    SchemaManager(engine).ensure_schema()


if __name__ == "__main__":
    try:
        create_all()
        print("Database tables created successfully.")
    except SchemaError as exc:
        raise SystemExit(f"Failed to create tables: {exc}") from exc

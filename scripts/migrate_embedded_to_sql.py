#!/usr/bin/env python3
"""
One-off migration script: embedded JSON files -> relational database.

Usage:
  python scripts/migrate_embedded_to_sql.py --prefix quiz_ [--sqlite quiz_dev.db]

Without ``--sqlite`` the relational target comes from the QUIZ_* environment
variables (see quizstore.core.config).
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

# Make the quizstore package importable when run directly
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from quizstore.core.config import (  # noqa: E402
    BackendKind,
    DatabaseEngine,
    RelationalConfig,
    get_settings,
    resolve_backend_config,
)
from quizstore.core.errors import QuizStoreError  # noqa: E402
from quizstore.core.logging_config import configure_logging  # noqa: E402
from quizstore.repositories.json_storage import JsonRepository, collection_path  # noqa: E402
from quizstore.repositories.sql_repository import SQLRepository  # noqa: E402
from quizstore.repositories.transfer import copy_store  # noqa: E402

logger = logging.getLogger("scripts.migrate_embedded_to_sql")


def _target_config(sqlite_file: str | None) -> RelationalConfig:
    if sqlite_file:
        return RelationalConfig(engine=DatabaseEngine.SQLITE, sqlite_file=sqlite_file)
    settings = get_settings()
    config = resolve_backend_config(settings)
    if config.kind is not BackendKind.RELATIONAL:
        raise SystemExit("Configure a relational backend (QUIZ_BACKEND=relational) or pass --sqlite.")
    return config


def main() -> None:
    ap = argparse.ArgumentParser(description="Copy the embedded quiz store into a SQL database")
    ap.add_argument("--prefix", default=None, help="Path prefix of the JSON files (default: QUIZ_DATA_PREFIX)")
    ap.add_argument("--sqlite", help="Target SQLite file instead of the configured database")
    args = ap.parse_args()

    configure_logging(get_settings().log_level)
    prefix = args.prefix if args.prefix is not None else get_settings().data_prefix
    if not collection_path(prefix, "topics").exists():
        raise SystemExit(f"File not found: {collection_path(prefix, 'topics')}")

    source = JsonRepository(prefix)
    with SQLRepository.from_config(_target_config(args.sqlite)) as target:
        report = copy_store(source, target)

    print("Embedded data migrated successfully.")
    print(f"  Topics: {report.topics}")
    print(f"  Questions: {report.questions} (skipped {report.skipped_questions})")
    print(f"  Results: {report.results} (skipped {report.skipped_results}, of which {report.orphaned_results} orphaned)")


if __name__ == "__main__":
    try:
        main()
    except QuizStoreError as exc:  # pragma: no cover - CLI usage
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)

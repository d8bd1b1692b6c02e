"""
Store selection.

Builds the one repository a process works with. Whatever goes wrong while
opening the relational backend (driver missing, server unreachable, schema
creation failing, bad configuration) the caller still gets a working embedded
store; the failure is logged as a warning.
"""
from __future__ import annotations

from dataclasses import replace
import logging

from quizstore.core.config import (
    BackendConfig,
    BackendKind,
    EmbeddedConfig,
    Settings,
    get_settings,
    resolve_backend_config,
)
from quizstore.repositories.base import QuizRepository
from quizstore.repositories.json_storage import JsonRepository
from quizstore.repositories.sql_repository import SQLRepository

logger = logging.getLogger(__name__)


def build_repository(config: BackendConfig) -> QuizRepository:
    """Construct the backend described by ``config`` without any fallback."""
    if config.kind is BackendKind.EMBEDDED:
        return JsonRepository(config.path_prefix)
    if config.kind is BackendKind.RELATIONAL:
        return SQLRepository.from_config(config)
    raise ValueError(f"Unsupported backend: {config.kind!r}")


def open_repository(config: BackendConfig, fallback: EmbeddedConfig | None = None) -> QuizRepository:
    fallback = fallback or EmbeddedConfig()
    try:
        return build_repository(config)
    except Exception:
        if config.kind is BackendKind.EMBEDDED:
            raise
        logger.warning(
            "Could not open the %s backend; falling back to the embedded store at %s*",
            config.kind.value,
            fallback.path_prefix,
            exc_info=True,
        )
        return JsonRepository(fallback.path_prefix)


def select_store(
    backend: str | None = None,
    environment: str | None = None,
    *,
    settings: Settings | None = None,
) -> QuizRepository:
    """
    Resolve a backend name (``embedded`` / ``relational``) and an environment
    name (``development``, ``production``, ``testing``, ``local``) into an open
    repository. Both names default to the values in ``settings``.
    """
    settings = settings or get_settings()
    overrides = {}
    if backend:
        overrides["backend"] = backend.strip().lower()
    if environment:
        overrides["environment"] = environment.strip().lower()
    settings = replace(settings, **overrides)
    fallback = EmbeddedConfig(path_prefix=settings.data_prefix)

    try:
        config = resolve_backend_config(settings)
    except ValueError:
        logger.warning(
            "Invalid store configuration (backend=%r, environment=%r); using the embedded store",
            settings.backend,
            settings.environment,
            exc_info=True,
        )
        return JsonRepository(fallback.path_prefix)
    return open_repository(config, fallback)

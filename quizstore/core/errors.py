"""Error taxonomy shared by every repository backend and service."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    DUPLICATE_TITLE = "duplicate_title"
    PERSISTENCE = "persistence"
    SCHEMA = "schema"
    INVALID = "invalid"


class QuizStoreError(Exception):
    """Base exception for the quiz store."""

    kind: ErrorKind = ErrorKind.PERSISTENCE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(QuizStoreError):
    """Raised when an operation references an identifier that does not exist."""

    kind = ErrorKind.NOT_FOUND


class DuplicateTitleError(QuizStoreError):
    """Raised when a create or rename would break title uniqueness."""

    kind = ErrorKind.DUPLICATE_TITLE


class PersistenceError(QuizStoreError):
    """Raised when writing a file or executing a statement fails."""

    kind = ErrorKind.PERSISTENCE


class SchemaError(PersistenceError):
    """Raised when the relational schema cannot be created at startup."""

    kind = ErrorKind.SCHEMA


class ValidationError(QuizStoreError):
    """Raised by services when caller input breaks a business rule."""

    kind = ErrorKind.INVALID

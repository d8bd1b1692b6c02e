"""Result value returned by service operations."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from quizstore.core.errors import ErrorKind, QuizStoreError

T = TypeVar("T")


@dataclass
class Outcome(Generic[T]):
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, exc: QuizStoreError) -> "Outcome[T]":
        return cls(error=exc.kind, message=exc.message)

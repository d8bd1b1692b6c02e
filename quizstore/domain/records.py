"""Plain data records exchanged through the repository contract."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalize naive datetimes (as returned by SQLite) to aware UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class Answer:
    text: str
    correct: bool = False
    id: int = 0


@dataclass
class Question:
    """
    A quiz item owned by a topic.

    ``id <= 0`` means the question has not been stored yet. Saving replaces the
    whole answer list.
    """

    title: str
    body: str = ""
    topic_id: int = 0
    answers: list[Answer] = field(default_factory=list)
    id: int = 0

    @property
    def correct_answers(self) -> list[Answer]:
        return [answer for answer in self.answers if answer.correct]


@dataclass
class Topic:
    title: str
    description: str = ""
    id: int = 0
    question_count: int = 0


@dataclass
class QuizResult:
    """One answered (or revealed) attempt at a question. Never updated."""

    topic_id: int
    question_id: int
    correct: bool
    revealed: bool = False
    response_seconds: int = 0
    score: int = 0
    timestamp: datetime = field(default_factory=utcnow)
    id: int = 0

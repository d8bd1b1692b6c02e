"""
Statistics derived from quiz results.

Nothing here touches storage: a ``Statistic`` is computed on demand either in
one pass over a list of results (``aggregate``) or by folding results one at a
time into a running value (``Statistic.add``). Both paths give the same numbers
for the same results.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .records import QuizResult

ALL_TOPICS_LABEL = "All topics"


@dataclass
class Statistic:
    topic_id: int = 0
    topic_title: str = ""
    question_id: int = 0
    question_title: str = ""
    attempts: int = 0
    correct: int = 0
    incorrect: int = 0
    average_time: float = 0.0
    best_score: int = 0
    score_total: int = field(default=0, repr=False)

    @property
    def success_rate(self) -> float:
        """Percentage of correct attempts, 0 when nothing was attempted."""
        if self.attempts <= 0:
            return 0.0
        return self.correct / self.attempts * 100.0

    @property
    def average_score(self) -> int:
        """Mean score truncated toward zero."""
        if self.attempts <= 0:
            return 0
        return int(self.score_total / self.attempts)

    def add(self, result: QuizResult) -> "Statistic":
        """Fold one more result into the running values."""
        self.record(result.correct, result.response_seconds, result.score)
        return self

    def record(self, correct: bool, response_seconds: float, score: int) -> None:
        self.attempts += 1
        if correct:
            self.correct += 1
        else:
            self.incorrect += 1
        # running mean, previous results are not revisited
        total_time = self.average_time * (self.attempts - 1) + response_seconds
        self.average_time = total_time / self.attempts
        self.score_total += score
        if self.attempts == 1 or score > self.best_score:
            self.best_score = score


def aggregate(
    results: Iterable[QuizResult],
    *,
    topic_id: int = 0,
    topic_title: str = "",
    question_id: int = 0,
    question_title: str = "",
) -> Statistic:
    """Batch aggregation over a full result list."""
    items = list(results)
    statistic = Statistic(
        topic_id=topic_id,
        topic_title=topic_title,
        question_id=question_id,
        question_title=question_title,
    )
    if not items:
        return statistic
    statistic.attempts = len(items)
    statistic.correct = sum(1 for item in items if item.correct)
    statistic.incorrect = statistic.attempts - statistic.correct
    statistic.average_time = sum(item.response_seconds for item in items) / statistic.attempts
    statistic.score_total = sum(item.score for item in items)
    statistic.best_score = max(item.score for item in items)
    return statistic


def fold(results: Iterable[QuizResult], statistic: Statistic | None = None) -> Statistic:
    """Incremental aggregation: add results one by one to ``statistic``."""
    statistic = statistic if statistic is not None else Statistic()
    for result in results:
        statistic.add(result)
    return statistic

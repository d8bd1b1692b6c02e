"""Playing a quiz: timing answers, scoring them and recording the results."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence
import logging
import time

from quizstore.domain.records import Question
from quizstore.services.statistics_service import QuizStatisticsService

logger = logging.getLogger(__name__)

POINTS_PER_CORRECT_ANSWER = 1


class QuizSessionError(Exception):
    """Raised when an action needs a running quiz and there is none."""


def is_correct_selection(question: Question, selection: Sequence[bool]) -> bool:
    """Correct only when every answer is selected exactly if it is marked correct."""
    if len(selection) != len(question.answers):
        return False
    return all(bool(selected) == answer.correct for selected, answer in zip(selection, question.answers))


@dataclass
class Turn:
    question: Question
    correct: bool
    points: int
    response_seconds: int
    revealed: bool = False
    recorded: bool = True


class QuizSession:
    """
    Walks through ``questions`` in order.

    ``submit`` scores the current question and moves on; ``reveal`` records a
    revealed attempt (no points) and stays on the question. A result that
    cannot be stored is logged and the quiz carries on.
    """

    def __init__(
        self,
        statistics: QuizStatisticsService,
        questions: Sequence[Question],
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.statistics = statistics
        self.questions = list(questions)
        self.clock = clock
        self.index = 0
        self.score = 0
        self.active = False
        self.turns: list[Turn] = []
        self._asked_at = 0.0

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def current(self) -> Optional[Question]:
        if not self.active or self.index >= len(self.questions):
            return None
        return self.questions[self.index]

    @property
    def finished(self) -> bool:
        return not self.active and self.index >= len(self.questions) > 0

    def start(self) -> Question:
        if not self.questions:
            raise QuizSessionError("There are no questions to play.")
        self.index = 0
        self.score = 0
        self.turns = []
        self.active = True
        self._asked_at = self.clock()
        return self.questions[0]

    def submit(self, selection: Sequence[bool]) -> Turn:
        question = self._require_current()
        correct = is_correct_selection(question, selection)
        points = POINTS_PER_CORRECT_ANSWER if correct else 0
        turn = self._record(question, correct=correct, points=points, revealed=False)
        self.score += points
        self.index += 1
        if self.index >= len(self.questions):
            self.active = False
            logger.info("Quiz finished with %d/%d points", self.score, self.total)
        else:
            self._asked_at = self.clock()
        return turn

    def reveal(self) -> Turn:
        question = self._require_current()
        return self._record(question, correct=False, points=0, revealed=True)

    def _require_current(self) -> Question:
        question = self.current
        if question is None:
            raise QuizSessionError("No quiz is running.")
        return question

    def _record(self, question: Question, *, correct: bool, points: int, revealed: bool) -> Turn:
        elapsed = int(max(0.0, self.clock() - self._asked_at))
        outcome = self.statistics.record_result(
            question.topic_id,
            question.id,
            correct,
            revealed=revealed,
            response_seconds=elapsed,
            score=points,
        )
        if not outcome.ok:
            logger.warning("Could not record result for question %s: %s", question.id, outcome.message)
        turn = Turn(
            question=question,
            correct=correct,
            points=points,
            response_seconds=elapsed,
            revealed=revealed,
            recorded=outcome.ok,
        )
        self.turns.append(turn)
        return turn

"""Recording quiz results and computing statistics from them."""
from __future__ import annotations

from typing import Optional

from quizstore.core.errors import QuizStoreError
from quizstore.domain.records import QuizResult, utcnow
from quizstore.domain.statistics import ALL_TOPICS_LABEL, Statistic, aggregate, fold
from quizstore.repositories.base import QuizRepository
from quizstore.services.outcome import Outcome


class QuizStatisticsService:
    def __init__(self, repository: QuizRepository) -> None:
        self.repository = repository

    def record_result(
        self,
        topic_id: int,
        question_id: int,
        correct: bool,
        *,
        revealed: bool = False,
        response_seconds: int = 0,
        score: int = 0,
    ) -> Outcome[QuizResult]:
        result = QuizResult(
            topic_id=topic_id,
            question_id=question_id,
            correct=correct,
            revealed=revealed,
            response_seconds=response_seconds,
            score=score,
            timestamp=utcnow(),
        )
        try:
            saved = self.repository.add_result(result)
        except QuizStoreError as exc:
            return Outcome.failure(exc)
        return Outcome.success(saved)

    def results_by_topic(self, topic_id: int) -> list[QuizResult]:
        return self.repository.find_results_by_topic(topic_id)

    def results_by_question(self, question_id: int) -> list[QuizResult]:
        return self.repository.find_results_by_question(question_id)

    def statistics_by_topic(self, topic_id: int) -> list[Statistic]:
        return self.repository.statistics_by_topic(topic_id)

    def all_statistics(self) -> list[Statistic]:
        return self.repository.all_statistics()

    def topic_statistic(self, topic_id: int, topic_title: Optional[str] = None) -> Statistic:
        """All results recorded for a topic folded into one statistic."""
        if topic_title is None:
            topic = self.repository.find_topic(topic_id)
            topic_title = topic.title if topic else ""
        return aggregate(self.results_by_topic(topic_id), topic_id=topic_id, topic_title=topic_title)

    def question_statistic(self, question_id: int) -> Statistic:
        statistic = Statistic(question_id=question_id)
        question = self.repository.find_question(question_id)
        if question is not None:
            topic = self.repository.find_topic(question.topic_id)
            statistic.question_title = question.title
            statistic.topic_id = question.topic_id
            statistic.topic_title = topic.title if topic else ""
        return fold(self.results_by_question(question_id), statistic)

    def global_statistic(self) -> Statistic:
        """Results of every question that still belongs to a topic."""
        results: list[QuizResult] = []
        for topic in self.repository.list_topics():
            for question in self.repository.find_questions_by_topic(topic.id):
                results.extend(self.results_by_question(question.id))
        return aggregate(results, topic_title=ALL_TOPICS_LABEL)

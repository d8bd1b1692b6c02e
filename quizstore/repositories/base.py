"""
Repository contract shared by the JSON-file and SQL backends.

Conventions every implementation follows:

- ``save_*`` with ``id <= 0`` creates and assigns a new id; ``id > 0`` updates
  and raises ``NotFoundError`` when the row is missing.
- Topic titles are unique case-insensitively across the store, question titles
  only within their topic (``DuplicateTitleError``).
- Deleting a topic removes its questions and their answers; deleting a question
  removes its answers. Deleting an id that does not exist is a no-op.
- Topics and questions are listed by title, case-insensitively; answers in
  insertion order; results oldest first.
- Lookups by id return ``None`` when nothing matches.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from quizstore.core.config import BackendKind
from quizstore.domain.records import Answer, Question, QuizResult, Topic
from quizstore.domain.statistics import Statistic, aggregate


def title_key(title: str | None) -> str:
    """Key used for title uniqueness and ordering."""
    return (title or "").strip().lower()


class QuizRepository(ABC):
    backend: BackendKind

    # -------------------------- topics --------------------------
    @abstractmethod
    def list_topics(self) -> list[Topic]:
        raise NotImplementedError

    @abstractmethod
    def find_topic(self, topic_id: int) -> Optional[Topic]:
        raise NotImplementedError

    @abstractmethod
    def find_topic_by_title(self, title: str) -> Optional[Topic]:
        raise NotImplementedError

    def topic_title_exists(self, title: str, exclude_id: int | None = None) -> bool:
        topic = self.find_topic_by_title(title)
        return topic is not None and topic.id != exclude_id

    @abstractmethod
    def save_topic(self, topic: Topic) -> Topic:
        raise NotImplementedError

    @abstractmethod
    def delete_topic(self, topic_id: int) -> None:
        raise NotImplementedError

    # -------------------------- questions --------------------------
    @abstractmethod
    def find_questions_by_topic(self, topic_id: int) -> list[Question]:
        raise NotImplementedError

    def find_questions_by_topic_title(self, title: str) -> list[Question]:
        topic = self.find_topic_by_title(title)
        if topic is None:
            return []
        return self.find_questions_by_topic(topic.id)

    @abstractmethod
    def find_question(self, question_id: int) -> Optional[Question]:
        raise NotImplementedError

    @abstractmethod
    def find_question_by_title(self, topic_id: int, title: str) -> Optional[Question]:
        raise NotImplementedError

    def question_title_exists(self, topic_id: int, title: str, exclude_id: int | None = None) -> bool:
        question = self.find_question_by_title(topic_id, title)
        return question is not None and question.id != exclude_id

    @abstractmethod
    def save_question(self, question: Question) -> Question:
        """Create or update ``question`` and replace its whole answer list."""
        raise NotImplementedError

    @abstractmethod
    def delete_question(self, question_id: int) -> None:
        raise NotImplementedError

    # -------------------------- answers --------------------------
    @abstractmethod
    def find_answers(self, question_id: int) -> list[Answer]:
        raise NotImplementedError

    @abstractmethod
    def save_answer(self, answer: Answer, question_id: int) -> Answer:
        raise NotImplementedError

    @abstractmethod
    def delete_answer(self, answer_id: int) -> None:
        raise NotImplementedError

    # -------------------------- results --------------------------
    @abstractmethod
    def add_result(self, result: QuizResult) -> QuizResult:
        raise NotImplementedError

    @abstractmethod
    def find_results_by_topic(self, topic_id: int) -> list[QuizResult]:
        raise NotImplementedError

    @abstractmethod
    def find_results_by_question(self, question_id: int) -> list[QuizResult]:
        raise NotImplementedError

    @abstractmethod
    def list_results(self) -> list[QuizResult]:
        """Every stored result, including those of deleted questions."""
        raise NotImplementedError

    # -------------------------- statistics --------------------------
    def statistics_by_topic(self, topic_id: int) -> list[Statistic]:
        """One statistic per question of the topic, in question order."""
        topic = self.find_topic(topic_id)
        if topic is None:
            return []
        return [
            aggregate(
                self.find_results_by_question(question.id),
                topic_id=topic.id,
                topic_title=topic.title,
                question_id=question.id,
                question_title=question.title,
            )
            for question in self.find_questions_by_topic(topic.id)
        ]

    def all_statistics(self) -> list[Statistic]:
        statistics: list[Statistic] = []
        for topic in self.list_topics():
            statistics.extend(self.statistics_by_topic(topic.id))
        return statistics

    # -------------------------- lifecycle --------------------------
    def close(self) -> None:
        """Release files or connections held by the backend."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

"""Topic use cases (validation, uniqueness pre-check, cascade delete)."""
from __future__ import annotations

import logging
from typing import Optional

from quizstore.core.errors import DuplicateTitleError, NotFoundError, QuizStoreError, ValidationError
from quizstore.domain.records import Topic
from quizstore.repositories.base import QuizRepository
from quizstore.services.outcome import Outcome

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 100


def validate_topic(title: str | None, description: str | None) -> None:
    if not (title or "").strip():
        raise ValidationError("The title must not be empty.")
    if len(title.strip()) > TITLE_MAX_LENGTH:
        raise ValidationError(f"The title must be at most {TITLE_MAX_LENGTH} characters long.")
    if not (description or "").strip():
        raise ValidationError("The description must not be empty.")


class TopicService:
    def __init__(self, repository: QuizRepository) -> None:
        self.repository = repository

    def list_topics(self) -> list[Topic]:
        return self.repository.list_topics()

    def find(self, topic_id: int) -> Optional[Topic]:
        return self.repository.find_topic(topic_id)

    def find_by_title(self, title: str) -> Optional[Topic]:
        return self.repository.find_topic_by_title(title)

    def create(self, title: str, description: str) -> Outcome[Topic]:
        try:
            validate_topic(title, description)
            title = title.strip()
            if self.repository.topic_title_exists(title):
                raise DuplicateTitleError(f"A topic titled '{title}' already exists.")
            topic = self.repository.save_topic(Topic(title=title, description=description.strip()))
        except QuizStoreError as exc:
            return Outcome.failure(exc)
        logger.info("Created topic %s (%s)", topic.id, topic.title)
        return Outcome.success(topic)

    def update(self, topic_id: int, title: str, description: str) -> Outcome[Topic]:
        try:
            validate_topic(title, description)
            title = title.strip()
            if self.repository.find_topic(topic_id) is None:
                raise NotFoundError(f"Topic {topic_id} not found.")
            if self.repository.topic_title_exists(title, exclude_id=topic_id):
                raise DuplicateTitleError(f"Another topic already uses the title '{title}'.")
            topic = self.repository.save_topic(Topic(id=topic_id, title=title, description=description.strip()))
        except QuizStoreError as exc:
            return Outcome.failure(exc)
        return Outcome.success(topic)

    def delete(self, topic_id: int) -> Outcome[None]:
        try:
            topic = self.repository.find_topic(topic_id)
            if topic is None:
                raise NotFoundError(f"Topic {topic_id} not found.")
            self.repository.delete_topic(topic_id)
        except QuizStoreError as exc:
            return Outcome.failure(exc)
        logger.info("Deleted topic %s (%s) and its %d questions", topic.id, topic.title, topic.question_count)
        return Outcome.success()

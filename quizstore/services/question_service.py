"""Question use cases (validation of the question and its answer list)."""
from __future__ import annotations

from typing import Optional, Sequence

from quizstore.core.errors import DuplicateTitleError, NotFoundError, QuizStoreError, ValidationError
from quizstore.domain.records import Answer, Question
from quizstore.repositories.base import QuizRepository
from quizstore.services.outcome import Outcome

TITLE_MAX_LENGTH = 100
BODY_MAX_LENGTH = 500
ANSWER_MAX_LENGTH = 200


def validate_question(title: str | None, body: str | None, answers: Sequence[Answer] | None) -> None:
    if not (title or "").strip():
        raise ValidationError("The question title must not be empty.")
    if len(title.strip()) > TITLE_MAX_LENGTH:
        raise ValidationError(f"The question title must be at most {TITLE_MAX_LENGTH} characters long.")
    if not (body or "").strip():
        raise ValidationError("The question text must not be empty.")
    if len(body.strip()) > BODY_MAX_LENGTH:
        raise ValidationError(f"The question text must be at most {BODY_MAX_LENGTH} characters long.")
    if not answers:
        raise ValidationError("Please enter at least one answer.")

    has_correct = False
    for answer in answers:
        text = (answer.text or "").strip()
        if not text:
            if answer.correct:
                raise ValidationError("An answer marked as correct is empty.")
            continue
        if len(text) > ANSWER_MAX_LENGTH:
            raise ValidationError(f"Answer text must be at most {ANSWER_MAX_LENGTH} characters long.")
        if answer.correct:
            has_correct = True
    if not has_correct:
        raise ValidationError("Please mark at least one answer as correct.")


def clean_answers(answers: Sequence[Answer]) -> list[Answer]:
    """Drop blank answers and trim the rest; ids are reassigned on save."""
    return [
        Answer(text=answer.text.strip(), correct=bool(answer.correct))
        for answer in answers
        if (answer.text or "").strip()
    ]


class QuestionService:
    def __init__(self, repository: QuizRepository) -> None:
        self.repository = repository

    def list_by_topic(self, topic_id: int) -> list[Question]:
        return self.repository.find_questions_by_topic(topic_id)

    def list_by_topic_title(self, title: str) -> list[Question]:
        return self.repository.find_questions_by_topic_title(title)

    def find(self, question_id: int) -> Optional[Question]:
        return self.repository.find_question(question_id)

    def create(self, topic_id: int, title: str, body: str, answers: Sequence[Answer]) -> Outcome[Question]:
        try:
            validate_question(title, body, answers)
            title = title.strip()
            if self.repository.find_topic(topic_id) is None:
                raise NotFoundError(f"Topic {topic_id} not found.")
            if self.repository.question_title_exists(topic_id, title):
                raise DuplicateTitleError(f"A question titled '{title}' already exists in this topic.")
            question = Question(title=title, body=body.strip(), topic_id=topic_id, answers=clean_answers(answers))
            saved = self.repository.save_question(question)
        except QuizStoreError as exc:
            return Outcome.failure(exc)
        return Outcome.success(saved)

    def update(
        self,
        question_id: int,
        topic_id: int,
        title: str,
        body: str,
        answers: Sequence[Answer],
    ) -> Outcome[Question]:
        try:
            validate_question(title, body, answers)
            title = title.strip()
            if self.repository.find_question(question_id) is None:
                raise NotFoundError(f"Question {question_id} not found.")
            if self.repository.question_title_exists(topic_id, title, exclude_id=question_id):
                raise DuplicateTitleError(f"Another question in this topic already uses the title '{title}'.")
            question = Question(
                id=question_id,
                title=title,
                body=body.strip(),
                topic_id=topic_id,
                answers=clean_answers(answers),
            )
            saved = self.repository.save_question(question)
        except QuizStoreError as exc:
            return Outcome.failure(exc)
        return Outcome.success(saved)

    def delete(self, question_id: int) -> Outcome[None]:
        try:
            if self.repository.find_question(question_id) is None:
                raise NotFoundError(f"Question {question_id} not found.")
            self.repository.delete_question(question_id)
        except QuizStoreError as exc:
            return Outcome.failure(exc)
        return Outcome.success()

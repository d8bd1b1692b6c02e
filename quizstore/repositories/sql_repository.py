"""Relational backend: the repository contract on top of SQLAlchemy."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from quizstore.core.config import BackendKind, RelationalConfig
from quizstore.core.errors import DuplicateTitleError, NotFoundError, PersistenceError
from quizstore.db.create_tables import SchemaManager
from quizstore.db.models import AnswerRow, QuestionRow, QuizResultRow, TopicRow
from quizstore.db.session import build_engine, make_sessionmaker
from quizstore.domain.records import Answer, Question, QuizResult, Topic, as_utc
from quizstore.repositories.base import QuizRepository, title_key

logger = logging.getLogger(__name__)


def _normalized(column):
    return func.lower(func.trim(column))


def _question_count():
    return (
        select(func.count(QuestionRow.id))
        .where(QuestionRow.topic_id == TopicRow.id)
        .correlate(TopicRow)
        .scalar_subquery()
    )


def _to_topic(entity: TopicRow, question_count: int) -> Topic:
    return Topic(
        id=int(entity.id),
        title=entity.title,
        description=entity.description or "",
        question_count=int(question_count or 0),
    )


def _to_answer(entity: AnswerRow) -> Answer:
    return Answer(id=int(entity.id), text=entity.text, correct=bool(entity.correct))


def _to_question(entity: QuestionRow, answers: list[AnswerRow] | None = None) -> Question:
    rows = entity.answers if answers is None else answers
    return Question(
        id=int(entity.id),
        title=entity.title,
        body=entity.body or "",
        topic_id=int(entity.topic_id),
        answers=[_to_answer(row) for row in rows],
    )


def _to_result(entity: QuizResultRow) -> QuizResult:
    return QuizResult(
        id=int(entity.id),
        topic_id=int(entity.topic_id),
        question_id=int(entity.question_id),
        correct=bool(entity.correct),
        revealed=bool(entity.revealed),
        response_seconds=int(entity.response_seconds or 0),
        score=int(entity.score or 0),
        timestamp=as_utc(entity.timestamp),
    )


class SQLRepository(QuizRepository):
    """
    CRUD helpers wrapping a SQLAlchemy session per call.

    Cascades are declared on the foreign keys, so deleting a topic or question
    is a single DELETE. Saving a question (row plus answer replacement) runs in
    one transaction. Callers using one instance from several threads must
    serialize access themselves.
    """

    backend = BackendKind.RELATIONAL

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._sessionmaker = make_sessionmaker(engine)

    @classmethod
    def from_config(cls, config: RelationalConfig) -> "SQLRepository":
        engine = build_engine(config)
        try:
            SchemaManager(engine).ensure_schema()
        except Exception:
            engine.dispose()
            raise
        return cls(engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session: Session = self._sessionmaker()
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Statement failed on %s", self.engine.dialect.name)
            raise PersistenceError(f"Database error: {exc}") from exc
        finally:
            session.close()

    def close(self) -> None:
        self.engine.dispose()

    # -------------------------- helpers --------------------------
    def _check_topic_title(self, session: Session, title: str, exclude_id: int | None) -> None:
        stmt = select(TopicRow.id).where(_normalized(TopicRow.title) == title_key(title))
        if exclude_id is not None:
            stmt = stmt.where(TopicRow.id != exclude_id)
        if session.execute(stmt.limit(1)).first() is not None:
            raise DuplicateTitleError(f"A topic titled '{title}' already exists")

    def _check_question_title(self, session: Session, topic_id: int, title: str, exclude_id: int | None) -> None:
        stmt = select(QuestionRow.id).where(
            QuestionRow.topic_id == topic_id,
            _normalized(QuestionRow.title) == title_key(title),
        )
        if exclude_id is not None:
            stmt = stmt.where(QuestionRow.id != exclude_id)
        if session.execute(stmt.limit(1)).first() is not None:
            raise DuplicateTitleError(f"A question titled '{title}' already exists in topic {topic_id}")

    def _count_questions(self, session: Session, topic_id: int) -> int:
        stmt = select(func.count(QuestionRow.id)).where(QuestionRow.topic_id == topic_id)
        return int(session.execute(stmt).scalar_one())

    def _answer_rows(self, session: Session, question_id: int) -> list[AnswerRow]:
        stmt = select(AnswerRow).where(AnswerRow.question_id == question_id).order_by(AnswerRow.id)
        return list(session.execute(stmt).scalars().all())

    # -------------------------- topics --------------------------
    def list_topics(self) -> list[Topic]:
        stmt = select(TopicRow, _question_count()).order_by(_normalized(TopicRow.title), TopicRow.id)
        with self._session() as session:
            return [_to_topic(entity, count) for entity, count in session.execute(stmt).all()]

    def find_topic(self, topic_id: int) -> Optional[Topic]:
        stmt = select(TopicRow, _question_count()).where(TopicRow.id == topic_id)
        with self._session() as session:
            row = session.execute(stmt).first()
            return _to_topic(*row) if row else None

    def find_topic_by_title(self, title: str) -> Optional[Topic]:
        stmt = (
            select(TopicRow, _question_count())
            .where(_normalized(TopicRow.title) == title_key(title))
            .order_by(TopicRow.id)
            .limit(1)
        )
        with self._session() as session:
            row = session.execute(stmt).first()
            return _to_topic(*row) if row else None

    def save_topic(self, topic: Topic) -> Topic:
        with self._session() as session:
            if topic.id <= 0:
                self._check_topic_title(session, topic.title, None)
                entity = TopicRow(title=topic.title, description=topic.description)
                session.add(entity)
            else:
                entity = session.get(TopicRow, topic.id)
                if entity is None:
                    raise NotFoundError(f"Topic {topic.id} not found")
                self._check_topic_title(session, topic.title, topic.id)
                entity.title = topic.title
                entity.description = topic.description
            session.commit()
            return _to_topic(entity, self._count_questions(session, entity.id))

    def delete_topic(self, topic_id: int) -> None:
        with self._session() as session:
            session.execute(delete(TopicRow).where(TopicRow.id == topic_id))
            session.commit()

    # -------------------------- questions --------------------------
    def find_questions_by_topic(self, topic_id: int) -> list[Question]:
        stmt = (
            select(QuestionRow)
            .where(QuestionRow.topic_id == topic_id)
            .options(selectinload(QuestionRow.answers))
            .order_by(_normalized(QuestionRow.title), QuestionRow.id)
        )
        with self._session() as session:
            return [_to_question(entity) for entity in session.execute(stmt).scalars().all()]

    def find_question(self, question_id: int) -> Optional[Question]:
        stmt = select(QuestionRow).where(QuestionRow.id == question_id).options(selectinload(QuestionRow.answers))
        with self._session() as session:
            entity = session.execute(stmt).scalar_one_or_none()
            return _to_question(entity) if entity else None

    def find_question_by_title(self, topic_id: int, title: str) -> Optional[Question]:
        stmt = (
            select(QuestionRow)
            .where(QuestionRow.topic_id == topic_id, _normalized(QuestionRow.title) == title_key(title))
            .options(selectinload(QuestionRow.answers))
            .order_by(QuestionRow.id)
            .limit(1)
        )
        with self._session() as session:
            entity = session.execute(stmt).scalars().first()
            return _to_question(entity) if entity else None

    def save_question(self, question: Question) -> Question:
        with self._session() as session:
            if session.get(TopicRow, question.topic_id) is None:
                raise NotFoundError(f"Topic {question.topic_id} not found")
            if question.id <= 0:
                self._check_question_title(session, question.topic_id, question.title, None)
                entity = QuestionRow(title=question.title, body=question.body, topic_id=question.topic_id)
                session.add(entity)
                session.flush()
            else:
                entity = session.get(QuestionRow, question.id)
                if entity is None:
                    raise NotFoundError(f"Question {question.id} not found")
                self._check_question_title(session, question.topic_id, question.title, question.id)
                entity.title = question.title
                entity.body = question.body
                entity.topic_id = question.topic_id

            session.execute(
                delete(AnswerRow).where(AnswerRow.question_id == entity.id).execution_options(synchronize_session=False)
            )
            session.add_all(
                AnswerRow(text=answer.text, correct=bool(answer.correct), question_id=entity.id)
                for answer in question.answers
            )
            session.commit()
            return _to_question(entity, self._answer_rows(session, entity.id))

    def delete_question(self, question_id: int) -> None:
        with self._session() as session:
            session.execute(delete(QuestionRow).where(QuestionRow.id == question_id))
            session.commit()

    # -------------------------- answers --------------------------
    def find_answers(self, question_id: int) -> list[Answer]:
        with self._session() as session:
            return [_to_answer(entity) for entity in self._answer_rows(session, question_id)]

    def save_answer(self, answer: Answer, question_id: int) -> Answer:
        with self._session() as session:
            if session.get(QuestionRow, question_id) is None:
                raise NotFoundError(f"Question {question_id} not found")
            if answer.id <= 0:
                entity = AnswerRow(text=answer.text, correct=bool(answer.correct), question_id=question_id)
                session.add(entity)
            else:
                entity = session.get(AnswerRow, answer.id)
                if entity is None:
                    raise NotFoundError(f"Answer {answer.id} not found")
                entity.text = answer.text
                entity.correct = bool(answer.correct)
                entity.question_id = question_id
            session.commit()
            return _to_answer(entity)

    def delete_answer(self, answer_id: int) -> None:
        with self._session() as session:
            session.execute(delete(AnswerRow).where(AnswerRow.id == answer_id))
            session.commit()

    # -------------------------- results --------------------------
    def add_result(self, result: QuizResult) -> QuizResult:
        entity = QuizResultRow(
            topic_id=result.topic_id,
            question_id=result.question_id,
            correct=bool(result.correct),
            revealed=bool(result.revealed),
            response_seconds=int(result.response_seconds),
            timestamp=as_utc(result.timestamp),
            score=int(result.score),
        )
        with self._session() as session:
            session.add(entity)
            session.commit()
            return _to_result(entity)

    def find_results_by_topic(self, topic_id: int) -> list[QuizResult]:
        stmt = (
            select(QuizResultRow)
            .where(QuizResultRow.topic_id == topic_id)
            .order_by(QuizResultRow.timestamp, QuizResultRow.id)
        )
        with self._session() as session:
            return [_to_result(entity) for entity in session.execute(stmt).scalars().all()]

    def find_results_by_question(self, question_id: int) -> list[QuizResult]:
        stmt = (
            select(QuizResultRow)
            .where(QuizResultRow.question_id == question_id)
            .order_by(QuizResultRow.timestamp, QuizResultRow.id)
        )
        with self._session() as session:
            return [_to_result(entity) for entity in session.execute(stmt).scalars().all()]

    def list_results(self) -> list[QuizResult]:
        stmt = select(QuizResultRow).order_by(QuizResultRow.timestamp, QuizResultRow.id)
        with self._session() as session:
            return [_to_result(entity) for entity in session.execute(stmt).scalars().all()]

"""
JSON-file persistence adapter (embedded backend).

Topics, questions, answers and results are kept in memory as four lists of
plain dicts. Every successful mutation rewrites the whole affected collection
to its own JSON file before returning. A missing file is an empty collection.

One store-wide reader/writer lock guards all four lists together so that a
cascading delete is never observed half done.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional
import json
import logging
import threading

from quizstore.core.config import BackendKind
from quizstore.core.errors import DuplicateTitleError, NotFoundError, PersistenceError
from quizstore.domain.records import Answer, Question, QuizResult, Topic, as_utc
from quizstore.domain.statistics import Statistic, aggregate
from quizstore.repositories.base import QuizRepository, title_key

logger = logging.getLogger(__name__)

COLLECTIONS = ("topics", "questions", "answers", "results")


def collection_path(path_prefix: str, name: str) -> Path:
    return Path(f"{path_prefix}{name}.json")


def load(path: Path) -> list[dict]:
    if not path.exists():
        return []
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        logger.warning("Could not read %s; starting with an empty collection", path, exc_info=True)
        return []
    if not isinstance(data, list):
        logger.warning("Unexpected content in %s; starting with an empty collection", path)
        return []
    return data


_ID_FIELDS = {
    "topics": ("id",),
    "questions": ("id", "topic_id"),
    "answers": ("id", "question_id"),
    "results": ("id", "topic_id", "question_id"),
}
_TEXT_FIELDS = {"topics": ("title",), "questions": ("title",), "answers": (), "results": ("timestamp",)}


def _is_valid_row(name: str, row) -> bool:
    if not isinstance(row, dict):
        return False
    for key in _ID_FIELDS[name]:
        value = row.get(key)
        if not isinstance(value, int) or isinstance(value, bool):
            return False
    if any(not isinstance(row.get(key), str) for key in _TEXT_FIELDS[name]):
        return False
    if name == "results":
        try:
            datetime.fromisoformat(row["timestamp"])
        except ValueError:
            return False
    return True


def load_collection(path_prefix: str, name: str) -> list[dict]:
    """Load one collection, dropping rows that lack their ids, title or timestamp."""
    path = collection_path(path_prefix, name)
    rows = load(path)
    valid = [row for row in rows if _is_valid_row(name, row)]
    if len(valid) != len(rows):
        logger.warning("Skipping %d malformed rows in %s", len(rows) - len(valid), path)
    return valid


def save(path: Path, rows: list[dict]) -> None:
    try:
        path.write_text(json.dumps(rows, ensure_ascii=False, indent=2), encoding="utf-8")
    except (OSError, TypeError, ValueError) as exc:
        logger.exception("Failed to write %s", path)
        raise PersistenceError(f"Failed to write {path}: {exc}") from exc


class _ReadWriteLock:
    """Many concurrent readers or a single writer. Waiting writers hold off new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def _max_id(rows: list[dict]) -> int:
    return max((int(row.get("id") or 0) for row in rows), default=0)


def _result_row(result: QuizResult) -> dict:
    return {
        "id": result.id,
        "topic_id": result.topic_id,
        "question_id": result.question_id,
        "correct": bool(result.correct),
        "revealed": bool(result.revealed),
        "response_seconds": int(result.response_seconds),
        "score": int(result.score),
        "timestamp": as_utc(result.timestamp).isoformat(),
    }


def _result_from_row(row: dict) -> QuizResult:
    return QuizResult(
        id=int(row["id"]),
        topic_id=int(row.get("topic_id") or 0),
        question_id=int(row.get("question_id") or 0),
        correct=bool(row.get("correct")),
        revealed=bool(row.get("revealed")),
        response_seconds=int(row.get("response_seconds") or 0),
        score=int(row.get("score") or 0),
        timestamp=as_utc(datetime.fromisoformat(row["timestamp"])),
    )


def _result_order(row: dict) -> tuple:
    return (as_utc(datetime.fromisoformat(row["timestamp"])), int(row.get("id") or 0))


class JsonRepository(QuizRepository):
    """In-memory collections mirrored to ``<prefix>topics.json`` and friends."""

    backend = BackendKind.EMBEDDED

    def __init__(self, path_prefix: str = "quiz_") -> None:
        self.path_prefix = path_prefix
        self._paths = {name: collection_path(path_prefix, name) for name in COLLECTIONS}
        self._lock = _ReadWriteLock()
        self._topics = load_collection(path_prefix, "topics")
        self._questions = load_collection(path_prefix, "questions")
        self._answers = load_collection(path_prefix, "answers")
        self._results = load_collection(path_prefix, "results")
        self._last_ids = {
            "topics": _max_id(self._topics),
            "questions": _max_id(self._questions),
            "answers": _max_id(self._answers),
            "results": _max_id(self._results),
        }
        logger.info(
            "Embedded store loaded from %s* (%d topics, %d questions, %d answers, %d results)",
            path_prefix,
            len(self._topics),
            len(self._questions),
            len(self._answers),
            len(self._results),
        )

    # -------------------------- internals (lock held) --------------------------
    def _next_id(self, collection: str) -> int:
        self._last_ids[collection] += 1
        return self._last_ids[collection]

    def _persist(self, *collections: str) -> None:
        rows = {
            "topics": self._topics,
            "questions": self._questions,
            "answers": self._answers,
            "results": self._results,
        }
        for name in collections:
            save(self._paths[name], rows[name])

    def _topic_row(self, topic_id: int) -> Optional[dict]:
        for row in self._topics:
            if row["id"] == topic_id:
                return row
        return None

    def _question_row(self, question_id: int) -> Optional[dict]:
        for row in self._questions:
            if row["id"] == question_id:
                return row
        return None

    def _question_rows(self, topic_id: int) -> list[dict]:
        rows = [row for row in self._questions if row["topic_id"] == topic_id]
        return sorted(rows, key=lambda row: (title_key(row["title"]), row["id"]))

    def _answer_rows(self, question_id: int) -> list[dict]:
        rows = [row for row in self._answers if row["question_id"] == question_id]
        return sorted(rows, key=lambda row: row["id"])

    def _to_topic(self, row: dict) -> Topic:
        count = sum(1 for question in self._questions if question["topic_id"] == row["id"])
        return Topic(id=row["id"], title=row["title"], description=row.get("description") or "", question_count=count)

    def _to_question(self, row: dict) -> Question:
        return Question(
            id=row["id"],
            title=row["title"],
            body=row.get("body") or "",
            topic_id=row["topic_id"],
            answers=[self._to_answer(answer) for answer in self._answer_rows(row["id"])],
        )

    @staticmethod
    def _to_answer(row: dict) -> Answer:
        return Answer(id=row["id"], text=row.get("text") or "", correct=bool(row.get("correct")))

    def _check_topic_title(self, title: str, exclude_id: int | None) -> None:
        key = title_key(title)
        for row in self._topics:
            if row["id"] != exclude_id and title_key(row["title"]) == key:
                raise DuplicateTitleError(f"A topic titled '{title}' already exists")

    def _check_question_title(self, topic_id: int, title: str, exclude_id: int | None) -> None:
        key = title_key(title)
        for row in self._questions:
            if row["topic_id"] == topic_id and row["id"] != exclude_id and title_key(row["title"]) == key:
                raise DuplicateTitleError(f"A question titled '{title}' already exists in topic {topic_id}")

    def _topic_statistics(self, topic_row: dict) -> list[Statistic]:
        statistics = []
        ordered = sorted(self._results, key=_result_order)
        for question in self._question_rows(topic_row["id"]):
            results = [_result_from_row(row) for row in ordered if row["question_id"] == question["id"]]
            statistics.append(
                aggregate(
                    results,
                    topic_id=topic_row["id"],
                    topic_title=topic_row["title"],
                    question_id=question["id"],
                    question_title=question["title"],
                )
            )
        return statistics

    # -------------------------- topics --------------------------
    def list_topics(self) -> list[Topic]:
        with self._lock.read():
            rows = sorted(self._topics, key=lambda row: (title_key(row["title"]), row["id"]))
            return [self._to_topic(row) for row in rows]

    def find_topic(self, topic_id: int) -> Optional[Topic]:
        with self._lock.read():
            row = self._topic_row(topic_id)
            return self._to_topic(row) if row else None

    def find_topic_by_title(self, title: str) -> Optional[Topic]:
        key = title_key(title)
        with self._lock.read():
            for row in self._topics:
                if title_key(row["title"]) == key:
                    return self._to_topic(row)
            return None

    def save_topic(self, topic: Topic) -> Topic:
        with self._lock.write():
            if topic.id <= 0:
                self._check_topic_title(topic.title, None)
                row = {"id": self._next_id("topics"), "title": topic.title, "description": topic.description}
                self._topics.append(row)
            else:
                row = self._topic_row(topic.id)
                if row is None:
                    raise NotFoundError(f"Topic {topic.id} not found")
                self._check_topic_title(topic.title, topic.id)
                row["title"] = topic.title
                row["description"] = topic.description
            self._persist("topics")
            return self._to_topic(row)

    def delete_topic(self, topic_id: int) -> None:
        with self._lock.write():
            if self._topic_row(topic_id) is None:
                return
            question_ids = {row["id"] for row in self._questions if row["topic_id"] == topic_id}
            answer_ids = {row["id"] for row in self._answers if row["question_id"] in question_ids}
            # children first so no answer ever points at a removed question
            self._answers[:] = [row for row in self._answers if row["id"] not in answer_ids]
            self._questions[:] = [row for row in self._questions if row["id"] not in question_ids]
            self._topics[:] = [row for row in self._topics if row["id"] != topic_id]
            logger.info(
                "Deleted topic %s with %d questions and %d answers",
                topic_id,
                len(question_ids),
                len(answer_ids),
            )
            self._persist(*COLLECTIONS)

    # -------------------------- questions --------------------------
    def find_questions_by_topic(self, topic_id: int) -> list[Question]:
        with self._lock.read():
            return [self._to_question(row) for row in self._question_rows(topic_id)]

    def find_question(self, question_id: int) -> Optional[Question]:
        with self._lock.read():
            row = self._question_row(question_id)
            return self._to_question(row) if row else None

    def find_question_by_title(self, topic_id: int, title: str) -> Optional[Question]:
        key = title_key(title)
        with self._lock.read():
            for row in self._questions:
                if row["topic_id"] == topic_id and title_key(row["title"]) == key:
                    return self._to_question(row)
            return None

    def save_question(self, question: Question) -> Question:
        with self._lock.write():
            if self._topic_row(question.topic_id) is None:
                raise NotFoundError(f"Topic {question.topic_id} not found")
            if question.id <= 0:
                self._check_question_title(question.topic_id, question.title, None)
                row = {"id": self._next_id("questions")}
                self._questions.append(row)
            else:
                row = self._question_row(question.id)
                if row is None:
                    raise NotFoundError(f"Question {question.id} not found")
                self._check_question_title(question.topic_id, question.title, question.id)
            row.update(title=question.title, body=question.body, topic_id=question.topic_id)

            self._answers[:] = [answer for answer in self._answers if answer["question_id"] != row["id"]]
            for answer in question.answers:
                self._answers.append(
                    {
                        "id": self._next_id("answers"),
                        "question_id": row["id"],
                        "text": answer.text,
                        "correct": bool(answer.correct),
                    }
                )
            self._persist("questions", "answers")
            return self._to_question(row)

    def delete_question(self, question_id: int) -> None:
        with self._lock.write():
            if self._question_row(question_id) is None:
                return
            self._answers[:] = [row for row in self._answers if row["question_id"] != question_id]
            self._questions[:] = [row for row in self._questions if row["id"] != question_id]
            self._persist("questions", "answers")

    # -------------------------- answers --------------------------
    def find_answers(self, question_id: int) -> list[Answer]:
        with self._lock.read():
            return [self._to_answer(row) for row in self._answer_rows(question_id)]

    def save_answer(self, answer: Answer, question_id: int) -> Answer:
        with self._lock.write():
            if self._question_row(question_id) is None:
                raise NotFoundError(f"Question {question_id} not found")
            if answer.id <= 0:
                row = {"id": self._next_id("answers"), "question_id": question_id}
                self._answers.append(row)
            else:
                row = next((item for item in self._answers if item["id"] == answer.id), None)
                if row is None:
                    raise NotFoundError(f"Answer {answer.id} not found")
            row.update(question_id=question_id, text=answer.text, correct=bool(answer.correct))
            self._persist("answers")
            return self._to_answer(row)

    def delete_answer(self, answer_id: int) -> None:
        with self._lock.write():
            remaining = [row for row in self._answers if row["id"] != answer_id]
            if len(remaining) == len(self._answers):
                return
            self._answers[:] = remaining
            self._persist("answers")

    # -------------------------- results --------------------------
    def add_result(self, result: QuizResult) -> QuizResult:
        with self._lock.write():
            row = _result_row(result)
            row["id"] = self._next_id("results")
            self._results.append(row)
            self._persist("results")
            return _result_from_row(row)

    def find_results_by_topic(self, topic_id: int) -> list[QuizResult]:
        with self._lock.read():
            rows = sorted((row for row in self._results if row["topic_id"] == topic_id), key=_result_order)
            return [_result_from_row(row) for row in rows]

    def find_results_by_question(self, question_id: int) -> list[QuizResult]:
        with self._lock.read():
            rows = sorted((row for row in self._results if row["question_id"] == question_id), key=_result_order)
            return [_result_from_row(row) for row in rows]

    def list_results(self) -> list[QuizResult]:
        with self._lock.read():
            return [_result_from_row(row) for row in sorted(self._results, key=_result_order)]

    # -------------------------- statistics --------------------------
    def statistics_by_topic(self, topic_id: int) -> list[Statistic]:
        with self._lock.read():
            row = self._topic_row(topic_id)
            return self._topic_statistics(row) if row else []

    def all_statistics(self) -> list[Statistic]:
        with self._lock.read():
            statistics: list[Statistic] = []
            for row in sorted(self._topics, key=lambda item: (title_key(item["title"]), item["id"])):
                statistics.extend(self._topic_statistics(row))
            return statistics

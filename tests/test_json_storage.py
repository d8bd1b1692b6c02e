from __future__ import annotations

import json
import sys
import threading
from pathlib import Path

import pytest

# Make the quizstore package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from quizstore.core.config import BackendKind
from quizstore.core.errors import PersistenceError
from quizstore.domain.records import Answer, Question, QuizResult, Topic
from quizstore.repositories.json_storage import JsonRepository, collection_path, load


@pytest.fixture()
def prefix(tmp_path):
    return str(tmp_path / "quiz_")


def _question(topic_id: int, title: str, answers: int = 2) -> Question:
    return Question(
        title=title,
        body=f"{title}?",
        topic_id=topic_id,
        answers=[Answer(f"answer {i}", i == 0) for i in range(answers)],
    )


def test_missing_files_start_empty(prefix):
    repo = JsonRepository(prefix)
    assert repo.backend is BackendKind.EMBEDDED
    assert repo.list_topics() == []
    assert not collection_path(prefix, "topics").exists()


def test_mutations_are_written_to_disk(prefix):
    repo = JsonRepository(prefix)
    topic = repo.save_topic(Topic(title="Java", description="intro"))
    repo.save_question(_question(topic.id, "Basics"))

    topics = json.loads(collection_path(prefix, "topics").read_text(encoding="utf-8"))
    answers = json.loads(collection_path(prefix, "answers").read_text(encoding="utf-8"))
    assert topics == [{"id": 1, "title": "Java", "description": "intro"}]
    assert [row["text"] for row in answers] == ["answer 0", "answer 1"]


def test_reload_restores_content_and_counters(prefix):
    repo = JsonRepository(prefix)
    java = repo.save_topic(Topic(title="Java", description="intro"))
    repo.save_topic(Topic(title="Kotlin", description="intro"))
    question = repo.save_question(_question(java.id, "Basics"))
    repo.add_result(QuizResult(java.id, question.id, True, response_seconds=4, score=1))

    reopened = JsonRepository(prefix)

    assert reopened.list_topics() == repo.list_topics()
    assert reopened.find_question(question.id) == question
    assert reopened.find_results_by_question(question.id) == repo.find_results_by_question(question.id)
    assert reopened.save_topic(Topic(title="Ada", description="intro")).id == 3
    assert reopened.save_question(_question(java.id, "Streams")).answers[0].id == 3


def test_unreadable_file_is_treated_as_empty(prefix, caplog):
    collection_path(prefix, "topics").write_text("{not json", encoding="utf-8")
    collection_path(prefix, "questions").write_text('{"id": 1}', encoding="utf-8")

    assert load(collection_path(prefix, "topics")) == []
    repo = JsonRepository(prefix)
    assert repo.list_topics() == []
    assert repo.find_questions_by_topic(1) == []
    assert "starting with an empty collection" in caplog.text


def test_malformed_rows_are_skipped(prefix, caplog):
    collection_path(prefix, "topics").write_text(
        json.dumps([{"id": 1, "title": "Java", "description": "intro"}, {"title": "no id"}, {"id": "2", "title": "text id"}]),
        encoding="utf-8",
    )
    collection_path(prefix, "results").write_text(
        json.dumps(
            [
                {"id": 1, "topic_id": 1, "question_id": 1, "correct": True, "timestamp": "2024-05-01T12:00:00+00:00"},
                {"id": 2, "topic_id": 1, "question_id": 1, "correct": True, "timestamp": "yesterday"},
                {"id": 3, "topic_id": 1, "question_id": 1, "correct": False},
            ]
        ),
        encoding="utf-8",
    )

    repo = JsonRepository(prefix)

    assert [t.title for t in repo.list_topics()] == ["Java"]
    assert [r.id for r in repo.find_results_by_question(1)] == [1]
    assert [r.id for r in repo.list_results()] == [1]
    assert "Skipping 2 malformed rows" in caplog.text
    assert repo.save_topic(Topic(title="Kotlin", description="-")).id == 2


def test_write_failure_raises_persistence_error(tmp_path):
    repo = JsonRepository(str(tmp_path / "missing" / "quiz_"))
    with pytest.raises(PersistenceError):
        repo.save_topic(Topic(title="Java", description="intro"))

    # the change stays applied in memory even though the file was not written
    assert [(t.id, t.title) for t in repo.list_topics()] == [(1, "Java")]
    with pytest.raises(PersistenceError):
        repo.save_topic(Topic(title="Kotlin", description="intro"))
    assert [t.id for t in repo.list_topics()] == [1, 2]


def test_delete_topic_rewrites_every_collection(prefix):
    repo = JsonRepository(prefix)
    topic = repo.save_topic(Topic(title="Java", description="intro"))
    question = repo.save_question(_question(topic.id, "Basics"))
    repo.add_result(QuizResult(topic.id, question.id, False))

    repo.delete_topic(topic.id)

    reopened = JsonRepository(prefix)
    assert reopened.list_topics() == []
    assert reopened.find_question(question.id) is None
    assert reopened.find_answers(question.id) == []
    # results are history, they outlive the question
    assert len(reopened.find_results_by_question(question.id)) == 1


def test_concurrent_topic_creation(prefix):
    repo = JsonRepository(prefix)
    barrier = threading.Barrier(2)

    def create(title: str) -> None:
        barrier.wait()
        repo.save_topic(Topic(title=title, description="-"))

    threads = [threading.Thread(target=create, args=(title,)) for title in ("A", "B")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    topics = repo.list_topics()
    assert [t.title for t in topics] == ["A", "B"]
    assert sorted(t.id for t in topics) == [1, 2]


def test_many_writers_get_distinct_ids(prefix):
    repo = JsonRepository(prefix)
    errors: list[Exception] = []

    def worker(n: int) -> None:
        try:
            for i in range(10):
                repo.save_topic(Topic(title=f"topic {n}-{i}", description="-"))
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert sorted(t.id for t in repo.list_topics()) == list(range(1, 61))


def test_readers_never_see_a_half_deleted_topic(prefix):
    repo = JsonRepository(prefix)
    topic = repo.save_topic(Topic(title="Java", description="intro"))
    for i in range(20):
        repo.save_question(_question(topic.id, f"q{i}"))

    observed: list[tuple[int, bool]] = []
    stop = threading.Event()

    def reader() -> None:
        while not stop.is_set():
            questions = repo.find_questions_by_topic(topic.id)
            observed.append((len(questions), all(len(q.answers) == 2 for q in questions)))

    readers = [threading.Thread(target=reader) for _ in range(3)]
    for thread in readers:
        thread.start()
    repo.delete_topic(topic.id)
    stop.set()
    for thread in readers:
        thread.join()

    assert all(count in (0, 20) and complete for count, complete in observed)
    assert repo.find_questions_by_topic(topic.id) == []

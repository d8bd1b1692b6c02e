"""
Behaviour every backend must share, run against the JSON-file store and a
temporary SQLite database.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
import sys
from pathlib import Path

import pytest

# Make the quizstore package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from quizstore.core.config import DatabaseEngine, RelationalConfig
from quizstore.core.errors import DuplicateTitleError, ErrorKind, NotFoundError
from quizstore.domain.records import Answer, Question, QuizResult, Topic
from quizstore.repositories.json_storage import JsonRepository
from quizstore.repositories.sql_repository import SQLRepository


@pytest.fixture(params=["embedded", "relational"])
def repo(request, tmp_path):
    if request.param == "embedded":
        repository = JsonRepository(str(tmp_path / "quiz_"))
    else:
        config = RelationalConfig(engine=DatabaseEngine.SQLITE, sqlite_file=str(tmp_path / "quiz.db"))
        repository = SQLRepository.from_config(config)
    yield repository
    repository.close()


def _java_question(topic_id: int, title: str = "Basics") -> Question:
    return Question(
        title=title,
        body="What is Java?",
        topic_id=topic_id,
        answers=[Answer("A language", True), Answer("An OS", False)],
    )


def test_create_topic_assigns_first_id(repo):
    topic = repo.save_topic(Topic(title="Java", description="intro"))
    assert topic.id == 1
    assert topic.question_count == 0
    assert repo.find_topic(1) == topic


def test_save_question_under_topic(repo):
    topic = repo.save_topic(Topic(title="Java", description="intro"))
    question = repo.save_question(_java_question(topic.id))

    assert question.id > 0
    assert [a.text for a in question.answers] == ["A language", "An OS"]
    assert [a.correct for a in question.answers] == [True, False]
    assert len({a.id for a in question.answers}) == 2
    assert all(a.id > 0 for a in question.answers)
    assert repo.find_questions_by_topic(topic.id) == [question]
    assert repo.find_topic(topic.id).question_count == 1


def test_delete_topic_cascades(repo):
    topic = repo.save_topic(Topic(title="Java", description="intro"))
    first = repo.save_question(_java_question(topic.id))
    second = repo.save_question(_java_question(topic.id, "Generics"))

    repo.delete_topic(topic.id)

    assert repo.find_topic(topic.id) is None
    assert repo.find_questions_by_topic(topic.id) == []
    assert repo.find_question(first.id) is None
    assert repo.find_question(second.id) is None
    assert repo.find_answers(first.id) == []
    assert repo.find_answers(second.id) == []


def test_delete_question_removes_answers_only_for_it(repo):
    topic = repo.save_topic(Topic(title="Java", description="intro"))
    first = repo.save_question(_java_question(topic.id))
    second = repo.save_question(_java_question(topic.id, "Generics"))

    repo.delete_question(first.id)

    assert repo.find_question(first.id) is None
    assert repo.find_answers(first.id) == []
    assert len(repo.find_answers(second.id)) == 2
    assert repo.find_topic(topic.id).question_count == 1


def test_delete_missing_ids_is_a_noop(repo):
    repo.delete_topic(42)
    repo.delete_question(42)
    repo.delete_answer(42)
    assert repo.list_topics() == []


def test_topic_titles_unique_case_insensitive(repo):
    repo.save_topic(Topic(title="Java", description="intro"))
    with pytest.raises(DuplicateTitleError) as excinfo:
        repo.save_topic(Topic(title="JAVA", description="again"))
    assert excinfo.value.kind is ErrorKind.DUPLICATE_TITLE

    other = repo.save_topic(Topic(title="Python", description="snakes"))
    with pytest.raises(DuplicateTitleError):
        repo.save_topic(Topic(id=other.id, title="java", description="rename"))


def test_topic_can_be_renamed_to_its_own_title(repo):
    topic = repo.save_topic(Topic(title="Java", description="intro"))
    renamed = repo.save_topic(Topic(id=topic.id, title="JAVA", description="shouting"))
    assert renamed.id == topic.id
    assert repo.find_topic(topic.id).title == "JAVA"
    assert repo.topic_title_exists("java")
    assert not repo.topic_title_exists("java", exclude_id=topic.id)


def test_question_titles_unique_within_topic(repo):
    java = repo.save_topic(Topic(title="Java", description="intro"))
    kotlin = repo.save_topic(Topic(title="Kotlin", description="intro"))
    repo.save_question(_java_question(java.id))
    repo.save_question(_java_question(kotlin.id))

    with pytest.raises(DuplicateTitleError):
        repo.save_question(_java_question(java.id, "BASICS"))
    assert repo.question_title_exists(java.id, "basics")
    assert not repo.question_title_exists(java.id, "Streams")


def test_update_missing_ids_raise_not_found(repo):
    with pytest.raises(NotFoundError):
        repo.save_topic(Topic(id=99, title="Ghost", description="none"))

    topic = repo.save_topic(Topic(title="Java", description="intro"))
    with pytest.raises(NotFoundError):
        repo.save_question(Question(id=99, title="Ghost", body="?", topic_id=topic.id))
    with pytest.raises(NotFoundError):
        repo.save_question(_java_question(topic_id=99))
    with pytest.raises(NotFoundError) as excinfo:
        repo.save_answer(Answer("orphan", False), question_id=99)
    assert excinfo.value.kind is ErrorKind.NOT_FOUND


def test_question_update_replaces_answer_list(repo):
    topic = repo.save_topic(Topic(title="Java", description="intro"))
    question = repo.save_question(_java_question(topic.id))
    old_ids = {a.id for a in question.answers}

    question.title = "Basics revisited"
    question.answers = [Answer("A coffee", False), Answer("A JVM language", True), Answer("A car", False)]
    updated = repo.save_question(question)

    assert updated.id == question.id
    assert [a.text for a in updated.answers] == ["A coffee", "A JVM language", "A car"]
    assert not old_ids & {a.id for a in updated.answers}
    assert repo.find_question(question.id) == updated
    assert repo.find_answers(question.id) == updated.answers


def test_lists_are_ordered_by_title(repo):
    for title in ("beta", "Alpha", "gamma"):
        repo.save_topic(Topic(title=title, description="-"))
    assert [t.title for t in repo.list_topics()] == ["Alpha", "beta", "gamma"]

    topic = repo.find_topic_by_title("ALPHA")
    for title in ("Zeta", "delta", "Epsilon"):
        repo.save_question(_java_question(topic.id, title))
    assert [q.title for q in repo.find_questions_by_topic(topic.id)] == ["delta", "Epsilon", "Zeta"]
    assert [q.title for q in repo.find_questions_by_topic_title("alpha")] == ["delta", "Epsilon", "Zeta"]


def test_ids_are_not_reused_after_delete(repo):
    first = repo.save_topic(Topic(title="A", description="-"))
    repo.delete_topic(first.id)
    second = repo.save_topic(Topic(title="B", description="-"))
    assert second.id > first.id


def test_round_trip_by_id(repo):
    topic = repo.save_topic(Topic(title="Java", description="intro"))
    question = repo.save_question(_java_question(topic.id))
    answer = repo.save_answer(Answer("A platform", True), question.id)

    assert repo.find_topic(topic.id) == topic
    assert repo.find_question_by_title(topic.id, "basics").id == question.id
    assert repo.find_answers(question.id)[-1] == answer

    edited = repo.save_answer(Answer("A platform, too", False, id=answer.id), question.id)
    assert edited == Answer("A platform, too", False, id=answer.id)
    repo.delete_answer(answer.id)
    assert [a.text for a in repo.find_answers(question.id)] == ["A language", "An OS"]


def test_results_by_topic_and_question(repo):
    topic = repo.save_topic(Topic(title="Java", description="intro"))
    question = repo.save_question(_java_question(topic.id))
    other = repo.save_question(_java_question(topic.id, "Generics"))
    start = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    later = repo.add_result(QuizResult(topic.id, question.id, True, score=1, timestamp=start + timedelta(minutes=5)))
    earlier = repo.add_result(QuizResult(topic.id, question.id, False, revealed=True, timestamp=start))
    repo.add_result(QuizResult(topic.id, other.id, True, response_seconds=3, score=1, timestamp=start))

    assert later.id > 0 and earlier.id > later.id
    assert repo.find_results_by_question(question.id) == [earlier, later]
    assert len(repo.find_results_by_topic(topic.id)) == 3
    assert repo.find_results_by_question(999) == []
    assert earlier.timestamp == start
    assert earlier.revealed is True


def test_statistics_by_topic(repo):
    topic = repo.save_topic(Topic(title="Java", description="intro"))
    question = repo.save_question(_java_question(topic.id))
    untouched = repo.save_question(_java_question(topic.id, "Streams"))
    for correct, seconds, score in ((True, 10, 5), (False, 20, 0), (True, 15, 8)):
        repo.add_result(QuizResult(topic.id, question.id, correct, response_seconds=seconds, score=score))

    statistics = repo.statistics_by_topic(topic.id)

    assert [s.question_id for s in statistics] == [question.id, untouched.id]
    stat = statistics[0]
    assert (stat.topic_title, stat.question_title) == ("Java", "Basics")
    assert stat.attempts == 3
    assert stat.correct == 2
    assert stat.incorrect == 1
    assert stat.success_rate == pytest.approx(66.67, abs=0.01)
    assert stat.average_time == pytest.approx(15.0)
    assert stat.average_score == 4
    assert stat.best_score == 8
    assert statistics[1].attempts == 0
    assert repo.statistics_by_topic(999) == []


def test_all_statistics_spans_topics(repo):
    java = repo.save_topic(Topic(title="Java", description="intro"))
    ada = repo.save_topic(Topic(title="Ada", description="intro"))
    repo.save_question(_java_question(java.id))
    repo.save_question(_java_question(ada.id))

    statistics = repo.all_statistics()

    assert [s.topic_title for s in statistics] == ["Ada", "Java"]


def test_non_ascii_titles_fold_case(repo):
    topic = repo.save_topic(Topic(title="Übung", description="umlaut"))

    for title in ("Übung", "übung", " ÜBUNG "):
        with pytest.raises(DuplicateTitleError):
            repo.save_topic(Topic(title=title, description="again"))
    assert repo.find_topic_by_title("Übung").id == topic.id
    assert repo.find_topic_by_title("ÜBUNG").id == topic.id

    repo.save_question(_java_question(topic.id, "Größe"))
    with pytest.raises(DuplicateTitleError):
        repo.save_question(_java_question(topic.id, "größe"))
    assert repo.find_question_by_title(topic.id, "GRÖßE").title == "Größe"


def test_non_ascii_titles_sort_like_ascii(repo):
    for title in ("Äpfel", "Zebra", "ähnlich"):
        repo.save_topic(Topic(title=title, description="-"))
    assert [t.title for t in repo.list_topics()] == ["Zebra", "ähnlich", "Äpfel"]


def test_list_results_includes_deleted_questions(repo):
    topic = repo.save_topic(Topic(title="Java", description="intro"))
    question = repo.save_question(_java_question(topic.id))
    start = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    second = repo.add_result(QuizResult(topic.id, question.id, True, timestamp=start + timedelta(seconds=1)))
    first = repo.add_result(QuizResult(topic.id, question.id, False, timestamp=start))

    repo.delete_topic(topic.id)

    assert repo.list_results() == [first, second]

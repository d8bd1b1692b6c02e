"""Copy the contents of one repository into another (any backend pair)."""
from __future__ import annotations

from dataclasses import dataclass, replace
import logging

from quizstore.domain.records import Answer, Question, Topic
from quizstore.repositories.base import QuizRepository

logger = logging.getLogger(__name__)


@dataclass
class TransferReport:
    topics: int = 0
    questions: int = 0
    results: int = 0
    skipped_questions: int = 0
    skipped_results: int = 0
    orphaned_results: int = 0


def copy_store(source: QuizRepository, target: QuizRepository) -> TransferReport:
    """
    Copy topics, questions (with answers) and results from ``source``.

    Ids are reassigned by ``target``. A topic whose title already exists in the
    target is merged into it; a question whose title already exists in that
    topic is skipped, and so are its results. Results of questions deleted from
    ``source`` have nothing to attach to: they are counted in both
    ``skipped_results`` and ``orphaned_results``.
    """
    report = TransferReport()
    copied: dict[int, Question] = {}
    skipped: set[int] = set()
    for topic in source.list_topics():
        existing = target.find_topic_by_title(topic.title)
        if existing is None:
            new_topic = target.save_topic(Topic(title=topic.title, description=topic.description))
            report.topics += 1
        else:
            new_topic = existing

        for question in source.find_questions_by_topic(topic.id):
            if target.question_title_exists(new_topic.id, question.title):
                skipped.add(question.id)
                report.skipped_questions += 1
                continue
            copied[question.id] = target.save_question(
                Question(
                    title=question.title,
                    body=question.body,
                    topic_id=new_topic.id,
                    answers=[Answer(text=answer.text, correct=answer.correct) for answer in question.answers],
                )
            )
            report.questions += 1

    for result in source.list_results():
        new_question = copied.get(result.question_id)
        if new_question is None:
            report.skipped_results += 1
            if result.question_id not in skipped:
                report.orphaned_results += 1
            continue
        target.add_result(replace(result, id=0, topic_id=new_question.topic_id, question_id=new_question.id))
        report.results += 1

    if report.orphaned_results:
        logger.warning("%d results belong to deleted questions and were not copied", report.orphaned_results)
    logger.info(
        "Copied %d topics, %d questions, %d results (%d questions, %d results skipped)",
        report.topics,
        report.questions,
        report.results,
        report.skipped_questions,
        report.skipped_results,
    )
    return report

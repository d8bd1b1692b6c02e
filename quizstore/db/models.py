"""SQLAlchemy rows for the four quiz tables."""
from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from .session import Base

# SQLite only auto-increments a column declared exactly as INTEGER PRIMARY KEY
IdType = BigInteger().with_variant(Integer, "sqlite")


class TopicRow(Base):
    __tablename__ = "Topics"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(IdType, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    questions = relationship("QuestionRow", back_populates="topic", cascade="all,delete-orphan", passive_deletes=True)


class QuestionRow(Base):
    __tablename__ = "Questions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(IdType, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    topic_id = Column(IdType, ForeignKey("Topics.id", ondelete="CASCADE"), nullable=False, index=True)

    topic = relationship("TopicRow", back_populates="questions")
    answers = relationship(
        "AnswerRow",
        back_populates="question",
        cascade="all,delete-orphan",
        passive_deletes=True,
        order_by="AnswerRow.id",
    )


class AnswerRow(Base):
    __tablename__ = "Answers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(IdType, primary_key=True, autoincrement=True)
    text = Column(String(255), nullable=False)
    correct = Column(Boolean, nullable=False, default=False)
    question_id = Column(IdType, ForeignKey("Questions.id", ondelete="CASCADE"), nullable=False, index=True)

    question = relationship("QuestionRow", back_populates="answers")


class QuizResultRow(Base):
    """Append-only history; kept when the referenced topic or question goes away."""

    __tablename__ = "QuizResults"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(IdType, primary_key=True, autoincrement=True)
    topic_id = Column(IdType, nullable=False, index=True)
    question_id = Column(IdType, nullable=False, index=True)
    correct = Column(Boolean, nullable=False)
    revealed = Column(Boolean, nullable=False, default=False)
    response_seconds = Column(Integer, nullable=False, default=0)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    score = Column(Integer, nullable=False, default=0)

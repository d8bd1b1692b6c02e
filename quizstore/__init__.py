"""
Quiz authoring and playing backend.

Topics, questions, answers and quiz results live behind a single repository
contract (``quizstore.repositories.base.QuizRepository``) that is backed either
by JSON files on disk or by a relational database through SQLAlchemy.
"""

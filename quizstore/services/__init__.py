"""
Use cases for quiz authoring and playing.

Each service is constructed with the repository the process opened at startup
and orchestrates it to enforce business rules (title lengths, "at least one
correct answer", scoring). Callers receive ``Outcome`` values and branch on
``Outcome.error`` instead of catching exceptions.
"""

"""
Core utilities shared across the quiz store.

This package hosts:
- configuration helpers (env vars, named environments, backend variants)
- the error taxonomy every backend translates its failures into
- logging setup for scripts and embedding applications

Repositories and services depend on these primitives instead of reading
os.environ or raising engine-specific exceptions directly.
"""

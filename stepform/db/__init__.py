"""Database bootstrap utilities for the form service.

Exposes engine construction and the SQL migrations runner. No ORM models are
defined; repositories issue SQL text through SQLAlchemy Core.
"""

from stepform.db.base import get_engine, reset_engine
from stepform.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "reset_engine",
    "apply_migrations",
]

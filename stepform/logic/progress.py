"""Derived views over a session: progress, completion and display title.

Everything here is a pure function of ``(session, catalog)``; nothing is
stored.
"""

from __future__ import annotations

from typing import Tuple

from stepform.logic.catalog import DEFAULT_CATALOG, ROLE_AGE, ROLE_NAME, Catalog
from stepform.logic.session_state import Session, get_answer

UNNAMED_TITLE = "Unnamed"


def answered_count(session: Session, catalog: Catalog = DEFAULT_CATALOG) -> int:
    """Count catalog answers whose trimmed text is non-empty.

    Stray keys outside the catalog are ignored so the count never exceeds
    ``catalog.total_questions``.
    """
    return sum(1 for key in catalog.keys() if get_answer(session, *key).strip())


def progress_percent(session: Session, catalog: Catalog = DEFAULT_CATALOG) -> int:
    total = catalog.total_questions
    if total == 0:
        return 0
    # integer half-up rounding of 100 * answered / total
    return (200 * answered_count(session, catalog) + total) // (2 * total)


def is_complete(session: Session, catalog: Catalog = DEFAULT_CATALOG) -> bool:
    return answered_count(session, catalog) == catalog.total_questions


def _role_answer(session: Session, catalog: Catalog, role: str) -> str:
    key = catalog.key_for_role(role)
    if key is None:
        return ""
    return get_answer(session, *key).strip()


def display_title(session: Session, catalog: Catalog = DEFAULT_CATALOG) -> str:
    """Human-readable label: ``"Alice (29)"``, ``"Alice"`` or ``"Unnamed"``.

    Reads the questions tagged with the ``name`` and ``age`` roles. A catalog
    with no ``name`` role always yields the placeholder.
    """
    name = _role_answer(session, catalog, ROLE_NAME)
    if not name:
        return UNNAMED_TITLE
    age = _role_answer(session, catalog, ROLE_AGE)
    return f"{name} ({age})" if age else name


def step_progress(cursor_index: int, catalog: Catalog = DEFAULT_CATALOG) -> Tuple[int, int]:
    """Return ``(current_step_number, step_count)`` for a "Step n of N" label."""
    return cursor_index + 1, catalog.step_count


def action_label(session: Session, catalog: Catalog = DEFAULT_CATALOG) -> str:
    return "View" if is_complete(session, catalog) else "Continue"


__all__ = [
    "UNNAMED_TITLE",
    "answered_count",
    "progress_percent",
    "is_complete",
    "display_title",
    "step_progress",
    "action_label",
]

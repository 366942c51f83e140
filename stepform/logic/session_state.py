"""In-memory session state and positional answer addressing.

A session is an immutable value: edits return a new ``Session`` with one key
replaced, so observers holding an older snapshot (e.g. an in-flight save)
never see it change underneath them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from stepform.logic.catalog import format_key


@dataclass(frozen=True)
class Session:
    identifier: Optional[str] = None
    answers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "answers", MappingProxyType(dict(self.answers)))

    @property
    def is_persisted(self) -> bool:
        return self.identifier is not None

    def with_identifier(self, identifier: str) -> "Session":
        return Session(identifier=identifier, answers=self.answers)

    def to_data(self) -> Dict[str, str]:
        """Plain dict copy of the answers, as sent to the store."""
        return dict(self.answers)


def get_answer(session: Session, step_index: int, question_index: int) -> str:
    return session.answers.get(format_key(step_index, question_index), "")


def set_answer(session: Session, step_index: int, question_index: int, text: str) -> Session:
    answers = dict(session.answers)
    answers[format_key(step_index, question_index)] = text
    return Session(identifier=session.identifier, answers=answers)


__all__ = ["Session", "get_answer", "set_answer"]

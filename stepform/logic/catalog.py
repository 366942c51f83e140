"""Static question catalog and the positional answer-key scheme.

Answers are addressed by ``(step_index, question_index)`` and serialised as
``"{step}-{question}"``. Reordering a catalog therefore invalidates every
stored session; append new steps or questions at the end instead.

Questions may carry a semantic ``role`` (e.g. ``"name"``) so derived views
look fields up by meaning rather than by position.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterator, NamedTuple, Optional, Tuple

from stepform.logic.errors import InvalidAnswerKey

ROLE_NAME = "name"
ROLE_AGE = "age"

_KEY_RE = re.compile(r"(0|[1-9][0-9]*)-(0|[1-9][0-9]*)")


class AnswerKey(NamedTuple):
    step_index: int
    question_index: int

    def token(self) -> str:
        return format_key(self.step_index, self.question_index)


def format_key(step_index: int, question_index: int) -> str:
    if step_index < 0 or question_index < 0:
        raise InvalidAnswerKey(f"negative index in answer key: {step_index}-{question_index}")
    return f"{step_index}-{question_index}"


def parse_key(token: str) -> AnswerKey:
    """Parse ``"3-12"`` into ``AnswerKey(3, 12)``.

    Exactly one dash, both parts non-negative decimal integers of any width
    without leading zeros, so each slot has a single spelling.
    """
    m = _KEY_RE.fullmatch(token or "")
    if not m:
        raise InvalidAnswerKey(f"malformed answer key: {token!r}")
    return AnswerKey(int(m.group(1)), int(m.group(2)))


def is_answer_key(token: str) -> bool:
    return bool(_KEY_RE.fullmatch(token or ""))


@dataclass(frozen=True)
class Question:
    prompt: str
    role: Optional[str] = None


@dataclass(frozen=True)
class Step:
    name: str
    questions: Tuple[Question, ...]


@dataclass(frozen=True)
class Catalog:
    steps: Tuple[Step, ...]
    total_questions: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "total_questions", sum(len(s.questions) for s in self.steps))
        roles = [q.role for s in self.steps for q in s.questions if q.role]
        if len(roles) != len(set(roles)):
            raise ValueError("question roles must be unique within a catalog")

    @property
    def step_count(self) -> int:
        return len(self.steps)

    def question_count(self, step_index: int) -> int:
        return len(self.steps[step_index].questions)

    def keys(self) -> Iterator[AnswerKey]:
        for i, step in enumerate(self.steps):
            for j in range(len(step.questions)):
                yield AnswerKey(i, j)

    def contains(self, key: AnswerKey) -> bool:
        return 0 <= key.step_index < self.step_count and 0 <= key.question_index < self.question_count(key.step_index)

    def key_for_role(self, role: str) -> Optional[AnswerKey]:
        for key in self.keys():
            if self.steps[key.step_index].questions[key.question_index].role == role:
                return key
        return None

    def to_dict(self) -> dict:
        return {
            "steps": [
                {
                    "name": s.name,
                    "questions": [
                        {"key": format_key(i, j), "prompt": q.prompt, "role": q.role}
                        for j, q in enumerate(s.questions)
                    ],
                }
                for i, s in enumerate(self.steps)
            ],
            "total_questions": self.total_questions,
        }


def build_catalog(*steps: Tuple[str, list]) -> Catalog:
    """Build a catalog from ``(name, [prompt | Question, ...])`` pairs."""
    built = []
    for name, prompts in steps:
        questions = tuple(p if isinstance(p, Question) else Question(str(p)) for p in prompts)
        built.append(Step(name=name, questions=questions))
    return Catalog(steps=tuple(built))


DEFAULT_CATALOG = build_catalog(
    (
        "Basic Info",
        [
            Question("What is your name?", role=ROLE_NAME),
            Question("What is your age?", role=ROLE_AGE),
        ],
    ),
    ("Preferences", ["What are you looking for in therapy?"]),
    ("Experience", ["Have you seen a therapist before?"]),
)


__all__ = [
    "ROLE_NAME",
    "ROLE_AGE",
    "AnswerKey",
    "Question",
    "Step",
    "Catalog",
    "DEFAULT_CATALOG",
    "build_catalog",
    "format_key",
    "parse_key",
    "is_answer_key",
]

"""Domain error taxonomy.

Answer text is never validated, so there is no validation error here: any
string (including empty) is accepted by the session layer.
"""

from __future__ import annotations


class StepformError(Exception):
    """Base class for all domain errors."""


class NotFound(StepformError):
    """Fetch or delete addressed an identifier the store does not hold."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"form not found: {identifier}")
        self.identifier = identifier


class TransportFailure(StepformError):
    """The store was unreachable or answered with something unusable."""


class SessionUnavailable(StepformError):
    """A session could not be loaded; the caller should start a new one."""

    def __init__(self, identifier: str, cause: StepformError) -> None:
        super().__init__(f"session {identifier} unavailable: {cause}")
        self.identifier = identifier
        self.cause = cause


class InvalidAnswerKey(StepformError, ValueError):
    """An answer key token is not of the form "<step>-<question>"."""


__all__ = [
    "StepformError",
    "NotFound",
    "TransportFailure",
    "SessionUnavailable",
    "InvalidAnswerKey",
]

"""Domain event constants and publisher.

Save and delete flows publish here; events are logged and buffered in-memory
so tests can observe them.
"""

from __future__ import annotations

from typing import Any, Dict, List
import logging

logger = logging.getLogger(__name__)

FORM_SAVED = "form.saved"
FORM_DELETED = "form.deleted"

# In-memory buffer for domain events (test-only visibility)
EVENT_BUFFER: List[Dict[str, Any]] = []


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    logger.info("event_publish type=%s payload=%s", event_type, payload)
    EVENT_BUFFER.append({"type": event_type, "payload": payload})


def get_buffered_events(clear: bool = True) -> List[Dict[str, Any]]:
    """Return buffered domain events; optionally clear the buffer."""
    events = list(EVENT_BUFFER)
    if clear:
        EVENT_BUFFER.clear()
    return events


__all__ = [
    "FORM_SAVED",
    "FORM_DELETED",
    "publish",
    "get_buffered_events",
    "EVENT_BUFFER",
]

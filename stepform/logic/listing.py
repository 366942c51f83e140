"""Summary list of saved sessions.

The listing owns an ordered cache of sessions keyed by identifier. ``refresh``
re-syncs it from the store; it is idempotent and replaces the cache
wholesale. Order is whatever the store returns and is not an invariant
(the SQL store sorts by last update, the in-memory one by insertion).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List

from stepform.logic.catalog import DEFAULT_CATALOG, Catalog
from stepform.logic.errors import NotFound, TransportFailure
from stepform.logic.progress import action_label, display_title, is_complete, progress_percent
from stepform.logic.session_state import Session
from stepform.logic.store_gateway import StoreGateway

logger = logging.getLogger(__name__)

DELETE_PROMPT = "Delete this questionnaire?"

Confirm = Callable[[str], bool]


@dataclass(frozen=True)
class ListingEntry:
    identifier: str
    title: str
    progress: int
    complete: bool
    action: str


def summarize(session: Session, catalog: Catalog = DEFAULT_CATALOG) -> ListingEntry:
    if session.identifier is None:
        raise ValueError("only persisted sessions can be listed")
    return ListingEntry(
        identifier=session.identifier,
        title=display_title(session, catalog),
        progress=progress_percent(session, catalog),
        complete=is_complete(session, catalog),
        action=action_label(session, catalog),
    )


class ListingView:
    def __init__(self, gateway: StoreGateway, confirm: Confirm, catalog: Catalog = DEFAULT_CATALOG) -> None:
        self.gateway = gateway
        self.confirm = confirm
        self.catalog = catalog
        self._cache: Dict[str, ListingEntry] = {}
        # True when the last refresh could not reach the store
        self.degraded = False

    async def refresh(self) -> List[ListingEntry]:
        """Reload the cache from the store.

        A transport failure renders as an empty list and is logged, never
        raised.
        """
        try:
            sessions = await self.gateway.list()
        except TransportFailure:
            logger.error("listing_refresh_failed", exc_info=True)
            self._cache = {}
            self.degraded = True
            return []
        self._cache = {s.identifier: summarize(s, self.catalog) for s in sessions if s.identifier}
        self.degraded = False
        return self.entries()

    def entries(self) -> List[ListingEntry]:
        return list(self._cache.values())

    def __len__(self) -> int:
        return len(self._cache)

    def heading(self) -> str:
        return f"Saved ({len(self._cache)})"

    async def delete(self, identifier: str) -> bool:
        """Delete after user confirmation.

        Returns True only when the store confirmed the delete; only then is
        the entry dropped from the cache (no re-fetch).
        """
        if not self.confirm(DELETE_PROMPT):
            logger.info("listing_delete_declined identifier=%s", identifier)
            return False
        try:
            await self.gateway.delete(identifier)
        except NotFound:
            logger.warning("listing_delete_not_found identifier=%s", identifier)
            return False
        except TransportFailure:
            logger.error("listing_delete_failed identifier=%s", identifier, exc_info=True)
            return False
        self._cache.pop(identifier, None)
        logger.info("listing_delete_ok identifier=%s", identifier)
        return True


__all__ = ["DELETE_PROMPT", "ListingEntry", "ListingView", "summarize"]

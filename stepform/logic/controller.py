"""Session controller: cursor navigation, answer edits, load and save.

The controller's state is an explicit ``ControllerState`` value holding the
session and the navigation cursor. Transitions replace that value; the pure
``Cursor`` methods carry the clamping rules so they can be tested alone.

Saves always send the full answer mapping. The first successful save of a
draft assigns an identifier, which the controller adopts for every later
operation. Saves may overlap with further edits: each save sends the snapshot
taken when it started, and the store keeps whichever write lands last.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

import anyio
from anyio.abc import TaskGroup

from stepform.logic.catalog import DEFAULT_CATALOG, Catalog, Step
from stepform.logic.errors import NotFound, SessionUnavailable, TransportFailure
from stepform.logic.progress import display_title, is_complete, progress_percent, step_progress
from stepform.logic.session_state import Session, get_answer, set_answer
from stepform.logic.store_gateway import StoreGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cursor:
    index: int
    step_count: int

    def __post_init__(self) -> None:
        if self.step_count < 1:
            raise ValueError("a cursor needs at least one step")
        if not 0 <= self.index < self.step_count:
            raise ValueError(f"cursor {self.index} outside 0..{self.step_count - 1}")

    @classmethod
    def start(cls, step_count: int) -> "Cursor":
        return cls(0, step_count)

    @property
    def at_start(self) -> bool:
        return self.index == 0

    @property
    def at_end(self) -> bool:
        return self.index == self.step_count - 1

    def back(self) -> "Cursor":
        return replace(self, index=max(0, self.index - 1))

    def next(self) -> "Cursor":
        return replace(self, index=min(self.step_count - 1, self.index + 1))


@dataclass(frozen=True)
class ControllerState:
    session: Session
    cursor: Cursor


class SessionController:
    def __init__(
        self,
        gateway: StoreGateway,
        catalog: Catalog = DEFAULT_CATALOG,
        session: Optional[Session] = None,
    ) -> None:
        self.gateway = gateway
        self.catalog = catalog
        self.state = ControllerState(session or Session(), Cursor.start(catalog.step_count))
        # True when a requested session could not be loaded and a fresh draft was started
        self.redirected = False
        self._create_lock = anyio.Lock()
        # bumped whenever load() replaces the session wholesale
        self._generation = 0

    @classmethod
    async def resume_or_start(
        cls,
        gateway: StoreGateway,
        identifier: Optional[str] = None,
        catalog: Catalog = DEFAULT_CATALOG,
    ) -> "SessionController":
        """Open ``identifier`` if given, else a new draft.

        A session that cannot be loaded yields a fresh unidentified draft with
        ``redirected`` set; no partial state is kept.
        """
        controller = cls(gateway, catalog)
        if identifier:
            try:
                await controller.load(identifier)
            except SessionUnavailable:
                controller.redirected = True
        return controller

    # -- read side ---------------------------------------------------------

    @property
    def session(self) -> Session:
        return self.state.session

    @property
    def cursor(self) -> Cursor:
        return self.state.cursor

    @property
    def identifier(self) -> Optional[str]:
        return self.state.session.identifier

    @property
    def current_step(self) -> Step:
        return self.catalog.steps[self.state.cursor.index]

    def answer(self, question_index: int) -> str:
        return get_answer(self.state.session, self.state.cursor.index, question_index)

    def progress_percent(self) -> int:
        return progress_percent(self.state.session, self.catalog)

    def is_complete(self) -> bool:
        return is_complete(self.state.session, self.catalog)

    def display_title(self) -> str:
        return display_title(self.state.session, self.catalog)

    def step_label(self) -> str:
        current, total = step_progress(self.state.cursor.index, self.catalog)
        return f"Step {current} of {total}"

    # -- navigation and edits ---------------------------------------------

    def back(self) -> Cursor:
        self.state = replace(self.state, cursor=self.state.cursor.back())
        return self.state.cursor

    def next(self) -> Cursor:
        self.state = replace(self.state, cursor=self.state.cursor.next())
        return self.state.cursor

    def edit_answer(self, question_index: int, text: str) -> Session:
        """Replace one answer on the current step.

        An out-of-range ``question_index`` is a caller bug and raises
        ``IndexError``.
        """
        step_index = self.state.cursor.index
        count = self.catalog.question_count(step_index)
        if not 0 <= question_index < count:
            raise IndexError(f"question {question_index} outside step {step_index} (has {count})")
        self.state = replace(self.state, session=set_answer(self.state.session, step_index, question_index, text))
        return self.state.session

    # -- persistence -------------------------------------------------------

    async def load(self, identifier: str) -> Session:
        """Replace the in-memory session with the stored one; cursor to 0.

        On not-found or transport failure the controller falls back to a
        fresh draft and raises ``SessionUnavailable``. Never retried.
        """
        try:
            session = await self.gateway.fetch(identifier)
        except (NotFound, TransportFailure) as e:
            logger.warning("session_load_failed identifier=%s error=%s", identifier, e)
            self._generation += 1
            self.state = ControllerState(Session(), Cursor.start(self.catalog.step_count))
            raise SessionUnavailable(identifier, e) from e
        self._generation += 1
        self.state = ControllerState(session, Cursor.start(self.catalog.step_count))
        logger.info("session_loaded identifier=%s answers=%d", identifier, len(session.answers))
        return session

    async def save(self) -> str:
        """Send the full answer mapping; return the session identifier.

        ``TransportFailure`` propagates to the caller and is not retried;
        saving again is safe because the store overwrites in full.
        """
        if self.identifier is None:
            async with self._create_lock:
                # a concurrent first save may have assigned the id while we waited
                if self.identifier is None:
                    snapshot = self.state.session
                    generation = self._generation
                    identifier = await self.gateway.create_or_update(None, snapshot.to_data())
                    self._adopt(identifier, generation)
                    logger.info("session_created identifier=%s", identifier)
                    return identifier
        identifier = self.identifier
        snapshot = self.state.session
        await self.gateway.create_or_update(identifier, snapshot.to_data())
        logger.info("session_saved identifier=%s answers=%d", identifier, len(snapshot.answers))
        return identifier

    def _adopt(self, identifier: str, generation: int) -> None:
        if generation != self._generation or self.identifier is not None:
            # a load replaced the draft while its first save was in flight
            logger.info("session_adopt_skipped identifier=%s", identifier)
            return
        # answers edited while the first save was in flight are kept
        self.state = replace(self.state, session=self.state.session.with_identifier(identifier))

    async def save_quietly(self) -> Optional[str]:
        """Save, logging instead of raising on store failure.

        Returns the identifier, or None when the save did not reach the store.
        """
        try:
            return await self.save()
        except TransportFailure:
            logger.error("session_save_failed identifier=%s", self.identifier, exc_info=True)
            return None

    def save_in_background(self, task_group: TaskGroup) -> None:
        """Fire a save on ``task_group`` without waiting for it.

        Leaving the page does not cancel the request; a failure is logged.
        """
        task_group.start_soon(self.save_quietly)


__all__ = ["Cursor", "ControllerState", "SessionController"]

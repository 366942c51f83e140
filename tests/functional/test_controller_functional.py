"""Session controller: navigation, edits, load/resume and save."""

from __future__ import annotations

from typing import List, Optional

import anyio
import pytest

from stepform.logic.catalog import DEFAULT_CATALOG
from stepform.logic.controller import Cursor, SessionController
from stepform.logic.errors import NotFound, SessionUnavailable, TransportFailure
from stepform.logic.store_gateway import InMemoryStoreGateway

pytestmark = pytest.mark.anyio


class RecordingGateway(InMemoryStoreGateway):
    """In-memory store that records calls and can be told to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: List[tuple] = []
        self.fail_with: Optional[Exception] = None
        self.next_id = "abc-123"
        self.gate: Optional[anyio.Event] = None

    async def create_or_update(self, identifier, answers):
        self.calls.append(("create_or_update", identifier, dict(answers)))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        return await super().create_or_update(identifier or self.next_id, answers)

    async def fetch(self, identifier):
        self.calls.append(("fetch", identifier))
        if self.fail_with is not None:
            raise self.fail_with
        return await super().fetch(identifier)


# -- cursor ----------------------------------------------------------------

def test_cursor_clamps_at_bounds():
    c = Cursor.start(3)
    assert c.at_start and c.back() == c
    last = c.next().next()
    assert last.index == 2 and last.at_end
    assert last.next() == last
    assert last.back().index == 1


def test_cursor_rejects_out_of_range_construction():
    with pytest.raises(ValueError):
        Cursor(3, 3)
    with pytest.raises(ValueError):
        Cursor(0, 0)


def test_controller_navigation_is_noop_at_bounds():
    ctl = SessionController(InMemoryStoreGateway())
    assert ctl.back().index == 0
    assert ctl.step_label() == "Step 1 of 3"
    for _ in range(5):
        ctl.next()
    assert ctl.cursor.index == DEFAULT_CATALOG.step_count - 1
    assert ctl.step_label() == "Step 3 of 3"
    assert ctl.current_step.name == "Experience"


def test_edit_answer_addresses_current_step():
    ctl = SessionController(InMemoryStoreGateway())
    ctl.edit_answer(1, "29")
    ctl.next()
    ctl.edit_answer(0, "anxiety")
    assert ctl.session.to_data() == {"0-1": "29", "1-0": "anxiety"}
    assert ctl.answer(0) == "anxiety"


def test_edit_answer_out_of_range_is_a_programming_error():
    ctl = SessionController(InMemoryStoreGateway())
    ctl.next()
    with pytest.raises(IndexError):
        ctl.edit_answer(1, "x")
    with pytest.raises(IndexError):
        ctl.edit_answer(-1, "x")


# -- save ------------------------------------------------------------------

async def test_end_to_end_save_and_resume():
    gw = RecordingGateway()
    ctl = SessionController(gw)
    ctl.edit_answer(0, "Alice")
    ctl.edit_answer(1, "29")

    assert await ctl.save() == "abc-123"
    assert ctl.identifier == "abc-123"
    assert ctl.progress_percent() == 50
    assert ctl.display_title() == "Alice (29)"

    ctl.next()
    ctl.edit_answer(0, "coping skills")
    ctl.next()
    ctl.edit_answer(0, "no")
    assert await ctl.save() == "abc-123"
    assert ctl.progress_percent() == 100
    assert ctl.is_complete()

    records = await gw.list()
    assert [s.identifier for s in records] == ["abc-123"]
    # second save targeted the adopted identifier
    assert [c[1] for c in gw.calls] == [None, "abc-123"]

    resumed = await SessionController.resume_or_start(gw, "abc-123")
    assert resumed.cursor.index == 0
    assert resumed.session.to_data() == ctl.session.to_data()
    assert not resumed.redirected


async def test_save_twice_is_idempotent():
    gw = RecordingGateway()
    ctl = SessionController(gw)
    ctl.edit_answer(0, "Alice")
    first = await ctl.save()
    once = (await gw.fetch(first)).to_data()
    second = await ctl.save()
    assert first == second
    assert (await gw.fetch(first)).to_data() == once
    assert len(await gw.list()) == 1


async def test_save_sends_full_mapping_not_a_diff():
    gw = RecordingGateway()
    ctl = SessionController(gw)
    ctl.edit_answer(0, "Alice")
    await ctl.save()
    ctl.edit_answer(1, "29")
    await ctl.save()
    assert gw.calls[-1][2] == {"0-0": "Alice", "0-1": "29"}


async def test_overlapping_first_saves_create_one_record():
    gw = RecordingGateway()
    gw.gate = anyio.Event()
    ctl = SessionController(gw)
    ctl.edit_answer(0, "Alice")
    results: List[str] = []

    async def run_save():
        results.append(await ctl.save())

    async with anyio.create_task_group() as tg:
        tg.start_soon(run_save)
        while not gw.calls:
            await anyio.sleep(0)
        # typing continues while the first save is in flight
        ctl.edit_answer(1, "29")
        tg.start_soon(run_save)
        await anyio.sleep(0)
        gw.gate.set()

    assert results == ["abc-123", "abc-123"]
    assert [c[1] for c in gw.calls] == [None, "abc-123"]
    assert (await gw.fetch("abc-123")).to_data() == {"0-0": "Alice", "0-1": "29"}
    # the edit made during the first save survived identifier adoption
    assert ctl.session.to_data() == {"0-0": "Alice", "0-1": "29"}


async def test_save_transport_failure_propagates_and_manual_retry_works():
    gw = RecordingGateway()
    gw.fail_with = TransportFailure("store down")
    ctl = SessionController(gw)
    ctl.edit_answer(0, "Alice")
    with pytest.raises(TransportFailure):
        await ctl.save()
    assert ctl.identifier is None

    gw.fail_with = None
    assert await ctl.save() == "abc-123"


async def test_background_save_failure_is_logged_not_raised(caplog):
    gw = RecordingGateway()
    gw.fail_with = TransportFailure("store down")
    ctl = SessionController(gw)
    ctl.edit_answer(0, "Alice")
    async with anyio.create_task_group() as tg:
        ctl.save_in_background(tg)
    assert ctl.identifier is None
    assert any("session_save_failed" in r.getMessage() for r in caplog.records)


async def test_background_save_adopts_identifier():
    gw = RecordingGateway()
    ctl = SessionController(gw)
    ctl.edit_answer(0, "Alice")
    async with anyio.create_task_group() as tg:
        ctl.save_in_background(tg)
    assert ctl.identifier == "abc-123"


# -- load ------------------------------------------------------------------

async def test_load_replaces_state_and_resets_cursor():
    gw = RecordingGateway()
    await gw.create_or_update("abc-123", {"0-0": "Alice", "2-0": "yes"})
    ctl = SessionController(gw)
    ctl.edit_answer(1, "stale")
    ctl.next()
    await ctl.load("abc-123")
    assert ctl.cursor.index == 0
    assert ctl.session.to_data() == {"0-0": "Alice", "2-0": "yes"}
    assert ctl.identifier == "abc-123"


@pytest.mark.parametrize("failure", [None, TransportFailure("unreachable")])
async def test_resume_unknown_or_unreachable_starts_fresh(failure):
    gw = RecordingGateway()
    gw.fail_with = failure
    ctl = await SessionController.resume_or_start(gw, "missing")
    assert ctl.redirected
    assert ctl.identifier is None
    assert ctl.session.to_data() == {}
    assert ctl.cursor.index == 0


async def test_load_failure_raises_session_unavailable_with_cause():
    gw = RecordingGateway()
    ctl = SessionController(gw)
    ctl.edit_answer(0, "draft text")
    with pytest.raises(SessionUnavailable) as info:
        await ctl.load("missing")
    assert isinstance(info.value.cause, NotFound)
    # no stale state survives the failed load
    assert ctl.session.to_data() == {}


async def test_resume_without_identifier_does_not_touch_store():
    gw = RecordingGateway()
    ctl = await SessionController.resume_or_start(gw, None)
    assert gw.calls == []
    assert not ctl.redirected


async def test_load_during_first_save_keeps_loaded_identifier():
    gw = RecordingGateway()
    await gw.create_or_update("existing", {"0-0": "Bob"})
    gw.calls.clear()
    gw.next_id = "draft-1"
    gw.gate = anyio.Event()
    ctl = SessionController(gw)
    ctl.edit_answer(0, "Alice")
    results: List[str] = []

    async def run_save():
        results.append(await ctl.save())

    async with anyio.create_task_group() as tg:
        tg.start_soon(run_save)
        while not gw.calls:
            await anyio.sleep(0)
        await ctl.load("existing")
        gw.gate.set()

    # the draft was persisted under its own id, but the controller stays on the loaded session
    assert results == ["draft-1"]
    assert ctl.identifier == "existing"
    assert ctl.session.to_data() == {"0-0": "Bob"}

    ctl.edit_answer(0, "Bob B.")
    assert await ctl.save() == "existing"
    assert (await gw.fetch("existing")).to_data() == {"0-0": "Bob B."}
    assert (await gw.fetch("draft-1")).to_data() == {"0-0": "Alice"}

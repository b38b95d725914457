from __future__ import annotations

import asyncio
import logging

import pytest

from pysimrail.exceptions import SimRailFetchError
from pysimrail.models.timetable import Timetable
from pysimrail.timetable import TimetableCoordinator, TimetableStatus


class _Harness:
    """Controllable fetch backend plus a mutable "current selection"."""

    def __init__(self) -> None:
        self.current: str | None = None
        self.pending: dict[str, list[asyncio.Future[Timetable]]] = {}

    async def fetch(self, train_id: str) -> Timetable:
        future: asyncio.Future[Timetable] = asyncio.get_running_loop().create_future()
        self.pending.setdefault(train_id, []).append(future)
        return await future

    def reply(self, train_id: str, *stop_names: str) -> None:
        stops = [{"StopName": name} for name in stop_names]
        self.pending[train_id].pop(0).set_result(Timetable.from_hub(train_id, {"Stops": stops}))

    def fail(self, train_id: str) -> None:
        self.pending[train_id].pop(0).set_exception(SimRailFetchError("boom", train_id=train_id))

    def coordinator(self) -> TimetableCoordinator:
        return TimetableCoordinator(self.fetch, current_id=lambda: self.current)


async def _drain() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_response_applied_for_current_selection() -> None:
    harness = _Harness()
    coordinator = harness.coordinator()

    harness.current = "A"
    coordinator.request("A")
    assert coordinator.state.status == TimetableStatus.LOADING
    assert coordinator.state.train_id == "A"
    await _drain()
    harness.reply("A", "Alpha", "Beta")
    await _drain()

    state = coordinator.state
    assert state.status == TimetableStatus.READY
    assert state.train_id == "A"
    assert [stop.name for stop in state.timetable.stops] == ["Alpha", "Beta"]


@pytest.mark.asyncio
async def test_superseded_response_is_discarded() -> None:
    harness = _Harness()
    coordinator = harness.coordinator()

    harness.current = "A"
    coordinator.request("A")
    harness.current = "B"
    coordinator.request("B")
    await _drain()

    harness.reply("A", "from A")
    await _drain()
    assert coordinator.state.status == TimetableStatus.LOADING
    assert coordinator.state.train_id == "B"
    assert coordinator.state.timetable is None

    harness.reply("B", "from B")
    await _drain()
    assert coordinator.state.status == TimetableStatus.READY
    assert coordinator.state.timetable.stops[0].name == "from B"


@pytest.mark.asyncio
async def test_late_response_after_b_arrived_does_not_overwrite() -> None:
    harness = _Harness()
    coordinator = harness.coordinator()

    harness.current = "A"
    coordinator.request("A")
    harness.current = "B"
    coordinator.request("B")
    await _drain()

    harness.reply("B", "from B")
    await _drain()
    harness.reply("A", "from A")
    await _drain()

    assert coordinator.state.train_id == "B"
    assert coordinator.state.timetable.stops[0].name == "from B"


@pytest.mark.asyncio
async def test_reselecting_same_train_drops_older_failure() -> None:
    harness = _Harness()
    coordinator = harness.coordinator()

    harness.current = "A"
    coordinator.request("A")
    harness.current = "B"
    coordinator.request("B")
    harness.current = "A"
    coordinator.request("A")
    await _drain()

    harness.pending["A"][1].set_result(Timetable.from_hub("A", [{"StopName": "fresh"}]))
    await _drain()
    assert coordinator.state.status == TimetableStatus.READY

    harness.fail("A")
    harness.reply("B", "from B")
    await _drain()

    state = coordinator.state
    assert state.status == TimetableStatus.READY
    assert state.train_id == "A"
    assert [stop.name for stop in state.timetable.stops] == ["fresh"]


@pytest.mark.asyncio
async def test_reselecting_same_train_drops_older_success() -> None:
    harness = _Harness()
    coordinator = harness.coordinator()

    harness.current = "A"
    coordinator.request("A")
    harness.current = "B"
    coordinator.request("B")
    harness.current = "A"
    coordinator.request("A")
    await _drain()

    harness.reply("A", "old")
    await _drain()
    assert coordinator.state.status == TimetableStatus.LOADING

    harness.reply("A", "fresh")
    await _drain()
    assert [stop.name for stop in coordinator.state.timetable.stops] == ["fresh"]


@pytest.mark.asyncio
async def test_fetch_error_shows_no_data_without_retry() -> None:
    harness = _Harness()
    coordinator = harness.coordinator()

    harness.current = "A"
    coordinator.request("A")
    await _drain()
    harness.fail("A")
    await _drain()

    assert coordinator.state.status == TimetableStatus.NO_DATA
    assert coordinator.state.train_id == "A"
    assert harness.pending["A"] == []
    assert coordinator.pending == 0


@pytest.mark.asyncio
async def test_empty_timetable_is_no_data() -> None:
    harness = _Harness()
    coordinator = harness.coordinator()

    harness.current = "A"
    coordinator.request("A")
    await _drain()
    harness.reply("A")
    await _drain()

    assert coordinator.state.status == TimetableStatus.NO_DATA


@pytest.mark.asyncio
async def test_response_after_deselect_is_discarded() -> None:
    harness = _Harness()
    coordinator = harness.coordinator()

    harness.current = "A"
    coordinator.request("A")
    await _drain()
    harness.current = None
    coordinator.clear()
    harness.reply("A", "late")
    await _drain()

    assert coordinator.state.status == TimetableStatus.IDLE
    assert coordinator.state.timetable is None


@pytest.mark.asyncio
async def test_aclose_cancels_in_flight_requests() -> None:
    harness = _Harness()
    coordinator = harness.coordinator()

    harness.current = "A"
    task = coordinator.request("A")
    await _drain()

    await coordinator.aclose()

    assert task.cancelled()
    assert coordinator.pending == 0


@pytest.mark.asyncio
async def test_failing_on_change_callback_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    harness = _Harness()

    def broken(_state: object) -> None:
        raise RuntimeError("render bug")

    coordinator = TimetableCoordinator(harness.fetch, current_id=lambda: harness.current, on_change=broken)
    harness.current = "A"

    with caplog.at_level(logging.ERROR, logger="pysimrail.timetable"):
        coordinator.request("A")

    assert coordinator.state.status == TimetableStatus.LOADING
    assert any(record.exc_info for record in caplog.records)
    await coordinator.aclose()

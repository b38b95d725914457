"""Timetable fetch coordination.

One request per entry into ``Selected(id)``. Only the newest request may
publish its response, and only while its train is still selected, so a
slow reply for an earlier selection (even of the same train) can never
replace the timetable of a later one.
"""

from __future__ import annotations

import asyncio
import dataclasses
import itertools
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum

from pysimrail.exceptions import SimRailError
from pysimrail.models.timetable import Timetable

_logger = logging.getLogger(__name__)


class TimetableStatus(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    NO_DATA = "no_data"


@dataclasses.dataclass(frozen=True)
class TimetableState:
    status: TimetableStatus = TimetableStatus.IDLE
    train_id: str | None = None
    timetable: Timetable | None = None


class TimetableCoordinator:
    """Issue timetable requests and drop superseded responses.

    Parameters
    ----------
    fetch
        Coroutine function returning the timetable of a train id. Failures
        must surface as :class:`~pysimrail.exceptions.SimRailError`.
    current_id
        Returns the currently selected train id (or ``None``).
    on_change
        Optional callback invoked with every new :class:`TimetableState`.
    """

    def __init__(
        self,
        fetch: Callable[[str], Awaitable[Timetable]],
        *,
        current_id: Callable[[], str | None],
        on_change: Callable[[TimetableState], None] | None = None,
    ) -> None:
        self._fetch = fetch
        self._current_id = current_id
        self._on_change = on_change
        self._state = TimetableState()
        self._tasks: set[asyncio.Task[None]] = set()
        self._generations = itertools.count(1)
        self._latest = 0

    @property
    def state(self) -> TimetableState:
        return self._state

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def _set_state(self, state: TimetableState) -> None:
        self._state = state
        if self._on_change is not None:
            try:
                self._on_change(state)
            except Exception:
                _logger.exception("Timetable on_change callback failed")

    def request(self, train_id: str) -> asyncio.Task[None]:
        """Start loading the timetable of *train_id*; must run inside the event loop."""
        self._latest = next(self._generations)
        self._set_state(TimetableState(status=TimetableStatus.LOADING, train_id=train_id))
        task = asyncio.get_running_loop().create_task(self._load(train_id, self._latest))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _is_current(self, train_id: str, generation: int) -> bool:
        """Only the newest request, for the still-selected train, may publish."""
        return generation == self._latest and self._current_id() == train_id

    async def _load(self, train_id: str, generation: int) -> None:
        try:
            timetable = await self._fetch(train_id)
        except SimRailError as exc:
            _logger.warning("Failed to get timetable for train %s: %s", train_id, exc)
            if self._is_current(train_id, generation):
                self._set_state(TimetableState(status=TimetableStatus.NO_DATA, train_id=train_id))
            return

        if not self._is_current(train_id, generation):
            _logger.debug("Discarding superseded timetable for train %s", train_id)
            return

        status = TimetableStatus.NO_DATA if timetable.is_empty else TimetableStatus.READY
        self._set_state(TimetableState(status=status, train_id=train_id, timetable=timetable))

    def clear(self) -> None:
        """Reset to idle; in-flight responses will be discarded."""
        self._latest = next(self._generations)
        if self._state.status != TimetableStatus.IDLE:
            self._set_state(TimetableState())

    async def aclose(self) -> None:
        """Cancel every in-flight request."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

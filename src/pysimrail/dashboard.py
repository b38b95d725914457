"""Live train dashboard.

Wires the hub connection, the train store, marker reconciliation,
selection and timetable loading into one explicit context.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from pysimrail.config import SimRailConfig
from pysimrail.connection import HubConnection
from pysimrail.exceptions import SimRailError
from pysimrail.markers import MapSurface, MarkerReconciler
from pysimrail.models.server import ServerEntity
from pysimrail.models.train import TrainEntity
from pysimrail.state.events import (
    ChannelEvent,
    ConnectionStatus,
    ConnectionStatusChanged,
    ServersReceived,
    StoreChange,
    TrainPositionsReceived,
    TrainsReceived,
)
from pysimrail.state.selection import SelectionManager
from pysimrail.state.store import EntityStore
from pysimrail.state.view import TrainListItem, filter_trains, list_items
from pysimrail.timetable import TimetableCoordinator, TimetableState

_logger = logging.getLogger(__name__)

NO_DATA = "no data"


@dataclasses.dataclass(frozen=True)
class TrainDetails:
    """Read model for the detail panel of the selected train."""

    id: str
    number: str
    route: str
    velocity: float
    driver_name: str | None
    category: str
    timetable: TimetableState

    @property
    def driver_label(self) -> str:
        return self.driver_name or NO_DATA


class Dashboard:
    """Async live view of the trains on one simulation server.

    Usage::

        async with Dashboard(config, surface) as dashboard:
            dashboard.set_search("421")
            for item in dashboard.list_items():
                ...

    Every inbound snapshot is applied to the store, then markers and
    selection are recomputed from the new store state. Connection failures
    only change :attr:`status`; they are never raised from here.
    """

    def __init__(
        self,
        config: SimRailConfig,
        surface: MapSurface,
        *,
        connection: HubConnection | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._surface = surface
        self._connection = connection if connection is not None else HubConnection(config, session=session)
        self._store = EntityStore()
        self._markers = MarkerReconciler(surface, on_click=self.select)
        self._timetables = TimetableCoordinator(
            self._connection.get_timetable,
            current_id=lambda: self._selection.selected_id,
        )
        self._selection = SelectionManager(
            self._store,
            on_selected=self._on_selected,
            on_cleared=self._timetables.clear,
        )
        self._servers: tuple[ServerEntity, ...] = ()
        self._query = ""
        self._status = ConnectionStatus.DISCONNECTED
        self._status_detail = ""
        self._unsubscribe: Callable[[], None] | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> Dashboard:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._connection.subscribe(self.handle_event)
        if not await self._connection.start():
            _logger.warning("Dashboard started without a hub connection (%s)", self._status_detail)

    async def close(self) -> None:
        await self._timetables.aclose()
        # Stay subscribed until the connection has reported its final status.
        await self._connection.stop()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._markers.clear()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def config(self) -> SimRailConfig:
        return self._config

    @property
    def store(self) -> EntityStore:
        return self._store

    @property
    def markers(self) -> MarkerReconciler:
        return self._markers

    @property
    def servers(self) -> tuple[ServerEntity, ...]:
        return self._servers

    @property
    def current_server(self) -> str:
        return self._connection.current_server

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def status_label(self) -> str:
        return self._status.label

    @property
    def initial_view(self) -> tuple[tuple[float, float], int]:
        """Map centre and zoom before any train is focused."""
        return self._config.map_center, self._config.map_zoom

    @property
    def search(self) -> str:
        return self._query

    @property
    def selected_id(self) -> str | None:
        return self._selection.selected_id

    @property
    def timetable(self) -> TimetableState:
        return self._timetables.state

    def visible_trains(self) -> list[TrainEntity]:
        return filter_trains(self._store.trains(), self._query)

    def list_items(self) -> list[TrainListItem]:
        return list_items(self._store.trains(), self._query)

    def details(self) -> TrainDetails | None:
        train = self._selection.selected_train
        if train is None:
            return None
        return TrainDetails(
            id=train.id,
            number=train.number,
            route=train.route,
            velocity=train.velocity,
            driver_name=train.driver_name,
            category=train.category,
            timetable=self._timetables.state,
        )

    # ------------------------------------------------------------------
    # Inbound events
    # ------------------------------------------------------------------

    def handle_event(self, event: ChannelEvent) -> None:
        """Apply one channel event; events are handled strictly one at a time."""
        if isinstance(event, TrainsReceived):
            self._after_store_change(self._store.apply_full_list(event.trains))
        elif isinstance(event, TrainPositionsReceived):
            self._after_store_change(self._store.apply_position_snapshot(event.positions))
        elif isinstance(event, ServersReceived):
            self._servers = event.servers
            _logger.debug("Received %d servers", len(event.servers))
        elif isinstance(event, ConnectionStatusChanged):
            self._status = event.status
            self._status_detail = event.detail

    def _after_store_change(self, change: StoreChange) -> None:
        self._markers.reconcile(self._store)
        self._selection.on_store_changed()
        if change.changed:
            _logger.debug(
                "Store now holds %d trains (+%d -%d ~%d)",
                len(self._store),
                len(change.added),
                len(change.removed),
                len(change.updated),
            )

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def select(self, train_id: str) -> bool:
        """Focus a train (marker click or list click)."""
        return self._selection.select(train_id)

    def deselect(self) -> None:
        """Back to the list."""
        self._selection.deselect()

    def set_search(self, query: str) -> None:
        self._query = query

    async def switch_server(self, server_code: str) -> bool:
        """Follow another server; the next snapshots replace the current trains."""
        try:
            await self._connection.switch_server(server_code)
        except SimRailError as exc:
            _logger.warning("Could not switch to server %s: %s", server_code, exc)
            return False
        return True

    def _on_selected(self, train_id: str) -> None:
        train = self._store.get(train_id)
        if train is None:
            return
        self._surface.focus(train.latitude, train.longitude, self._config.focus_zoom)
        handle = self._markers.handle_for(train_id)
        if handle is not None:
            self._surface.open_label(handle)
        self._timetables.request(train_id)

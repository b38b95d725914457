"""Map marker reconciliation.

Owns the registry of realized markers (train id -> map handle) and keeps
it one-to-one with the train store. Map drawing itself is delegated to a
:class:`MapSurface` implementation.
"""

from __future__ import annotations

import dataclasses
import functools
import logging
from collections.abc import Callable
from typing import Any, Protocol

from pysimrail._constants import marker_label
from pysimrail.state.store import EntityStore

_logger = logging.getLogger(__name__)


class MapSurface(Protocol):
    """Structural interface of the map collaborator.

    Handles returned by :meth:`create_marker` are opaque to pysimrail.
    """

    def create_marker(
        self,
        latitude: float,
        longitude: float,
        *,
        label: str,
        on_click: Callable[[], None],
    ) -> Any: ...

    def move_marker(self, handle: Any, latitude: float, longitude: float) -> None: ...

    def set_marker_label(self, handle: Any, label: str) -> None: ...

    def remove_marker(self, handle: Any) -> None: ...

    def open_label(self, handle: Any) -> None: ...

    def focus(self, latitude: float, longitude: float, zoom: int) -> None: ...


@dataclasses.dataclass
class MarkerRecord:
    """A realized marker and the values last pushed to the surface."""

    train_id: str
    handle: Any
    latitude: float
    longitude: float
    label: str


@dataclasses.dataclass(frozen=True)
class ReconcileResult:
    created: frozenset[str] = frozenset()
    updated: frozenset[str] = frozenset()
    removed: frozenset[str] = frozenset()

    @property
    def side_effects(self) -> int:
        return len(self.created) + len(self.updated) + len(self.removed)


class MarkerReconciler:
    """Align the marker registry with the store.

    Click handlers are bound to the train id only; the live record is looked
    up by whoever handles the click, never captured here.
    """

    def __init__(self, surface: MapSurface, *, on_click: Callable[[str], None]) -> None:
        self._surface = surface
        self._on_click = on_click
        self._markers: dict[str, MarkerRecord] = {}

    def marker_ids(self) -> frozenset[str]:
        return frozenset(self._markers)

    def handle_for(self, train_id: str) -> Any | None:
        record = self._markers.get(train_id)
        return record.handle if record is not None else None

    def _clicked(self, train_id: str) -> None:
        self._on_click(train_id)

    def reconcile(self, store: EntityStore) -> ReconcileResult:
        """Create, move and remove markers so their ids equal the store ids."""
        current = store.ids()

        removed = self._markers.keys() - current
        for train_id in removed:
            record = self._markers.pop(train_id)
            self._surface.remove_marker(record.handle)

        created: set[str] = set()
        updated: set[str] = set()
        for train in store.trains():
            label = marker_label(train.number)
            record = self._markers.get(train.id)
            if record is None:
                handle = self._surface.create_marker(
                    train.latitude,
                    train.longitude,
                    label=label,
                    on_click=functools.partial(self._clicked, train.id),
                )
                self._markers[train.id] = MarkerRecord(
                    train_id=train.id,
                    handle=handle,
                    latitude=train.latitude,
                    longitude=train.longitude,
                    label=label,
                )
                created.add(train.id)
                continue

            changed = False
            if (record.latitude, record.longitude) != (train.latitude, train.longitude):
                self._surface.move_marker(record.handle, train.latitude, train.longitude)
                record.latitude = train.latitude
                record.longitude = train.longitude
                changed = True
            if record.label != label:
                self._surface.set_marker_label(record.handle, label)
                record.label = label
                changed = True
            if changed:
                updated.add(train.id)

        result = ReconcileResult(
            created=frozenset(created),
            updated=frozenset(updated),
            removed=frozenset(removed),
        )
        if result.side_effects:
            _logger.debug(
                "Markers reconciled created=%d updated=%d removed=%d total=%d",
                len(result.created),
                len(result.updated),
                len(result.removed),
                len(self._markers),
            )
        return result

    def clear(self) -> None:
        """Remove every realized marker."""
        markers = self._markers
        self._markers = {}
        for record in markers.values():
            self._surface.remove_marker(record.handle)

"""Canonical in-memory train store.

This is the only component allowed to hold train records. Everything else
refers to trains by id and resolves them here.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from pysimrail.models.train import TrainEntity, TrainPosition
from pysimrail.state.events import StoreChange

_logger = logging.getLogger(__name__)


class EntityStore:
    """Mapping of train id to :class:`TrainEntity`.

    Both inbound snapshot kinds are authoritative: a full list replaces the
    mapping, a position snapshot merges and prunes. Neither is ever treated
    as a diff against earlier state, so a resync after a reconnect needs no
    special handling.
    """

    def __init__(self) -> None:
        self._trains: dict[str, TrainEntity] = {}

    def __contains__(self, train_id: object) -> bool:
        return train_id in self._trains

    def __len__(self) -> int:
        return len(self._trains)

    def __iter__(self) -> Iterator[TrainEntity]:
        return iter(tuple(self._trains.values()))

    def get(self, train_id: str) -> TrainEntity | None:
        return self._trains.get(train_id)

    def ids(self) -> frozenset[str]:
        return frozenset(self._trains)

    def trains(self) -> tuple[TrainEntity, ...]:
        """Snapshot of all trains in store order."""
        return tuple(self._trains.values())

    def apply_full_list(self, trains: Iterable[TrainEntity]) -> StoreChange:
        """Replace the whole mapping with *trains*.

        Duplicate ids within one list collapse to the last record.
        """
        previous = self._trains
        incoming: dict[str, TrainEntity] = {}
        for train in trains:
            incoming[train.id] = train

        added = incoming.keys() - previous.keys()
        removed = previous.keys() - incoming.keys()
        updated = {train_id for train_id in incoming.keys() & previous.keys() if incoming[train_id] != previous[train_id]}

        self._trains = incoming
        change = StoreChange(added=frozenset(added), removed=frozenset(removed), updated=frozenset(updated))
        _logger.debug(
            "Full list applied trains=%d added=%d removed=%d updated=%d",
            len(incoming),
            len(change.added),
            len(change.removed),
            len(change.updated),
        )
        return change

    def apply_position_snapshot(self, positions: Iterable[TrainPosition]) -> StoreChange:
        """Merge a complete snapshot of active positions.

        Trains missing from the snapshot are removed. Positions for ids the
        store has never seen are ignored: there is no metadata to build a
        record from.
        """
        by_id: dict[str, TrainPosition] = {}
        for position in positions:
            by_id[position.id] = position

        merged: dict[str, TrainEntity] = {}
        removed: set[str] = set()
        updated: set[str] = set()
        for train_id, train in self._trains.items():
            position = by_id.get(train_id)
            if position is None:
                removed.add(train_id)
                continue
            moved = train.with_position(position)
            if moved != train:
                updated.add(train_id)
                merged[train_id] = moved
            else:
                merged[train_id] = train

        ignored = len(by_id.keys() - self._trains.keys())
        self._trains = merged
        if ignored:
            _logger.debug("Ignored %d positions without a known train", ignored)
        change = StoreChange(removed=frozenset(removed), updated=frozenset(updated), ignored=ignored)
        _logger.debug(
            "Position snapshot applied trains=%d removed=%d updated=%d",
            len(merged),
            len(change.removed),
            len(change.updated),
        )
        return change

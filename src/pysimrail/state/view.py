"""Searchable train list."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable

from pysimrail.models.train import TrainEntity


@dataclasses.dataclass(frozen=True)
class TrainListItem:
    """One row of the train list."""

    id: str
    number: str
    route: str

    @classmethod
    def from_train(cls, train: TrainEntity) -> TrainListItem:
        return cls(id=train.id, number=train.number, route=train.route)


def matches(train: TrainEntity, query: str) -> bool:
    """Case-insensitive substring match of *query* against the train number."""
    needle = query.lower()
    if not needle:
        return True
    return needle in train.number.lower()


def filter_trains(trains: Iterable[TrainEntity], query: str) -> list[TrainEntity]:
    """Trains whose number contains *query*, in the given order."""
    return [train for train in trains if matches(train, query)]


def list_items(trains: Iterable[TrainEntity], query: str) -> list[TrainListItem]:
    return [TrainListItem.from_train(train) for train in filter_trains(trains, query)]

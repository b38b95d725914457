"""Hub invocation ingestion.

This module translates raw hub invocations into typed channel events.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from pysimrail._constants import EVENT_SERVERS_RECEIVED, EVENT_TRAIN_POSITIONS_RECEIVED, EVENT_TRAINS_RECEIVED
from pysimrail.models.server import ServerEntity
from pysimrail.models.train import TrainEntity, TrainPosition
from pysimrail.state.events import ChannelEvent, ServersReceived, TrainPositionsReceived, TrainsReceived

_logger = logging.getLogger(__name__)

TModel = TypeVar("TModel", bound=BaseModel)


def parse_records(model: type[TModel], payload: Any) -> tuple[TModel, ...] | None:
    """Validate a list payload record by record.

    Returns ``None`` when the payload is not a list at all. Records that
    fail validation are dropped; the rest of the snapshot is kept.
    """
    if not isinstance(payload, list):
        return None
    records: list[TModel] = []
    dropped = 0
    for item in payload:
        try:
            records.append(model.model_validate(item))
        except ValidationError:
            dropped += 1
            _logger.debug("Dropping malformed %s record", model.__name__, exc_info=True)
    if dropped:
        _logger.debug("Dropped %d malformed %s record(s)", dropped, model.__name__)
    return tuple(records)


def parse_channel_event(target: str, arguments: list[Any]) -> ChannelEvent | None:
    """Build a typed event from a hub invocation, or ``None`` to skip it."""
    payload = arguments[0] if arguments else None

    if target == EVENT_TRAINS_RECEIVED:
        trains = parse_records(TrainEntity, payload)
        if trains is None:
            _logger.debug("Skipping %s with non-list payload", target)
            return None
        return TrainsReceived(trains=trains)

    if target == EVENT_TRAIN_POSITIONS_RECEIVED:
        positions = parse_records(TrainPosition, payload)
        if positions is None:
            _logger.debug("Skipping %s with non-list payload", target)
            return None
        return TrainPositionsReceived(positions=positions)

    if target == EVENT_SERVERS_RECEIVED:
        servers = parse_records(ServerEntity, payload)
        if servers is None:
            _logger.debug("Skipping %s with non-list payload", target)
            return None
        return ServersReceived(servers=servers)

    _logger.debug("Ignoring unknown hub event %s", target)
    return None

"""Typed channel events.

The hub connection converts every inbound invocation into one of these
events. Only the dashboard orchestration applies them to the store.
"""

from __future__ import annotations

import dataclasses
from datetime import UTC, datetime
from enum import StrEnum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from pysimrail.models.server import ServerEntity
from pysimrail.models.train import TrainEntity, TrainPosition


class ConnectionStatus(StrEnum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    DISCONNECTED = "disconnected"
    FAILED = "failed"

    @property
    def label(self) -> str:
        """Status line text."""
        return _STATUS_LABELS[self]


_STATUS_LABELS: dict[ConnectionStatus, str] = {
    ConnectionStatus.CONNECTING: "Connecting...",
    ConnectionStatus.CONNECTED: "Connected",
    ConnectionStatus.RECONNECTING: "Connection lost. Reconnecting...",
    ConnectionStatus.DISCONNECTED: "Disconnected",
    ConnectionStatus.FAILED: "Connection error. Retrying...",
}


class _ChannelEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    received_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ServersReceived(_ChannelEvent):
    servers: tuple[ServerEntity, ...] = ()


class TrainsReceived(_ChannelEvent):
    """Authoritative full snapshot of train metadata."""

    trains: tuple[TrainEntity, ...] = ()


class TrainPositionsReceived(_ChannelEvent):
    """Authoritative full snapshot of active train positions."""

    positions: tuple[TrainPosition, ...] = ()


class ConnectionStatusChanged(_ChannelEvent):
    status: ConnectionStatus
    detail: str = ""
    reconnected: bool = False
    """True when the channel came back after a drop."""


ChannelEvent = Union[ServersReceived, TrainsReceived, TrainPositionsReceived, ConnectionStatusChanged]


@dataclasses.dataclass(frozen=True)
class StoreChange:
    """Outcome of one store mutation."""

    added: frozenset[str] = frozenset()
    removed: frozenset[str] = frozenset()
    updated: frozenset[str] = frozenset()
    ignored: int = 0
    """Position records whose id is not in the store."""

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed or self.updated)

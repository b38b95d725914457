"""Train and train-position models."""

from __future__ import annotations

from typing import Any

from pydantic import field_validator

from pysimrail.ingestion.normalize import hub_number, hub_text
from pysimrail.models._base import SimRailBaseModel, clean_payload


def _require_id(value: Any) -> str:
    text = hub_text(value)
    if text is None:
        raise ValueError("train id must be non-empty")
    return text


class TrainPosition(SimRailBaseModel):
    """One entry of a ``TrainPositionsReceived`` snapshot.

    Parameters
    ----------
    id : str
        Train identifier.
    latitude : float
        Latitude in degrees.
    longitude : float
        Longitude in degrees.
    velocity : float
        Speed in km/h.
    """

    id: str
    latitude: float
    longitude: float
    velocity: float = 0.0

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return _require_id(value)

    @field_validator("latitude", "longitude", "velocity", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> Any:
        parsed = hub_number(value)
        return value if parsed is None else parsed


class TrainEntity(SimRailBaseModel):
    """A train running on the current server.

    The hub sends ``{"Id": ..., "DriverName": ..., "TrainData": {...}}``;
    everything under ``TrainData`` is flattened onto the model.
    """

    id: str
    number: str = ""
    """Public train number (e.g. ``"42100"``); the search key."""
    route: str = ""
    """Human-readable origin - destination."""
    category: str = ""
    driver_name: str | None = None
    """``None`` when the train is driven by the simulation."""
    velocity: float = 0.0
    latitude: float
    longitude: float

    @classmethod
    def _prepare(cls, values: dict[str, Any]) -> dict[str, Any]:
        nested = values.get("TrainData")
        if not isinstance(nested, dict):
            return values
        merged = clean_payload(nested)
        merged.update({key: value for key, value in values.items() if key != "TrainData"})
        return merged

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return _require_id(value)

    @field_validator("number", "route", "category", "driver_name", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("latitude", "longitude", "velocity", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> Any:
        parsed = hub_number(value)
        return value if parsed is None else parsed

    @property
    def position(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)

    def with_position(self, position: TrainPosition) -> TrainEntity:
        """Return a copy carrying the volatile fields of *position*."""
        return self.model_copy(
            update={
                "latitude": position.latitude,
                "longitude": position.longitude,
                "velocity": position.velocity,
            }
        )

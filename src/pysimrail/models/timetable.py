"""Timetable models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pysimrail.ingestion.normalize import hub_minutes, hub_text
from pysimrail.models._base import SimRailBaseModel


def _describe(present: bool, real_time: str | None, delay: int | None) -> str:
    if not present:
        return "-"
    return f"{real_time or '?'} ({delay if delay is not None else 0} min)"


class TimetableStop(SimRailBaseModel):
    """One stop of a train's timetable.

    ``ArrivalLine`` / ``DepartureLine`` are presence flags on the wire: any
    meaningful value means the train arrives at (or departs from) the stop.
    """

    name: str = Field(default="", validation_alias=AliasChoices("StopName", "Name", "name"))
    has_arrival: bool = Field(default=False, validation_alias=AliasChoices("ArrivalLine", "has_arrival"))
    arrival_time: str | None = Field(default=None, validation_alias=AliasChoices("ArrivalRealTime", "arrival_time"))
    arrival_delay: int | None = Field(default=None, validation_alias=AliasChoices("ArrivalDelay", "arrival_delay"))
    has_departure: bool = Field(default=False, validation_alias=AliasChoices("DepartureLine", "has_departure"))
    departure_time: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DepartureRealTime", "departure_time"),
    )
    departure_delay: int | None = Field(
        default=None,
        validation_alias=AliasChoices("DepartureDelay", "departure_delay"),
    )

    @field_validator("has_arrival", "has_departure", mode="before")
    @classmethod
    def _coerce_presence(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("arrival_time", "departure_time", mode="before")
    @classmethod
    def _coerce_time(cls, value: Any) -> str | None:
        return hub_text(value)

    @field_validator("arrival_delay", "departure_delay", mode="before")
    @classmethod
    def _coerce_delay(cls, value: Any) -> int | None:
        return hub_minutes(value)

    @property
    def arrival_summary(self) -> str:
        return _describe(self.has_arrival, self.arrival_time, self.arrival_delay)

    @property
    def departure_summary(self) -> str:
        return _describe(self.has_departure, self.departure_time, self.departure_delay)


class Timetable(SimRailBaseModel):
    """Ordered stops for one train, as returned by ``GetTimetable``."""

    train_id: str = ""
    stops: tuple[TimetableStop, ...] = ()

    @classmethod
    def from_hub(cls, train_id: str, payload: Any) -> Timetable:
        """Parse a ``GetTimetable`` result; ``None`` yields an empty timetable."""
        if isinstance(payload, dict):
            return cls.model_validate({**payload, "TrainId": train_id})
        if isinstance(payload, list):
            return cls.model_validate({"TrainId": train_id, "Stops": payload})
        return cls(train_id=train_id)

    @property
    def is_empty(self) -> bool:
        return not self.stops

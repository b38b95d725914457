"""Simulation server model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pysimrail.ingestion.normalize import hub_text
from pysimrail.models._base import SimRailBaseModel


class ServerEntity(SimRailBaseModel):
    """A simulation server offered by the hub.

    Only used to pick which server to follow; never part of the train state.
    """

    id: str
    code: str = Field(default="", validation_alias=AliasChoices("ServerCode", "Code", "code"))
    """Short code passed to ``SwitchServer`` (e.g. ``"PL1"``)."""
    name: str = Field(default="", validation_alias=AliasChoices("ServerName", "Name", "name"))
    region: str = Field(default="", validation_alias=AliasChoices("ServerRegion", "Region", "region"))
    is_active: bool = Field(default=True, validation_alias=AliasChoices("IsActive", "is_active"))

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        text = hub_text(value)
        if text is None:
            raise ValueError("server id must be non-empty")
        return text

    @property
    def label(self) -> str:
        """Display text for a server picker."""
        if self.name and self.code:
            return f"{self.code} - {self.name}"
        return self.name or self.code or self.id

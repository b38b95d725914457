"""Base model for hub payloads.

Every hub payload model inherits from :class:`SimRailBaseModel` which
provides:

* ``alias_generator=to_pascal`` so the hub's PascalCase keys
  (``Id``, ``DriverName``) map to snake_case fields.
* A ``model_validator(mode="before")`` that upper-cases camelCase keys
  and strips placeholder values (``None``, ``""``, ``"--"``, NaN) so the
  field default is used.
* A ``_prepare`` hook for subclasses that need to reshape the payload
  (e.g. flattening nested objects) after cleaning.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_pascal

from pysimrail.ingestion.normalize import is_meaningful, pascal_key


def clean_payload(values: dict[str, Any]) -> dict[str, Any]:
    """Normalize key case and drop placeholder values from one payload level."""
    return {pascal_key(str(key)): value for key, value in values.items() if is_meaningful(value)}


class SimRailBaseModel(BaseModel):
    """Base for hub payload models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_pascal,
    )

    @classmethod
    def _prepare(cls, values: dict[str, Any]) -> dict[str, Any]:
        return values

    @model_validator(mode="before")
    @classmethod
    def _clean_hub_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return cls._prepare(clean_payload(values))

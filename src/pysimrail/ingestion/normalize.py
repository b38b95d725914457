"""Normalization helpers.

The hub fills unknown values with ``null``, ``""`` or ``"--"`` and sends
numbers either as JSON numbers or as strings. Everything here maps such
placeholders to ``None`` so model defaults apply.
"""

from __future__ import annotations

import math
from typing import Any

_PLACEHOLDERS = frozenset({"", "--"})


def _is_placeholder(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() in _PLACEHOLDERS
    return isinstance(value, float) and math.isnan(value)


def is_meaningful(value: Any) -> bool:
    """Return True if the value should reach a model field."""
    return not _is_placeholder(value)


def hub_number(value: Any) -> float | None:
    """Finite float from a hub number or numeric string.

    Booleans are rejected: ``True`` is never a coordinate or a speed.
    """
    if _is_placeholder(value) or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def hub_minutes(value: Any) -> int | None:
    """Whole minutes (timetable delays); fractions are truncated."""
    number = hub_number(value)
    return None if number is None else int(number)


def hub_text(value: Any) -> str | None:
    """Stripped text, or ``None`` for placeholders."""
    if _is_placeholder(value):
        return None
    return str(value).strip()


def pascal_key(key: str) -> str:
    """Upper-case the first letter of a camelCase hub key.

    snake_case keys are left alone so models still accept their own
    field names.
    """

    if not key or "_" in key or not key[0].islower():
        return key
    return key[0].upper() + key[1:]

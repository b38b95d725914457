"""Helpers for safe debug logging.

Hub payloads can be large (hundreds of trains per snapshot) and the
negotiate exchange carries connection tokens. This module shortens and
redacts values before they are emitted in DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "accesstoken",
        "access_token",
        "connectiontoken",
        "connection_token",
        "authorization",
        "cookie",
    }
)


def summarize_for_log(value: Any, *, max_string: int = 256, max_items: int = 5, _depth: int = 0) -> Any:
    """Return a shortened, redacted copy of *value* suitable for debug logs."""
    if _depth > 20:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        summarized: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if key.lower() in _SENSITIVE_VALUE_KEYS:
                summarized[key] = "<redacted>"
            else:
                summarized[key] = summarize_for_log(v, max_string=max_string, max_items=max_items, _depth=_depth + 1)
        return summarized

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        items = [
            summarize_for_log(v, max_string=max_string, max_items=max_items, _depth=_depth + 1)
            for v in list(value)[:max_items]
        ]
        if len(value) > max_items:
            items.append(f"<+{len(value) - max_items} more>")
        return items

    return repr(value)

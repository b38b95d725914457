"""Client configuration for pysimrail."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pysimrail._constants import DEFAULT_SERVER, FOCUS_ZOOM, HUB_URL, MAP_CENTER, MAP_ZOOM, RECONNECT_DELAYS
from pysimrail.exceptions import SimRailConfigError


def _env_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise SimRailConfigError(f"{name} must be a number, got {value!r}") from exc


def _env_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise SimRailConfigError(f"{name} must be an integer, got {value!r}") from exc


def _env_delays(name: str, value: str) -> tuple[float, ...]:
    parts = [part.strip() for part in value.split(",") if part.strip()]
    delays = tuple(_env_float(name, part) for part in parts)
    if any(delay < 0 for delay in delays):
        raise SimRailConfigError(f"{name} must not contain negative delays, got {value!r}")
    return delays


@dataclasses.dataclass(frozen=True)
class SimRailConfig:
    """Client configuration.

    Parameters
    ----------
    hub_url : str
        Base URL of the SignalR hub (``http(s)://``; negotiated, then
        upgraded to a websocket).
    default_server : str
        Server code switched to right after the channel opens.
    invoke_timeout : float
        Seconds to wait for an invocation completion before giving up.
    handshake_timeout : float
        Seconds to wait for the hub handshake response.
    keepalive_interval : float
        Seconds between client ping frames.
    server_timeout : float
        Seconds of inbound silence after which the channel counts as dropped.
    reconnect_delays : tuple of float
        Wait before each reconnect attempt. An empty tuple disables
        automatic reconnection.
    map_center : tuple of float
        Initial map centre ``(latitude, longitude)``.
    map_zoom : int
        Initial map zoom.
    focus_zoom : int
        Zoom used when focusing a selected train.
    """

    hub_url: str = HUB_URL
    default_server: str = DEFAULT_SERVER
    invoke_timeout: float = 15.0
    handshake_timeout: float = 15.0
    keepalive_interval: float = 15.0
    server_timeout: float = 30.0
    reconnect_delays: tuple[float, ...] = RECONNECT_DELAYS
    map_center: tuple[float, float] = MAP_CENTER
    map_zoom: int = MAP_ZOOM
    focus_zoom: int = FOCUS_ZOOM

    def __post_init__(self) -> None:
        if not self.hub_url.startswith(("http://", "https://")):
            raise SimRailConfigError(f"hub_url must be an http(s) URL, got {self.hub_url!r}")
        if not self.default_server.strip():
            raise SimRailConfigError("default_server must be non-empty")
        for name in ("invoke_timeout", "handshake_timeout", "keepalive_interval", "server_timeout"):
            if getattr(self, name) <= 0:
                raise SimRailConfigError(f"{name} must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> SimRailConfig:
        """Create configuration from ``SIMRAIL_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        _ENV_STR_MAP = {
            "SIMRAIL_HUB_URL": "hub_url",
            "SIMRAIL_DEFAULT_SERVER": "default_server",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val.strip()

        _ENV_FLOAT_MAP = {
            "SIMRAIL_INVOKE_TIMEOUT": "invoke_timeout",
            "SIMRAIL_HANDSHAKE_TIMEOUT": "handshake_timeout",
            "SIMRAIL_KEEPALIVE": "keepalive_interval",
            "SIMRAIL_SERVER_TIMEOUT": "server_timeout",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = _env_float(env_key, val)

        delays_env = env.get("SIMRAIL_RECONNECT_DELAYS")
        if delays_env is not None:
            config_kwargs["reconnect_delays"] = _env_delays("SIMRAIL_RECONNECT_DELAYS", delays_env)

        zoom_env = env.get("SIMRAIL_FOCUS_ZOOM")
        if zoom_env is not None:
            config_kwargs["focus_zoom"] = _env_int("SIMRAIL_FOCUS_ZOOM", zoom_env)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)

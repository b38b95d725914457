from __future__ import annotations

import inspect
import itertools
from collections.abc import Callable
from typing import Any

import pytest

from pysimrail.state.events import ConnectionStatus


class RecordingSurface:
    """Map surface double that records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.markers: dict[int, dict[str, Any]] = {}
        self._ids = itertools.count(1)

    def create_marker(
        self,
        latitude: float,
        longitude: float,
        *,
        label: str,
        on_click: Callable[[], None],
    ) -> int:
        handle = next(self._ids)
        self.markers[handle] = {"latitude": latitude, "longitude": longitude, "label": label, "on_click": on_click}
        self.calls.append(("create", handle, latitude, longitude, label))
        return handle

    def move_marker(self, handle: int, latitude: float, longitude: float) -> None:
        self.markers[handle].update(latitude=latitude, longitude=longitude)
        self.calls.append(("move", handle, latitude, longitude))

    def set_marker_label(self, handle: int, label: str) -> None:
        self.markers[handle]["label"] = label
        self.calls.append(("label", handle, label))

    def remove_marker(self, handle: int) -> None:
        del self.markers[handle]
        self.calls.append(("remove", handle))

    def open_label(self, handle: int) -> None:
        self.calls.append(("open", handle))

    def focus(self, latitude: float, longitude: float, zoom: int) -> None:
        self.calls.append(("focus", latitude, longitude, zoom))

    def click(self, handle: int) -> None:
        self.markers[handle]["on_click"]()

    def marker_calls(self) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] in {"create", "move", "label", "remove"}]


class FakeRuntime:
    """In-memory stand-in for the websocket hub runtime."""

    def __init__(
        self,
        *,
        config: Any,
        http_session: Any,
        on_invocation: Callable[[str, list[Any]], None],
        on_status: Callable[[ConnectionStatus, str, bool], None],
        logger: Any = None,
        results: dict[str, Any] | None = None,
        connect_ok: bool = True,
    ) -> None:
        self.config = config
        self.on_invocation = on_invocation
        self.on_status = on_status
        self.results: dict[str, Any] = results if results is not None else {}
        self.connect_ok = connect_ok
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> bool:
        self._running = True
        self.on_status(ConnectionStatus.CONNECTING, "", False)
        if not self.connect_ok:
            self.on_status(ConnectionStatus.FAILED, "connection refused", False)
            return False
        self.on_status(ConnectionStatus.CONNECTED, "", False)
        return True

    async def stop(self) -> None:
        if self._running:
            self._running = False
            self.on_status(ConnectionStatus.DISCONNECTED, "stopped", False)

    async def invoke(self, target: str, *arguments: Any, timeout: float | None = None) -> Any:
        self.calls.append((target, arguments))
        handler = self.results.get(target)
        if isinstance(handler, BaseException):
            raise handler
        if callable(handler):
            result = handler(*arguments)
            if inspect.isawaitable(result):
                return await result
            return result
        return handler

    def push(self, target: str, payload: Any) -> None:
        self.on_invocation(target, [payload])

    def drop_and_reconnect(self) -> None:
        self.on_status(ConnectionStatus.RECONNECTING, "", False)
        self.on_status(ConnectionStatus.CONNECTED, "", True)


class RuntimeFactory:
    def __init__(self) -> None:
        self.instances: list[FakeRuntime] = []
        self.results: dict[str, Any] = {}
        self.connect_ok = True

    def __call__(self, **kwargs: Any) -> FakeRuntime:
        runtime = FakeRuntime(results=self.results, connect_ok=self.connect_ok, **kwargs)
        self.instances.append(runtime)
        return runtime

    @property
    def runtime(self) -> FakeRuntime:
        return self.instances[-1]


class DummySession:
    """Placeholder for an externally owned aiohttp session."""


@pytest.fixture
def surface() -> RecordingSurface:
    return RecordingSurface()


@pytest.fixture
def runtime_factory() -> RuntimeFactory:
    return RuntimeFactory()


@pytest.fixture
def dummy_session() -> DummySession:
    return DummySession()

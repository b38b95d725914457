"""Hub connection lifecycle.

Owns:
- starting/stopping the websocket hub runtime
- translating hub invocations into typed channel events
- request/response calls (servers, server switch, timetable)
- re-subscribing to the current server whenever the channel (re)opens
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Any

import aiohttp
from pydantic import ValidationError

from pysimrail._constants import METHOD_GET_SERVERS, METHOD_GET_TIMETABLE, METHOD_SWITCH_SERVER
from pysimrail._signalr import HubRuntime
from pysimrail.config import SimRailConfig
from pysimrail.exceptions import SimRailConnectionError, SimRailError, SimRailFetchError
from pysimrail.ingestion.channel import parse_channel_event
from pysimrail.models.timetable import Timetable
from pysimrail.state.events import ChannelEvent, ConnectionStatus, ConnectionStatusChanged

_logger = logging.getLogger(__name__)

EventListener = Callable[[ChannelEvent], None]


class HubConnection:
    """Typed event stream and request/response calls over the hub channel.

    Usage::

        async with HubConnection(config) as connection:
            connection.subscribe(print)
            timetable = await connection.get_timetable("abc")

    Reconnection is handled by the runtime; after every (re)open the
    connection asks for the server list and switches back to the current
    server so snapshots resume.
    """

    def __init__(
        self,
        config: SimRailConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        runtime_factory: Callable[..., HubRuntime] = HubRuntime,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._runtime_factory = runtime_factory
        self._runtime: HubRuntime | None = None
        self._listeners: list[EventListener] = []
        self._status = ConnectionStatus.DISCONNECTED
        self._server = config.default_server
        self._tasks: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> HubConnection:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def current_server(self) -> str:
        return self._server

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register *listener* for every channel event; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _unsubscribe

    async def start(self) -> bool:
        """Open the channel; ``False`` means it failed and is being retried."""
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        if self._runtime is not None:
            await self._runtime.stop()
        self._runtime = self._runtime_factory(
            config=self._config,
            http_session=self._http_session,
            on_invocation=self._on_invocation,
            on_status=self._on_status,
            logger=_logger,
        )
        return await self._runtime.start()

    async def stop(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

        runtime = self._runtime
        self._runtime = None
        if runtime is not None:
            await runtime.stop()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def _publish(self, event: ChannelEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                _logger.exception("Channel listener failed for %s", type(event).__name__)

    def _on_invocation(self, target: str, arguments: list[Any]) -> None:
        event = parse_channel_event(target, arguments)
        if event is not None:
            self._publish(event)

    def _on_status(self, status: ConnectionStatus, detail: str, reconnected: bool) -> None:
        self._status = status
        _logger.debug("Hub status %s %s", status, detail)
        self._publish(ConnectionStatusChanged(status=status, detail=detail, reconnected=reconnected))
        if status == ConnectionStatus.CONNECTED:
            task = asyncio.get_running_loop().create_task(self._subscribe_server())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _subscribe_server(self) -> None:
        try:
            await self.get_servers()
            await self.switch_server(self._server)
        except SimRailError as exc:
            _logger.warning("Could not subscribe to server %s: %s", self._server, exc)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _require_runtime(self) -> HubRuntime:
        if self._runtime is None or not self._runtime.is_running:
            raise SimRailConnectionError("Hub connection not started", url=self._config.hub_url)
        return self._runtime

    async def get_servers(self) -> None:
        """Ask the hub to push ``ServersReceived``."""
        await self._require_runtime().invoke(METHOD_GET_SERVERS)

    async def switch_server(self, server_code: str) -> None:
        """Follow another simulation server; snapshots for it arrive as events."""
        self._server = server_code
        await self._require_runtime().invoke(METHOD_SWITCH_SERVER, server_code)

    async def get_timetable(self, train_id: str) -> Timetable:
        try:
            result = await self._require_runtime().invoke(METHOD_GET_TIMETABLE, train_id)
        except SimRailError as exc:
            raise SimRailFetchError(f"Timetable request for {train_id} failed: {exc}", train_id=train_id) from exc
        try:
            return Timetable.from_hub(train_id, result)
        except ValidationError as exc:
            raise SimRailFetchError(f"Malformed timetable for {train_id}", train_id=train_id) from exc

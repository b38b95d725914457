"""Internal SignalR hub runtime: negotiate, framing, keepalive, reconnects.

Implements the JSON hub protocol over an ``aiohttp`` websocket. Messages
are JSON objects terminated by the ASCII record separator (``0x1E``).
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import IntEnum
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import aiohttp

from pysimrail._logsafe import summarize_for_log
from pysimrail.config import SimRailConfig
from pysimrail.exceptions import SimRailConnectionError, SimRailHubError, SimRailProtocolError
from pysimrail.state.events import ConnectionStatus

RECORD_SEPARATOR = "\x1e"
_MAX_NEGOTIATE_REDIRECTS = 5


class MessageType(IntEnum):
    INVOCATION = 1
    STREAM_ITEM = 2
    COMPLETION = 3
    STREAM_INVOCATION = 4
    CANCEL_INVOCATION = 5
    PING = 6
    CLOSE = 7


@dataclass(frozen=True)
class NegotiateResult:
    """Outcome of ``POST {url}/negotiate``.

    Either ``connection_token`` is set, or the hub redirected us to ``url``
    (optionally with an ``access_token``).
    """

    connection_token: str | None = None
    url: str | None = None
    access_token: str | None = None


def encode_message(message: Mapping[str, Any]) -> str:
    return json.dumps(message, separators=(",", ":")) + RECORD_SEPARATOR


HANDSHAKE_REQUEST = encode_message({"protocol": "json", "version": 1})


def decode_frames(text: str) -> list[dict[str, Any]]:
    """Split a websocket text payload into hub messages."""
    messages: list[dict[str, Any]] = []
    for chunk in text.split(RECORD_SEPARATOR):
        if not chunk.strip():
            continue
        try:
            parsed = json.loads(chunk)
        except json.JSONDecodeError as exc:
            raise SimRailProtocolError(f"Hub frame is not JSON: {chunk[:64]}") from exc
        if not isinstance(parsed, dict):
            raise SimRailProtocolError("Hub frame is not a JSON object")
        messages.append(parsed)
    return messages


def parse_negotiate_response(body: Any) -> NegotiateResult:
    if not isinstance(body, dict):
        raise SimRailProtocolError("Negotiate response is not a JSON object")
    error = body.get("error")
    if isinstance(error, str) and error:
        raise SimRailConnectionError(f"Negotiate rejected: {error}")

    redirect = body.get("url")
    if isinstance(redirect, str) and redirect:
        token = body.get("accessToken")
        return NegotiateResult(url=redirect, access_token=token if isinstance(token, str) else None)

    # negotiateVersion >= 1 uses connectionToken; version 0 only has connectionId.
    connection_token = body.get("connectionToken") or body.get("connectionId")
    if not isinstance(connection_token, str) or not connection_token:
        raise SimRailProtocolError("Negotiate response missing connectionToken")
    return NegotiateResult(connection_token=connection_token)


def build_negotiate_url(hub_url: str) -> str:
    parts = urlsplit(hub_url)
    path = parts.path.rstrip("/") + "/negotiate"
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.append(("negotiateVersion", "1"))
    return urlunsplit((parts.scheme, parts.netloc, path, urlencode(query), ""))


def build_ws_url(hub_url: str, connection_token: str | None) -> str:
    """Websocket URL for *hub_url* (``http`` -> ``ws``, ``https`` -> ``wss``)."""
    parts = urlsplit(hub_url)
    scheme = {"http": "ws", "https": "wss"}.get(parts.scheme, parts.scheme)
    query = parse_qsl(parts.query, keep_blank_values=True)
    if connection_token:
        query.append(("id", connection_token))
    return urlunsplit((scheme, parts.netloc, parts.path, urlencode(query), ""))


class HubRuntime:
    """Single websocket hub session plus its automatic reconnection policy.

    Inbound invocations are handed to ``on_invocation(target, arguments)``
    on the event loop, in arrival order. Status transitions are reported
    through ``on_status(status, detail, reconnected)``.
    """

    def __init__(
        self,
        *,
        config: SimRailConfig,
        http_session: aiohttp.ClientSession,
        on_invocation: Callable[[str, list[Any]], None],
        on_status: Callable[[ConnectionStatus, str, bool], None],
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._http = http_session
        self._on_invocation = on_invocation
        self._on_status = on_status
        self._logger = logger or logging.getLogger(__name__)
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._supervisor: asyncio.Task[None] | None = None
        self._keepalive: asyncio.Task[None] | None = None
        self._pending: dict[str, asyncio.Future[Any]] = {}
        self._ids = itertools.count(1)
        self._running = False
        self._stopping = False

    @property
    def is_running(self) -> bool:
        """Whether the runtime is connected or still trying to be."""
        return self._running

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """Open the channel.

        Returns ``True`` when connected. On failure the status becomes
        ``FAILED`` and the reconnection policy keeps trying in the background.
        """
        await self.stop()
        self._stopping = False
        self._running = True
        self._emit(ConnectionStatus.CONNECTING, "", False)
        try:
            await self._connect()
        except SimRailConnectionError as exc:
            self._logger.warning("Hub connection failed: %s", exc)
            self._emit(ConnectionStatus.FAILED, str(exc), False)
            self._supervisor = asyncio.get_running_loop().create_task(self._supervise(connected=False))
            return False

        self._emit(ConnectionStatus.CONNECTED, "", False)
        self._supervisor = asyncio.get_running_loop().create_task(self._supervise(connected=True))
        return True

    async def stop(self) -> None:
        """Close the channel and stop reconnecting."""
        self._stopping = True
        supervisor = self._supervisor
        self._supervisor = None
        await self._close_socket()
        if supervisor is not None and supervisor is not asyncio.current_task():
            supervisor.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await supervisor
        was_running = self._running
        self._running = False
        self._fail_pending(SimRailConnectionError("Hub connection stopped", url=self._config.hub_url))
        if was_running:
            self._emit(ConnectionStatus.DISCONNECTED, "stopped", False)

    async def _supervise(self, *, connected: bool) -> None:
        try:
            while not self._stopping:
                if connected:
                    allow_reconnect = await self._read_until_closed()
                    self._fail_pending(SimRailConnectionError("Hub connection lost", url=self._config.hub_url))
                    if self._stopping:
                        return
                    if not allow_reconnect:
                        self._running = False
                        self._emit(ConnectionStatus.DISCONNECTED, "closed by hub", False)
                        return
                    self._emit(ConnectionStatus.RECONNECTING, "", False)
                connected = await self._reconnect()
                if not connected:
                    if not self._stopping:
                        self._running = False
                        self._logger.warning("Hub reconnect attempts exhausted")
                        self._emit(ConnectionStatus.DISCONNECTED, "reconnect attempts exhausted", False)
                    return
        finally:
            await self._close_socket()

    async def _reconnect(self) -> bool:
        for attempt, delay in enumerate(self._config.reconnect_delays, start=1):
            if delay > 0:
                await asyncio.sleep(delay)
            if self._stopping:
                return False
            try:
                await self._connect()
            except SimRailConnectionError as exc:
                self._logger.debug("Hub reconnect attempt %d failed: %s", attempt, exc)
                continue
            self._logger.debug("Hub reconnected after %d attempt(s)", attempt)
            self._emit(ConnectionStatus.CONNECTED, "", True)
            return True
        return False

    # ------------------------------------------------------------------
    # Connection establishment
    # ------------------------------------------------------------------

    async def _negotiate(self) -> tuple[str, str | None, dict[str, str]]:
        url = self._config.hub_url
        headers: dict[str, str] = {}
        for _ in range(_MAX_NEGOTIATE_REDIRECTS):
            negotiate_url = build_negotiate_url(url)
            self._logger.debug("POST %s", negotiate_url)
            try:
                async with self._http.post(negotiate_url, headers=headers) as resp:
                    if resp.status != 200:
                        text = await resp.text()
                        raise SimRailConnectionError(f"HTTP {resp.status} from negotiate: {text[:200]}", url=url)
                    body = await resp.json(content_type=None)
            except aiohttp.ClientError as exc:
                raise SimRailConnectionError(f"Negotiate request failed: {exc}", url=url) from exc
            except json.JSONDecodeError as exc:
                raise SimRailProtocolError("Negotiate response is not JSON", url=url) from exc

            self._logger.debug("Negotiate response %s", summarize_for_log(body))
            result = parse_negotiate_response(body)
            if result.url is None:
                return url, result.connection_token, headers
            url = result.url
            if result.access_token:
                headers = {"Authorization": f"Bearer {result.access_token}"}
        raise SimRailConnectionError("Too many negotiate redirects", url=self._config.hub_url)

    async def _connect(self) -> None:
        url, token, headers = await self._negotiate()
        ws_url = build_ws_url(url, token)
        try:
            ws = await self._http.ws_connect(ws_url, headers=headers)
        except (aiohttp.ClientError, OSError) as exc:
            raise SimRailConnectionError(f"Websocket connect failed: {exc}", url=url) from exc

        try:
            leftovers = await self._handshake(ws)
        except BaseException:
            await ws.close()
            raise

        self._ws = ws
        self._keepalive = asyncio.get_running_loop().create_task(self._send_pings(ws))
        self._logger.debug("Hub channel open url=%s", url)
        for frame in leftovers:
            self._dispatch(frame)

    async def _handshake(self, ws: aiohttp.ClientWebSocketResponse) -> list[dict[str, Any]]:
        try:
            await ws.send_str(HANDSHAKE_REQUEST)
            msg = await ws.receive(timeout=self._config.handshake_timeout)
        except TimeoutError as exc:
            raise SimRailConnectionError("Hub handshake timed out", url=self._config.hub_url) from exc
        except (aiohttp.ClientError, ConnectionResetError) as exc:
            raise SimRailConnectionError(f"Hub handshake failed: {exc}", url=self._config.hub_url) from exc

        if msg.type != aiohttp.WSMsgType.TEXT:
            raise SimRailProtocolError(f"Unexpected handshake message type {msg.type!r}", url=self._config.hub_url)

        frames = decode_frames(msg.data)
        if not frames:
            raise SimRailProtocolError("Empty handshake response", url=self._config.hub_url)
        response, leftovers = frames[0], frames[1:]
        error = response.get("error")
        if error:
            raise SimRailProtocolError(f"Hub handshake rejected: {error}", url=self._config.hub_url)
        return leftovers

    async def _close_socket(self) -> None:
        keepalive = self._keepalive
        self._keepalive = None
        if keepalive is not None:
            keepalive.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await keepalive
        ws = self._ws
        self._ws = None
        if ws is not None and not ws.closed:
            await ws.close()

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def _read_until_closed(self) -> bool:
        """Pump messages until the socket ends; return whether to reconnect."""
        ws = self._ws
        if ws is None:
            return True
        try:
            while True:
                try:
                    msg = await ws.receive(timeout=self._config.server_timeout)
                except TimeoutError:
                    self._logger.warning("No hub traffic for %.0fs, dropping channel", self._config.server_timeout)
                    return True

                if msg.type == aiohttp.WSMsgType.TEXT:
                    try:
                        frames = decode_frames(msg.data)
                    except SimRailProtocolError:
                        self._logger.warning("Dropping channel after malformed hub frame", exc_info=True)
                        return True
                    for frame in frames:
                        allow_reconnect = self._dispatch(frame)
                        if allow_reconnect is not None:
                            return allow_reconnect
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    self._logger.debug("Ignoring binary hub frame (%d bytes)", len(msg.data))
                else:
                    self._logger.debug("Hub socket ended type=%s", msg.type)
                    return True
        finally:
            await self._close_socket()

    def _dispatch(self, frame: dict[str, Any]) -> bool | None:
        """Handle one hub message; a non-None return ends the session."""
        kind = frame.get("type")
        if kind == MessageType.INVOCATION:
            target = frame.get("target")
            arguments = frame.get("arguments")
            if not isinstance(target, str):
                self._logger.debug("Invocation without target: %s", summarize_for_log(frame))
                return None
            self._logger.debug("Hub invocation target=%s arguments=%s", target, summarize_for_log(arguments))
            try:
                self._on_invocation(target, arguments if isinstance(arguments, list) else [])
            except Exception:
                self._logger.exception("Handler for hub invocation %s failed", target)
            return None

        if kind == MessageType.COMPLETION:
            invocation_id = frame.get("invocationId")
            future = self._pending.pop(str(invocation_id), None)
            if future is None or future.done():
                return None
            error = frame.get("error")
            if error:
                future.set_exception(SimRailHubError(str(error)))
            else:
                future.set_result(frame.get("result"))
            return None

        if kind == MessageType.PING:
            return None

        if kind == MessageType.CLOSE:
            error = frame.get("error")
            self._logger.warning("Hub closed the channel: %s", error or "no reason given")
            return bool(frame.get("allowReconnect", False))

        self._logger.debug("Ignoring hub message type=%s", kind)
        return None

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def _send(self, message: Mapping[str, Any]) -> None:
        ws = self._ws
        if ws is None or ws.closed:
            raise SimRailConnectionError("Hub channel is not connected", url=self._config.hub_url)
        try:
            await ws.send_str(encode_message(message))
        except (aiohttp.ClientError, ConnectionResetError) as exc:
            raise SimRailConnectionError(f"Hub send failed: {exc}", url=self._config.hub_url) from exc

    async def _send_pings(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        ping = encode_message({"type": MessageType.PING})
        while not ws.closed:
            await asyncio.sleep(self._config.keepalive_interval)
            try:
                await ws.send_str(ping)
            except (aiohttp.ClientError, ConnectionResetError):
                self._logger.debug("Hub ping failed", exc_info=True)
                return

    async def invoke(self, target: str, *arguments: Any, timeout: float | None = None) -> Any:
        """Call a hub method and wait for its completion result."""
        invocation_id = str(next(self._ids))
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[invocation_id] = future
        effective_timeout = timeout if timeout is not None else self._config.invoke_timeout
        try:
            await self._send(
                {
                    "type": MessageType.INVOCATION,
                    "invocationId": invocation_id,
                    "target": target,
                    "arguments": list(arguments),
                }
            )
            return await asyncio.wait_for(future, effective_timeout)
        except TimeoutError as exc:
            raise SimRailConnectionError(
                f"{target} timed out after {effective_timeout:.0f}s",
                url=self._config.hub_url,
            ) from exc
        except SimRailHubError as exc:
            raise SimRailHubError(str(exc), target=target) from exc
        finally:
            self._pending.pop(invocation_id, None)

    async def send(self, target: str, *arguments: Any) -> None:
        """Call a hub method without waiting for a result."""
        await self._send({"type": MessageType.INVOCATION, "target": target, "arguments": list(arguments)})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fail_pending(self, error: Exception) -> None:
        pending = self._pending
        self._pending = {}
        for future in pending.values():
            if not future.done():
                future.set_exception(error)

    def _emit(self, status: ConnectionStatus, detail: str, reconnected: bool) -> None:
        try:
            self._on_status(status, detail, reconnected)
        except Exception:
            self._logger.exception("Hub status callback failed")

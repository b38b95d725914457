#!/usr/bin/env python3
"""Console watcher for a SimRail server.

Connects to the hub, follows one server and periodically prints:
1) the connection status line,
2) the train list (optionally filtered by number),
3) details and timetable of a focused train (``--train``).

Use this to check the live snapshot stream without a map frontend.
"""

from __future__ import annotations

import argparse
import asyncio
import itertools
import logging
import signal
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pysimrail import Dashboard, SimRailConfig, TimetableStatus  # noqa: E402

_LOG = logging.getLogger("watch_trains")


class ConsoleMap:
    """Map surface that only keeps handles and logs focus requests."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.markers: dict[int, tuple[float, float, str]] = {}

    def create_marker(
        self,
        latitude: float,
        longitude: float,
        *,
        label: str,
        on_click: Callable[[], None],
    ) -> Any:
        handle = next(self._ids)
        self.markers[handle] = (latitude, longitude, label)
        return handle

    def move_marker(self, handle: Any, latitude: float, longitude: float) -> None:
        _, _, label = self.markers[handle]
        self.markers[handle] = (latitude, longitude, label)

    def set_marker_label(self, handle: Any, label: str) -> None:
        latitude, longitude, _ = self.markers[handle]
        self.markers[handle] = (latitude, longitude, label)

    def remove_marker(self, handle: Any) -> None:
        self.markers.pop(handle, None)

    def open_label(self, handle: Any) -> None:
        _LOG.info("Popup: %s", self.markers[handle][2])

    def focus(self, latitude: float, longitude: float, zoom: int) -> None:
        _LOG.info("Focus map on %.5f, %.5f (zoom %d)", latitude, longitude, zoom)


def _print_snapshot(dashboard: Dashboard, *, limit: int) -> None:
    print(f"\nStatus: {dashboard.status_label}  server={dashboard.current_server}")
    items = dashboard.list_items()
    print(f"Active trains: {len(dashboard.store)} (showing {min(limit, len(items))} of {len(items)} matching)")
    if not items:
        print("  No trains or nothing matched...")
    for item in items[:limit]:
        print(f"  {item.number:>8}  {item.route}")

    details = dashboard.details()
    if details is None:
        return
    print(f"\nTrain no. {details.number}")
    print(f"  Route:    {details.route}")
    print(f"  Speed:    {details.velocity:.0f} km/h")
    print(f"  Driver:   {details.driver_label}")
    print(f"  Category: {details.category}")
    state = details.timetable
    if state.status == TimetableStatus.LOADING:
        print("  Loading timetable...")
    elif state.status == TimetableStatus.READY and state.timetable is not None:
        for stop in state.timetable.stops:
            print(f"  {stop.name}: arr {stop.arrival_summary}  dep {stop.departure_summary}")
    else:
        print("  No timetable data.")


async def _run(args: argparse.Namespace) -> int:
    overrides: dict[str, Any] = {}
    if args.server:
        overrides["default_server"] = args.server
    if args.hub_url:
        overrides["hub_url"] = args.hub_url
    config = SimRailConfig.from_env(**overrides)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass

    async with Dashboard(config, ConsoleMap()) as dashboard:
        dashboard.set_search(args.search)
        while not stop_event.is_set():
            if args.train:
                focused = next((t for t in dashboard.store if t.number == args.train), None)
                if focused is not None and dashboard.selected_id != focused.id:
                    dashboard.select(focused.id)
            _print_snapshot(dashboard, limit=args.limit)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=args.interval)
            except TimeoutError:
                continue
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Watch live trains on a SimRail server")
    parser.add_argument("--server", help="Server code to follow (default: SIMRAIL_DEFAULT_SERVER or PL1)")
    parser.add_argument("--hub-url", help="Override the hub URL")
    parser.add_argument("--search", default="", help="Only list trains whose number contains this text")
    parser.add_argument("--train", help="Focus the train with this number and show its timetable")
    parser.add_argument("--interval", type=float, default=5.0, help="Seconds between printouts")
    parser.add_argument("--limit", type=int, default=20, help="Max trains listed per printout")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())

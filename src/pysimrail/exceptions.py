"""Custom exception hierarchy for pysimrail."""

from __future__ import annotations


class SimRailError(Exception):
    """Base exception for all pysimrail errors."""


class SimRailConfigError(SimRailError):
    """Invalid or missing configuration."""


class SimRailConnectionError(SimRailError):
    """Hub channel failed to establish or dropped."""

    def __init__(self, message: str, *, url: str = "") -> None:
        self.url = url
        super().__init__(message)


class SimRailProtocolError(SimRailConnectionError):
    """Hub sent a handshake or frame that could not be understood."""


class SimRailHubError(SimRailError):
    """Hub completed an invocation with an error message."""

    def __init__(self, message: str, *, target: str = "") -> None:
        self.target = target
        super().__init__(message)


class SimRailFetchError(SimRailError):
    """Timetable request failed (transport, hub error, or timeout).

    Not retried automatically; the selection shows an explicit
    "no data" state instead.
    """

    def __init__(self, message: str, *, train_id: str = "") -> None:
        self.train_id = train_id
        super().__init__(message)

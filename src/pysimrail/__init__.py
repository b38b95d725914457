"""pysimrail - Async live train tracking for SimRail simulation servers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pysimrail")
except PackageNotFoundError:
    __version__ = "0+local"
from pysimrail.config import SimRailConfig
from pysimrail.connection import HubConnection
from pysimrail.dashboard import Dashboard, TrainDetails
from pysimrail.exceptions import (
    SimRailConfigError,
    SimRailConnectionError,
    SimRailError,
    SimRailFetchError,
    SimRailHubError,
    SimRailProtocolError,
)
from pysimrail.markers import MapSurface, MarkerReconciler, ReconcileResult
from pysimrail.models import ServerEntity, Timetable, TimetableStop, TrainEntity, TrainPosition
from pysimrail.state.events import (
    ConnectionStatus,
    ConnectionStatusChanged,
    ServersReceived,
    TrainPositionsReceived,
    TrainsReceived,
)
from pysimrail.state.selection import SelectionManager
from pysimrail.state.store import EntityStore
from pysimrail.state.view import TrainListItem, filter_trains
from pysimrail.timetable import TimetableCoordinator, TimetableState, TimetableStatus

__all__ = [
    "__version__",
    "ConnectionStatus",
    "ConnectionStatusChanged",
    "Dashboard",
    "EntityStore",
    "HubConnection",
    "MapSurface",
    "MarkerReconciler",
    "ReconcileResult",
    "SelectionManager",
    "ServerEntity",
    "ServersReceived",
    "SimRailConfig",
    "SimRailConfigError",
    "SimRailConnectionError",
    "SimRailError",
    "SimRailFetchError",
    "SimRailHubError",
    "SimRailProtocolError",
    "Timetable",
    "TimetableCoordinator",
    "TimetableState",
    "TimetableStatus",
    "TimetableStop",
    "TrainDetails",
    "TrainEntity",
    "TrainListItem",
    "TrainPosition",
    "TrainPositionsReceived",
    "TrainsReceived",
    "filter_trains",
]

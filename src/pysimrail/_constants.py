"""Internal constants shared across the library."""

HUB_URL = "https://api.smo.data-unknown.com/signalr"
DEFAULT_SERVER = "PL1"

# ------------------------------------------------------------------
# Hub method names
# ------------------------------------------------------------------

EVENT_SERVERS_RECEIVED = "ServersReceived"
EVENT_TRAINS_RECEIVED = "TrainsReceived"
EVENT_TRAIN_POSITIONS_RECEIVED = "TrainPositionsReceived"

METHOD_GET_SERVERS = "GetServers"
METHOD_SWITCH_SERVER = "SwitchServer"
METHOD_GET_TIMETABLE = "GetTimetable"

# ------------------------------------------------------------------
# Reconnect policy (seconds to wait before each attempt, then give up)
# ------------------------------------------------------------------

RECONNECT_DELAYS: tuple[float, ...] = (0.0, 2.0, 10.0, 30.0)

# ------------------------------------------------------------------
# Map defaults
# ------------------------------------------------------------------

MAP_CENTER: tuple[float, float] = (52.237049, 21.017532)
MAP_ZOOM = 7
FOCUS_ZOOM = 14


def marker_label(number: str) -> str:
    """Popup text shown on a train marker."""
    return f"Train no. {number}"

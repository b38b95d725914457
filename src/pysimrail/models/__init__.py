"""Data models for hub payloads."""

from pysimrail.models._base import SimRailBaseModel
from pysimrail.models.server import ServerEntity
from pysimrail.models.timetable import Timetable, TimetableStop
from pysimrail.models.train import TrainEntity, TrainPosition

__all__ = [
    "ServerEntity",
    "SimRailBaseModel",
    "Timetable",
    "TimetableStop",
    "TrainEntity",
    "TrainPosition",
]

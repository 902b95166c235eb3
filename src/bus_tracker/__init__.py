"""Big Blue Bus tracker - GTFS-RT polling, normalization and storage."""

__version__ = "0.1.0"

from .config import settings
from .models import BusObservation, PollStats, StopTimeEvent, StopTimeUpdate, TripUpdate
from .processing import filter_by_routes, normalize_trip_updates, normalize_vehicle_positions
from .utils.formatting import format_delay

__all__ = [
    "settings",
    "BusObservation",
    "PollStats",
    "StopTimeEvent",
    "StopTimeUpdate",
    "TripUpdate",
    "filter_by_routes",
    "format_delay",
    "normalize_trip_updates",
    "normalize_vehicle_positions",
]

"""Bus tracker models package."""

from .base import BaseModel
from .feed import (
    EntityKind,
    FeedEntity,
    FeedSnapshot,
    Position,
    StopTimeEventPayload,
    StopTimeUpdatePayload,
    TripDescriptor,
    TripUpdatePayload,
    VehicleDescriptor,
    VehiclePositionPayload,
)
from .transit import UNKNOWN, BusObservation, PollStats, StopTimeEvent, StopTimeUpdate, TripUpdate
from .database import (
    Observation as DBObservation,
    StopTimeUpdate as DBStopTimeUpdate,
    TripUpdate as DBTripUpdate,
)

__all__ = [
    # Base models
    "BaseModel",

    # Decoded feed
    "EntityKind",
    "FeedEntity",
    "FeedSnapshot",
    "Position",
    "StopTimeEventPayload",
    "StopTimeUpdatePayload",
    "TripDescriptor",
    "TripUpdatePayload",
    "VehicleDescriptor",
    "VehiclePositionPayload",

    # Normalized records
    "UNKNOWN",
    "BusObservation",
    "PollStats",
    "StopTimeEvent",
    "StopTimeUpdate",
    "TripUpdate",

    # Database models
    "DBObservation",
    "DBStopTimeUpdate",
    "DBTripUpdate",
]

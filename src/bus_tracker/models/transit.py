"""Normalized transit records produced from GTFS-RT feeds."""

from typing import List, Optional

from pydantic import Field

from .base import BaseModel
from ..utils.formatting import (
    describe_observation,
    describe_stop_time_update,
    describe_trip_update,
    format_delay,
)

UNKNOWN = "unknown"


class BusObservation(BaseModel):
    """One normalized vehicle sighting."""

    timestamp: int = Field(..., description="Observation time, epoch seconds")
    vehicle_id: str = Field(..., description="Vehicle identifier or 'unknown'")
    route_id: str = Field(..., description="Route identifier or 'unknown'")
    trip_id: Optional[str] = Field(None, description="Associated trip ID")
    direction_id: Optional[int] = Field(None, description="Direction (0=outbound, 1=inbound)")

    latitude: float = Field(..., description="Vehicle latitude")
    longitude: float = Field(..., description="Vehicle longitude")
    current_stop_sequence: Optional[int] = Field(None, description="Stop sequence the vehicle is at or heading to")
    speed: Optional[float] = Field(None, description="Vehicle speed in m/s")
    bearing: Optional[float] = Field(None, description="Vehicle bearing in degrees")

    def is_route(self, route_id: str) -> bool:
        """Check if this observation belongs to the given route."""
        return self.route_id == route_id

    def __str__(self) -> str:
        return describe_observation(self)


class StopTimeEvent(BaseModel):
    """Predicted arrival or departure time at a stop."""

    time: Optional[int] = Field(None, description="Predicted time, epoch seconds")
    delay: Optional[int] = Field(None, description="Delay in seconds (positive = late)")
    uncertainty: Optional[int] = Field(None, description="Uncertainty in seconds")


class StopTimeUpdate(BaseModel):
    """Arrival/departure prediction for a specific stop."""

    stop_sequence: int = Field(0, ge=0, description="Position of the stop along the trip")
    stop_id: Optional[str] = Field(None, description="Stop ID from GTFS")
    arrival: Optional[StopTimeEvent] = None
    departure: Optional[StopTimeEvent] = None

    def __str__(self) -> str:
        return describe_stop_time_update(self)


class TripUpdate(BaseModel):
    """A scheduled trip with real-time updates."""

    route_id: str = Field(..., description="Route identifier or 'unknown'")
    trip_id: str = Field(..., description="Trip identifier or 'unknown'")
    direction_id: Optional[int] = Field(None, description="Direction (0=outbound, 1=inbound)")
    vehicle_id: Optional[str] = Field(None, description="Vehicle serving this trip")
    stop_time_updates: List[StopTimeUpdate] = Field(default_factory=list)
    timestamp: int = Field(..., description="Update time, epoch seconds")

    def is_route(self, route_id: str) -> bool:
        """Check if this trip matches the given route ID."""
        return self.route_id == route_id

    @staticmethod
    def format_delay(delay_seconds: int) -> str:
        """Format delay in human-readable format."""
        return format_delay(delay_seconds)

    def __str__(self) -> str:
        return describe_trip_update(self)


class PollStats(BaseModel):
    """Counts for a single poll cycle."""

    total_vehicles: int = Field(..., ge=0, description="Observations before route filtering")
    route_1_vehicles: int = Field(..., ge=0, description="Observations left after route filtering")
    timestamp: int = Field(..., description="Poll wall-clock time, epoch seconds")

"""Decoded GTFS-RT feed snapshot.

These types mirror the parts of the GTFS-Realtime ``FeedMessage`` the tracker
reads. Every protobuf field that can be absent on the wire is an explicit
``Optional`` here; the decoder resolves presence with ``HasField`` so that the
normalizers never see protobuf default values masquerading as data.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class TripDescriptor:
    """Trip linkage of a vehicle or trip update."""

    trip_id: Optional[str] = None
    route_id: Optional[str] = None
    direction_id: Optional[int] = None


@dataclass(frozen=True)
class VehicleDescriptor:
    """Vehicle identification."""

    id: Optional[str] = None
    label: Optional[str] = None


@dataclass(frozen=True)
class Position:
    """WGS-84 position; latitude and longitude are required by the protocol."""

    latitude: float
    longitude: float
    bearing: Optional[float] = None
    speed: Optional[float] = None


@dataclass(frozen=True)
class VehiclePositionPayload:
    """Vehicle position carried by a feed entity."""

    trip: Optional[TripDescriptor] = None
    vehicle: Optional[VehicleDescriptor] = None
    position: Optional[Position] = None
    timestamp: Optional[int] = None
    current_stop_sequence: Optional[int] = None


@dataclass(frozen=True)
class StopTimeEventPayload:
    """Predicted arrival or departure at a stop."""

    time: Optional[int] = None
    delay: Optional[int] = None
    uncertainty: Optional[int] = None


@dataclass(frozen=True)
class StopTimeUpdatePayload:
    """Real-time update for one stop of a trip."""

    stop_sequence: Optional[int] = None
    stop_id: Optional[str] = None
    arrival: Optional[StopTimeEventPayload] = None
    departure: Optional[StopTimeEventPayload] = None


@dataclass(frozen=True)
class TripUpdatePayload:
    """Trip update carried by a feed entity."""

    trip: TripDescriptor = field(default_factory=TripDescriptor)
    vehicle: Optional[VehicleDescriptor] = None
    stop_time_updates: Tuple[StopTimeUpdatePayload, ...] = ()
    timestamp: Optional[int] = None


EntityPayload = Union[VehiclePositionPayload, TripUpdatePayload, None]


class EntityKind(str, Enum):
    """Discriminator for the payload of a feed entity."""

    VEHICLE_POSITION = "vehicle_position"
    TRIP_UPDATE = "trip_update"
    NONE = "none"


@dataclass(frozen=True)
class FeedEntity:
    """A feed entity holding at most one payload."""

    id: str
    payload: EntityPayload = None

    @property
    def kind(self) -> EntityKind:
        if isinstance(self.payload, VehiclePositionPayload):
            return EntityKind.VEHICLE_POSITION
        if isinstance(self.payload, TripUpdatePayload):
            return EntityKind.TRIP_UPDATE
        return EntityKind.NONE


@dataclass(frozen=True)
class FeedSnapshot:
    """One decoded poll of a GTFS-RT feed."""

    header_timestamp: Optional[int] = None
    gtfs_realtime_version: Optional[str] = None
    entities: Tuple[FeedEntity, ...] = ()

    def count(self, kind: EntityKind) -> int:
        """Number of entities of the given kind."""
        return sum(1 for entity in self.entities if entity.kind is kind)

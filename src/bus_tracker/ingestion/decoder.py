"""Decoding of GTFS-RT protobuf bytes into a ``FeedSnapshot``."""

import logging
from typing import Any, List, Optional

from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from ..exceptions import FeedDecodeError
from ..models.feed import (
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

logger = logging.getLogger(__name__)


def _optional(message: Any, field_name: str) -> Optional[Any]:
    """Field value when present on the wire, else ``None``."""
    if message.HasField(field_name):
        return getattr(message, field_name)
    return None


def _trip_descriptor(trip: gtfs_realtime_pb2.TripDescriptor) -> TripDescriptor:
    return TripDescriptor(
        trip_id=_optional(trip, "trip_id"),
        route_id=_optional(trip, "route_id"),
        direction_id=_optional(trip, "direction_id"),
    )


def _vehicle_descriptor(vehicle: gtfs_realtime_pb2.VehicleDescriptor) -> VehicleDescriptor:
    return VehicleDescriptor(
        id=_optional(vehicle, "id"),
        label=_optional(vehicle, "label"),
    )


def _vehicle_position(vehicle: gtfs_realtime_pb2.VehiclePosition) -> VehiclePositionPayload:
    position = None
    if vehicle.HasField("position"):
        pb_position = vehicle.position
        position = Position(
            latitude=float(pb_position.latitude),
            longitude=float(pb_position.longitude),
            bearing=_optional(pb_position, "bearing"),
            speed=_optional(pb_position, "speed"),
        )

    return VehiclePositionPayload(
        trip=_trip_descriptor(vehicle.trip) if vehicle.HasField("trip") else None,
        vehicle=_vehicle_descriptor(vehicle.vehicle) if vehicle.HasField("vehicle") else None,
        position=position,
        timestamp=_optional(vehicle, "timestamp"),
        current_stop_sequence=_optional(vehicle, "current_stop_sequence"),
    )


def _stop_time_event(event: gtfs_realtime_pb2.TripUpdate.StopTimeEvent) -> StopTimeEventPayload:
    return StopTimeEventPayload(
        time=_optional(event, "time"),
        delay=_optional(event, "delay"),
        uncertainty=_optional(event, "uncertainty"),
    )


def _stop_time_update(update: gtfs_realtime_pb2.TripUpdate.StopTimeUpdate) -> StopTimeUpdatePayload:
    return StopTimeUpdatePayload(
        stop_sequence=_optional(update, "stop_sequence"),
        stop_id=_optional(update, "stop_id"),
        arrival=_stop_time_event(update.arrival) if update.HasField("arrival") else None,
        departure=_stop_time_event(update.departure) if update.HasField("departure") else None,
    )


def _trip_update(trip_update: gtfs_realtime_pb2.TripUpdate) -> TripUpdatePayload:
    # ``trip`` is required by the protocol; an empty descriptor stands in if a
    # producer omits it so that route/trip ids fall back to "unknown".
    return TripUpdatePayload(
        trip=_trip_descriptor(trip_update.trip),
        vehicle=(
            _vehicle_descriptor(trip_update.vehicle)
            if trip_update.HasField("vehicle") else None
        ),
        stop_time_updates=tuple(_stop_time_update(u) for u in trip_update.stop_time_update),
        timestamp=_optional(trip_update, "timestamp"),
    )


def _entities(entity: gtfs_realtime_pb2.FeedEntity) -> List[FeedEntity]:
    # An entity carrying both payloads is split so each pipeline still sees its own.
    entities = []
    if entity.HasField("vehicle"):
        entities.append(FeedEntity(id=entity.id, payload=_vehicle_position(entity.vehicle)))
    if entity.HasField("trip_update"):
        entities.append(FeedEntity(id=entity.id, payload=_trip_update(entity.trip_update)))
    if not entities:
        entities.append(FeedEntity(id=entity.id))
    return entities


def snapshot_from_message(feed: gtfs_realtime_pb2.FeedMessage) -> FeedSnapshot:
    """Convert a parsed ``FeedMessage`` into a ``FeedSnapshot``."""
    entities = []
    for entity in feed.entity:
        entities.extend(_entities(entity))

    return FeedSnapshot(
        header_timestamp=_optional(feed.header, "timestamp"),
        gtfs_realtime_version=_optional(feed.header, "gtfs_realtime_version"),
        entities=tuple(entities),
    )


def decode_feed(data: bytes) -> FeedSnapshot:
    """Parse GTFS-RT protobuf bytes.

    Raises:
        FeedDecodeError: if the bytes are not a valid ``FeedMessage``.
    """
    feed = gtfs_realtime_pb2.FeedMessage()
    try:
        feed.ParseFromString(data)
    except DecodeError as e:
        raise FeedDecodeError(f"Failed to decode protobuf message: {e}") from e

    logger.debug(f"Decoded protobuf feed with {len(feed.entity)} entities")
    return snapshot_from_message(feed)

"""Normalization of decoded GTFS-RT snapshots into transit records.

Both normalizers are pure: they read one ``FeedSnapshot`` and return freshly
built, immutable records. Entity order is preserved and no entity ever raises;
missing data is handled by the skip and fallback rules below.

Vehicle positions:
    * no vehicle payload, no trip descriptor or no position -> entity skipped
    * missing vehicle descriptor/id or route id -> ``"unknown"``
    * timestamp: vehicle timestamp, else feed header timestamp, else 0

Trip updates:
    * no trip-update payload -> entity skipped
    * missing route id / trip id -> ``"unknown"``; vehicle id stays ``None``
    * missing stop sequence -> 0
    * timestamp: trip-update timestamp, else feed header timestamp, else 0
"""

import logging
from typing import List, Optional

from ..models.feed import (
    EntityKind,
    FeedSnapshot,
    StopTimeEventPayload,
    StopTimeUpdatePayload,
    VehicleDescriptor,
)
from ..models.transit import UNKNOWN, BusObservation, StopTimeEvent, StopTimeUpdate, TripUpdate

logger = logging.getLogger(__name__)


def resolve_timestamp(own: Optional[int], header: Optional[int]) -> int:
    """Record timestamp, falling back to the feed header, then to 0."""
    if own is not None:
        return own
    if header is not None:
        return header
    return 0


def _vehicle_id(vehicle: Optional[VehicleDescriptor]) -> Optional[str]:
    if vehicle is None:
        return None
    return vehicle.id


def _or_unknown(value: Optional[str]) -> str:
    return value if value is not None else UNKNOWN


def normalize_vehicle_positions(snapshot: FeedSnapshot) -> List[BusObservation]:
    """Build one ``BusObservation`` per usable vehicle-position entity."""
    observations = []

    for entity in snapshot.entities:
        if entity.kind is not EntityKind.VEHICLE_POSITION:
            continue
        vehicle = entity.payload

        # Trip linkage is mandatory for route attribution.
        trip = vehicle.trip
        if trip is None:
            continue

        position = vehicle.position
        if position is None:
            continue

        observations.append(
            BusObservation(
                timestamp=resolve_timestamp(vehicle.timestamp, snapshot.header_timestamp),
                vehicle_id=_or_unknown(_vehicle_id(vehicle.vehicle)),
                route_id=_or_unknown(trip.route_id),
                trip_id=trip.trip_id,
                direction_id=trip.direction_id,
                latitude=position.latitude,
                longitude=position.longitude,
                current_stop_sequence=vehicle.current_stop_sequence,
                speed=position.speed,
                bearing=position.bearing,
            )
        )

    logger.debug(
        f"Normalized {len(observations)} vehicle observations "
        f"from {len(snapshot.entities)} entities"
    )
    return observations


def _stop_time_event(event: Optional[StopTimeEventPayload]) -> Optional[StopTimeEvent]:
    if event is None:
        return None
    return StopTimeEvent(time=event.time, delay=event.delay, uncertainty=event.uncertainty)


def _stop_time_update(update: StopTimeUpdatePayload) -> StopTimeUpdate:
    return StopTimeUpdate(
        stop_sequence=update.stop_sequence if update.stop_sequence is not None else 0,
        stop_id=update.stop_id,
        arrival=_stop_time_event(update.arrival),
        departure=_stop_time_event(update.departure),
    )


def normalize_trip_updates(snapshot: FeedSnapshot) -> List[TripUpdate]:
    """Build one ``TripUpdate`` per trip-update entity."""
    trip_updates = []

    for entity in snapshot.entities:
        if entity.kind is not EntityKind.TRIP_UPDATE:
            continue
        payload = entity.payload
        trip = payload.trip

        trip_updates.append(
            TripUpdate(
                route_id=_or_unknown(trip.route_id),
                trip_id=_or_unknown(trip.trip_id),
                direction_id=trip.direction_id,
                vehicle_id=_vehicle_id(payload.vehicle),
                stop_time_updates=[_stop_time_update(u) for u in payload.stop_time_updates],
                timestamp=resolve_timestamp(payload.timestamp, snapshot.header_timestamp),
            )
        )

    logger.debug(
        f"Normalized {len(trip_updates)} trip updates "
        f"from {len(snapshot.entities)} entities"
    )
    return trip_updates

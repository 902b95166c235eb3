"""Human-readable rendering of feed snapshots and normalized records."""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from ..models.feed import FeedSnapshot
    from ..models.transit import BusObservation, StopTimeEvent, StopTimeUpdate, TripUpdate

NOT_AVAILABLE = "N/A"


def format_delay(delay_seconds: int) -> str:
    """Format a delay in seconds, e.g. ``125 -> "2m 5s late"``."""
    abs_delay = abs(delay_seconds)
    minutes = abs_delay // 60
    seconds = abs_delay % 60

    if delay_seconds > 0:
        return f"{minutes}m {seconds}s late"
    if delay_seconds < 0:
        return f"{minutes}m {seconds}s early"
    return "on time"


def format_timestamp(timestamp: int) -> str:
    """Format epoch seconds as a UTC wall-clock time (HH:MM:SS)."""
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%H:%M:%S")
    except (OverflowError, OSError, ValueError):
        return "invalid time"


def direction_label(direction_id: Optional[int]) -> str:
    """Map a GTFS direction id to a label."""
    if direction_id == 0:
        return "Outbound"
    if direction_id == 1:
        return "Inbound"
    return "Unknown"


def _describe_event(label: str, event: Optional["StopTimeEvent"]) -> str:
    # A delay wins over an absolute time; an event with neither renders nothing.
    if event is None:
        return ""
    if event.delay is not None:
        return f" | {label}: {format_delay(event.delay)}"
    if event.time is not None:
        return f" | {label}: {format_timestamp(event.time)}"
    return ""


def describe_stop_time_update(update: "StopTimeUpdate") -> str:
    """One indented line per stop, e.g. ``  Stop #4 (1234) | Arrival: 1m 0s late``."""
    text = f"  Stop #{update.stop_sequence}"
    if update.stop_id is not None:
        text += f" ({update.stop_id})"
    text += _describe_event("Arrival", update.arrival)
    text += _describe_event("Departure", update.departure)
    return text


def describe_trip_update(update: "TripUpdate") -> str:
    """Summary line for a trip update."""
    return (
        f"Route {update.route_id} | Trip {update.trip_id} | "
        f"{direction_label(update.direction_id)} | "
        f"{len(update.stop_time_updates)} stops with updates | "
        f"Vehicle: {update.vehicle_id if update.vehicle_id is not None else NOT_AVAILABLE}"
    )


def describe_observation(observation: "BusObservation") -> str:
    """Summary line for a bus observation."""
    return (
        f"Vehicle {observation.vehicle_id} | Route {observation.route_id} | "
        f"({observation.latitude:.5f}, {observation.longitude:.5f})"
    )


def describe_snapshot(snapshot: "FeedSnapshot") -> List[str]:
    """Dump every entity of a vehicle-positions snapshot, field by field.

    Used to debug feeds whose vehicles never show up as observations:
    each line shows what the decoder found, including absent descriptors.
    """
    from ..models.feed import EntityKind

    lines = [
        f"Feed header version: {snapshot.gtfs_realtime_version}",
        f"Feed timestamp: {snapshot.header_timestamp}",
        f"Number of entities: {len(snapshot.entities)}",
    ]

    for index, entity in enumerate(snapshot.entities):
        lines.append("")
        lines.append(f"--- Entity {index} ---")
        lines.append(f"Entity ID: {entity.id}")

        if entity.kind is not EntityKind.VEHICLE_POSITION:
            lines.append("Has vehicle data: NO")
            continue

        vehicle = entity.payload
        lines.append("Has vehicle data: YES")

        if vehicle.trip is not None:
            lines.append(f"  Trip ID: {vehicle.trip.trip_id}")
            lines.append(f"  Route ID: {vehicle.trip.route_id}")
            lines.append(f"  Direction ID: {vehicle.trip.direction_id}")
        else:
            lines.append("  Trip data: NONE")

        if vehicle.vehicle is not None:
            lines.append(f"  Vehicle ID: {vehicle.vehicle.id}")
            lines.append(f"  Vehicle label: {vehicle.vehicle.label}")
        else:
            lines.append("  Vehicle descriptor: NONE")

        if vehicle.position is not None:
            position = vehicle.position
            lines.append(f"  Position: {position.latitude}, {position.longitude}")
            lines.append(f"  Bearing: {position.bearing}")
            lines.append(f"  Speed: {position.speed}")
        else:
            lines.append("  Position: NONE")

        lines.append(f"  Timestamp: {vehicle.timestamp}")
        lines.append(f"  Current stop: {vehicle.current_stop_sequence}")

    return lines

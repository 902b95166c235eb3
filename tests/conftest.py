"""Shared fixtures: GTFS-RT feeds built with the official protobuf bindings."""

from typing import Iterable, Optional, Tuple

import pytest
from google.transit import gtfs_realtime_pb2

from bus_tracker.ingestion import TripUpdateIngestor, VehiclePositionIngestor
from bus_tracker.storage import DatabaseManager, ObservationStore

HEADER_TIMESTAMP = 1700000000


class FeedBuilder:
    """Builds a ``FeedMessage`` entity by entity."""

    def __init__(self, header_timestamp: Optional[int] = HEADER_TIMESTAMP):
        self.message = gtfs_realtime_pb2.FeedMessage()
        self.message.header.gtfs_realtime_version = "2.0"
        if header_timestamp is not None:
            self.message.header.timestamp = header_timestamp

    def vehicle(
        self,
        entity_id: str,
        route_id: Optional[str] = "1",
        trip_id: Optional[str] = "trip-1",
        direction_id: Optional[int] = None,
        vehicle_id: Optional[str] = "bus-1",
        position: Optional[Tuple[float, float]] = (34.0, -118.5),
        timestamp: Optional[int] = None,
        speed: Optional[float] = None,
        bearing: Optional[float] = None,
        current_stop_sequence: Optional[int] = None,
        with_trip: bool = True,
        with_vehicle: bool = True,
    ):
        entity = self.message.entity.add()
        entity.id = entity_id
        vp = entity.vehicle
        vp.SetInParent()

        if with_trip:
            vp.trip.SetInParent()
            if trip_id is not None:
                vp.trip.trip_id = trip_id
            if route_id is not None:
                vp.trip.route_id = route_id
            if direction_id is not None:
                vp.trip.direction_id = direction_id

        if with_vehicle:
            vp.vehicle.SetInParent()
            if vehicle_id is not None:
                vp.vehicle.id = vehicle_id

        if position is not None:
            vp.position.latitude, vp.position.longitude = position
            if speed is not None:
                vp.position.speed = speed
            if bearing is not None:
                vp.position.bearing = bearing

        if timestamp is not None:
            vp.timestamp = timestamp
        if current_stop_sequence is not None:
            vp.current_stop_sequence = current_stop_sequence
        return entity

    def trip_update(
        self,
        entity_id: str,
        route_id: Optional[str] = "1",
        trip_id: Optional[str] = "trip-1",
        direction_id: Optional[int] = None,
        vehicle_id: Optional[str] = None,
        timestamp: Optional[int] = None,
        stops: Iterable[dict] = (),
    ):
        """Add a trip update; each stop dict may hold ``stop_sequence``,
        ``stop_id``, ``arrival`` and ``departure`` (dicts of event fields)."""
        entity = self.message.entity.add()
        entity.id = entity_id
        tu = entity.trip_update
        tu.trip.SetInParent()
        if trip_id is not None:
            tu.trip.trip_id = trip_id
        if route_id is not None:
            tu.trip.route_id = route_id
        if direction_id is not None:
            tu.trip.direction_id = direction_id
        if vehicle_id is not None:
            tu.vehicle.id = vehicle_id
        if timestamp is not None:
            tu.timestamp = timestamp

        for stop in stops:
            stu = tu.stop_time_update.add()
            if "stop_sequence" in stop:
                stu.stop_sequence = stop["stop_sequence"]
            if "stop_id" in stop:
                stu.stop_id = stop["stop_id"]
            for event_name in ("arrival", "departure"):
                if event_name in stop:
                    event = getattr(stu, event_name)
                    event.SetInParent()
                    for key, value in stop[event_name].items():
                        setattr(event, key, value)
        return entity

    def bare(self, entity_id: str):
        """An entity with neither payload (e.g. an alert)."""
        entity = self.message.entity.add()
        entity.id = entity_id
        entity.alert.header_text.translation.add(text="Detour", language="en")
        return entity

    def build(self) -> bytes:
        return self.message.SerializeToString()


class StaticVehicleIngestor(VehiclePositionIngestor):
    """Vehicle ingestor that serves canned bytes, or raises, instead of fetching."""

    def __init__(self, payload, routes=("1",)):
        super().__init__(url="http://feed.invalid/vehiclepositions.bin", routes=list(routes))
        self.payload = payload
        self.fetch_count = 0

    async def _fetch_protobuf_feed(self) -> bytes:
        self.fetch_count += 1
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class StaticTripUpdateIngestor(TripUpdateIngestor):
    def __init__(self, payload, routes=("1", "2")):
        super().__init__(url="http://feed.invalid/tripupdates.bin", routes=list(routes))
        self.payload = payload

    async def _fetch_protobuf_feed(self) -> bytes:
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


@pytest.fixture
def feed():
    """A fresh feed builder with a header timestamp."""
    return FeedBuilder()


@pytest.fixture
def feed_without_header_timestamp():
    """A fresh feed builder whose header has no timestamp."""
    return FeedBuilder(header_timestamp=None)


@pytest.fixture
def store(tmp_path):
    """An observation store on a throwaway SQLite file."""
    db_manager = DatabaseManager(f"sqlite:///{tmp_path / 'bus_tracking.db'}", echo=False)
    observation_store = ObservationStore(db_manager)
    db_manager.create_tables()
    yield observation_store
    observation_store.close()

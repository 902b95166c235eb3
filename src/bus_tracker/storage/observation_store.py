"""Storage service for bus observations and trip updates."""

from typing import Iterable, Optional, Sequence, Union
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from .database import DatabaseManager
from ..exceptions import StorageError
from ..models.database import (
    Observation as DBObservation,
    StopTimeUpdate as DBStopTimeUpdate,
    TripUpdate as DBTripUpdate,
)
from ..models.transit import BusObservation, StopTimeEvent, TripUpdate
from ..processing.route_filter import route_set

logger = logging.getLogger(__name__)


def _event_columns(prefix: str, event: Optional[StopTimeEvent]) -> dict:
    if event is None:
        return {}
    return {
        f"{prefix}_time": event.time,
        f"{prefix}_delay": event.delay,
        f"{prefix}_uncertainty": event.uncertainty,
    }


class ObservationStore:
    """Durable store for normalized records.

    Batches are written in a single transaction; any database failure is
    re-raised as ``StorageError`` so the poll loop can log it and carry on.
    """

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        """Initialize the store, creating a database manager from settings if needed."""
        self.db_manager = db_manager or DatabaseManager()

    async def initialize(self) -> None:
        """Create the schema if it does not exist yet."""
        try:
            self.db_manager.create_tables()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to initialize schema: {e}") from e

    def _to_row(self, observation: BusObservation) -> DBObservation:
        return DBObservation(
            timestamp=observation.timestamp,
            vehicle_id=observation.vehicle_id,
            route_id=observation.route_id,
            trip_id=observation.trip_id,
            direction_id=observation.direction_id,
            latitude=observation.latitude,
            longitude=observation.longitude,
            current_stop_sequence=observation.current_stop_sequence,
            speed=observation.speed,
            bearing=observation.bearing,
        )

    async def insert_observation(self, observation: BusObservation) -> None:
        """Insert a single observation."""
        await self.insert_observations([observation])

    async def insert_observations(self, observations: Sequence[BusObservation]) -> int:
        """Insert observations in one transaction and return how many were saved."""
        if not observations:
            return 0

        try:
            with self.db_manager.get_session_context() as session:
                session.add_all([self._to_row(obs) for obs in observations])
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to insert observations: {e}") from e

        logger.debug(f"Inserted {len(observations)} observations")
        return len(observations)

    async def insert_trip_updates(self, trip_updates: Sequence[TripUpdate]) -> int:
        """Insert trip updates with their stop time updates in one transaction."""
        if not trip_updates:
            return 0

        try:
            with self.db_manager.get_session_context() as session:
                for update in trip_updates:
                    db_update = DBTripUpdate(
                        route_id=update.route_id,
                        trip_id=update.trip_id,
                        direction_id=update.direction_id,
                        vehicle_id=update.vehicle_id,
                        timestamp=update.timestamp,
                    )
                    db_update.stop_time_updates = [
                        DBStopTimeUpdate(
                            position=index,
                            stop_sequence=stop.stop_sequence,
                            stop_id=stop.stop_id,
                            **_event_columns("arrival", stop.arrival),
                            **_event_columns("departure", stop.departure),
                        )
                        for index, stop in enumerate(update.stop_time_updates)
                    ]
                    session.add(db_update)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to insert trip updates: {e}") from e

        logger.debug(f"Inserted {len(trip_updates)} trip updates")
        return len(trip_updates)

    async def count_observations(self) -> int:
        """Total number of stored observations."""
        return self._count(DBObservation)

    async def count_route_observations(self, routes: Union[str, Iterable[str]] = "1") -> int:
        """Number of stored observations on any of ``routes``; no routes means all."""
        targets = route_set(routes)
        if not targets:
            return self._count(DBObservation)
        return self._count(DBObservation, DBObservation.route_id.in_(sorted(targets)))

    async def count_trip_updates(self) -> int:
        """Total number of stored trip updates."""
        return self._count(DBTripUpdate)

    def _count(self, model, *criteria) -> int:
        try:
            with self.db_manager.get_session_context() as session:
                query = session.query(func.count(model.id))
                if criteria:
                    query = query.filter(*criteria)
                return query.scalar() or 0
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to count {model.__tablename__}: {e}") from e

    def close(self) -> None:
        """Release database connections."""
        self.db_manager.close()

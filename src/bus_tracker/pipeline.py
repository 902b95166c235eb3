"""Poll loop for the Big Blue Bus tracker."""

import asyncio
from typing import Optional

from .config.settings import settings
from .exceptions import StorageError
from .ingestion import IngestionResult, TripUpdateIngestor, VehiclePositionIngestor
from .storage import ObservationStore
from .utils.formatting import describe_stop_time_update, describe_trip_update
from .utils.logging import LogContext, get_logger


class BusTrackerPipeline:
    """Runs poll cycles one at a time: fetch, normalize, filter, display, persist."""

    def __init__(
        self,
        store: Optional[ObservationStore] = None,
        vehicle_ingestor: Optional[VehiclePositionIngestor] = None,
        trip_update_ingestor: Optional[TripUpdateIngestor] = None,
        track_trip_updates: Optional[bool] = None,
        polling_interval: Optional[float] = None,
    ):
        """Initialize the pipeline; collaborators default to settings-driven instances."""
        self.logger = get_logger(__name__)
        self.store = store or ObservationStore()
        self.vehicle_ingestor = vehicle_ingestor or VehiclePositionIngestor()
        self.tracked_routes = list(self.vehicle_ingestor.routes)

        if track_trip_updates is None:
            track_trip_updates = settings.track_trip_updates
        self.trip_update_ingestor = trip_update_ingestor
        if track_trip_updates and self.trip_update_ingestor is None:
            self.trip_update_ingestor = TripUpdateIngestor()

        self.polling_interval = (
            settings.polling_interval_seconds if polling_interval is None else polling_interval
        )
        self.poll_count = 0
        self.running = False
        self._stop_event: Optional[asyncio.Event] = None

    async def initialize(self) -> None:
        """Create the schema and report what is already stored."""
        await self.store.initialize()
        self.logger.info("Database initialized")

        total = await self.store.count_observations()
        tracked = await self.store.count_route_observations(self.tracked_routes)
        self.logger.info(
            "Database initialized with existing data",
            total_observations=total,
            tracked_routes=self.tracked_routes or "all",
            tracked_route_observations=tracked,
        )

    async def handle_vehicle_result(self, result: IngestionResult) -> None:
        """Display and persist the observations of one poll."""
        if not result.is_successful:
            self.logger.error("Poll failed", error=result.error_message)
            self.logger.warning("Will retry on next interval")
            return

        stats = result.stats
        self.logger.info(
            "Poll complete",
            total_vehicles=stats.total_vehicles if stats else result.record_count,
            route_1_vehicles=stats.route_1_vehicles if stats else result.record_count,
        )

        for obs in result.data:
            self.logger.info(
                "Bus position",
                vehicle_id=obs.vehicle_id,
                route_id=obs.route_id,
                lat=obs.latitude,
                lon=obs.longitude,
            )

        if result.data:
            try:
                saved = await self.store.insert_observations(result.data)
                self.logger.info("Saved observations to database", saved_count=saved)
            except StorageError as e:
                self.logger.error("Failed to save observations", error=str(e))
        else:
            self.logger.info("No buses currently active")

        try:
            total = await self.store.count_observations()
            tracked = await self.store.count_route_observations(self.tracked_routes)
        except StorageError as e:
            self.logger.error("Failed to read database stats", error=str(e))
        else:
            self.logger.info(
                "Database stats",
                total_observations=total,
                tracked_routes=self.tracked_routes or "all",
                tracked_route_observations=tracked,
            )

    async def handle_trip_update_result(self, result: IngestionResult) -> None:
        """Display and persist the trip updates of one poll."""
        if not result.is_successful:
            self.logger.error("Trip update poll failed", error=result.error_message)
            self.logger.warning("Will retry on next interval")
            return

        for update in result.data:
            self.logger.info(describe_trip_update(update))
            for stop in update.stop_time_updates:
                self.logger.info(describe_stop_time_update(stop))

        try:
            saved = await self.store.insert_trip_updates(result.data)
        except StorageError as e:
            self.logger.error("Failed to save trip updates", error=str(e))
        else:
            if saved:
                self.logger.info("Saved trip updates to database", saved_count=saved)

    async def run_once(self) -> IngestionResult:
        """Run a single poll cycle and return the vehicle-position result."""
        self.poll_count += 1

        with LogContext(self.logger, poll_number=self.poll_count) as log:
            log.info("Starting poll")
            result = await self.vehicle_ingestor.ingest()
            await self.handle_vehicle_result(result)
            log.debug("Feed status", **self.vehicle_ingestor.get_feed_status())

            if self.trip_update_ingestor is not None:
                trip_result = await self.trip_update_ingestor.ingest()
                await self.handle_trip_update_result(trip_result)

        return result

    async def run_continuous(self, max_polls: Optional[int] = None) -> None:
        """Poll on a fixed interval until stopped; ticks never overlap."""
        self.running = True
        # Created here so the event belongs to the running loop.
        self._stop_event = asyncio.Event()
        self.logger.info(
            "Starting polling loop",
            interval_seconds=self.polling_interval,
        )

        try:
            while self.running:
                await self.run_once()
                if max_polls is not None and self.poll_count >= max_polls:
                    break
                await self._wait_for_next_tick()
        except asyncio.CancelledError:
            self.logger.info("Polling cancelled")
        finally:
            self.running = False
            self._stop_event = None
            await self.shutdown()

    async def _wait_for_next_tick(self) -> None:
        """Sleep for one polling interval, waking early if ``stop`` is called."""
        if not self.running:
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.polling_interval)
        except asyncio.TimeoutError:
            pass

    def stop(self) -> None:
        """Ask the loop to exit; an interval sleep in progress ends immediately."""
        self.running = False
        if self._stop_event is not None:
            self._stop_event.set()
        self.logger.info("Stopping polling loop")

    async def shutdown(self) -> None:
        """Close HTTP sessions and database connections."""
        await self.vehicle_ingestor.close()
        if self.trip_update_ingestor is not None:
            await self.trip_update_ingestor.close()
        self.store.close()
        self.logger.info(
            "Pipeline shutdown complete",
            polls=self.poll_count,
            **await self.vehicle_ingestor.health_check(),
        )

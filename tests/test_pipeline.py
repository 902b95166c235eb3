"""Tests for the poll loop."""

import asyncio
from unittest.mock import AsyncMock

from structlog.testing import capture_logs

from bus_tracker.exceptions import FeedFetchError, StorageError
from bus_tracker.models.transit import BusObservation
from bus_tracker.pipeline import BusTrackerPipeline

from conftest import StaticTripUpdateIngestor, StaticVehicleIngestor


def _pipeline(store, vehicle_ingestor, trip_update_ingestor=None):
    return BusTrackerPipeline(
        store=store,
        vehicle_ingestor=vehicle_ingestor,
        trip_update_ingestor=trip_update_ingestor,
        polling_interval=0,
    )


def _obs_on_route(route_id):
    return BusObservation(timestamp=0, vehicle_id="old", route_id=route_id, latitude=34.0, longitude=-118.5)


class TestBusTrackerPipeline:
    """Test cases for BusTrackerPipeline."""

    def test_run_once_stores_route_observations(self, store, feed):
        """Only observations on the tracked route are persisted."""
        feed.vehicle("e1", route_id="1", vehicle_id="a")
        feed.vehicle("e2", route_id="2", vehicle_id="b")
        pipeline = _pipeline(store, StaticVehicleIngestor(feed.build()))

        async def run():
            await pipeline.initialize()
            return await pipeline.run_once()

        result = asyncio.run(run())

        assert result.is_successful
        assert pipeline.poll_count == 1
        assert asyncio.run(store.count_observations()) == 1
        assert asyncio.run(store.count_route_observations("1")) == 1

    def test_failed_poll_stores_nothing(self, store):
        """A failed fetch is logged and the cycle ends without writes."""
        pipeline = _pipeline(store, StaticVehicleIngestor(FeedFetchError("HTTP 503", status=503)))

        result = asyncio.run(pipeline.run_once())

        assert not result.is_successful
        assert asyncio.run(store.count_observations()) == 0

    def test_empty_poll(self, store, feed):
        feed.bare("a1")
        pipeline = _pipeline(store, StaticVehicleIngestor(feed.build()))

        result = asyncio.run(pipeline.run_once())

        assert result.is_successful
        assert asyncio.run(store.count_observations()) == 0

    def test_storage_failure_does_not_stop_cycle(self, store, feed):
        """A storage error is logged and the poll still completes."""
        feed.vehicle("e1")
        store.insert_observations = AsyncMock(side_effect=StorageError("disk full"))
        pipeline = _pipeline(store, StaticVehicleIngestor(feed.build()))

        result = asyncio.run(pipeline.run_once())

        assert result.is_successful
        store.insert_observations.assert_awaited_once()

    def test_trip_updates_are_tracked_when_enabled(self, store, feed):
        feed.vehicle("e1")
        feed.trip_update("t1", route_id="2", stops=[{"stop_sequence": 1, "arrival": {"delay": 60}}])
        body = feed.build()
        pipeline = _pipeline(store, StaticVehicleIngestor(body), StaticTripUpdateIngestor(body))

        asyncio.run(pipeline.run_once())

        assert asyncio.run(store.count_observations()) == 1
        assert asyncio.run(store.count_trip_updates()) == 1

    def test_trip_update_failure_keeps_vehicle_data(self, store, feed):
        feed.vehicle("e1")
        pipeline = _pipeline(
            store,
            StaticVehicleIngestor(feed.build()),
            StaticTripUpdateIngestor(FeedFetchError("timeout")),
        )

        result = asyncio.run(pipeline.run_once())

        assert result.is_successful
        assert asyncio.run(store.count_observations()) == 1
        assert asyncio.run(store.count_trip_updates()) == 0

    def test_run_continuous_polls_until_limit(self, store, feed):
        """Polls run back to back and the loop shuts down afterwards."""
        feed.vehicle("e1")
        ingestor = StaticVehicleIngestor(feed.build())
        pipeline = _pipeline(store, ingestor)

        asyncio.run(pipeline.run_continuous(max_polls=2))

        assert ingestor.fetch_count == 2
        assert pipeline.poll_count == 2
        assert pipeline.running is False
        assert ingestor.session is None
        assert asyncio.run(store.count_observations()) == 2

    def test_failed_poll_does_not_stop_loop(self, store):
        ingestor = StaticVehicleIngestor(FeedFetchError("down"))
        pipeline = _pipeline(store, ingestor)

        asyncio.run(pipeline.run_continuous(max_polls=3))

        assert ingestor.fetch_count == 3
        assert ingestor.get_metrics()["total_errors"] == 3

    def test_stop_ends_loop_after_current_cycle(self, store, feed):
        feed.vehicle("e1")
        pipeline = _pipeline(store, StaticVehicleIngestor(feed.build()))
        run_once = pipeline.run_once

        async def run_once_then_stop():
            result = await run_once()
            pipeline.stop()
            return result

        pipeline.run_once = run_once_then_stop
        asyncio.run(pipeline.run_continuous())

        assert pipeline.poll_count == 1

    def test_stop_interrupts_interval_sleep(self, store, feed):
        """Stopping during the wait between polls ends the loop without waiting it out."""
        feed.vehicle("e1")
        ingestor = StaticVehicleIngestor(feed.build())
        pipeline = BusTrackerPipeline(store=store, vehicle_ingestor=ingestor, polling_interval=30)

        async def run():
            task = asyncio.create_task(pipeline.run_continuous())
            while pipeline.poll_count < 1:
                await asyncio.sleep(0.01)
            await asyncio.sleep(0.05)
            pipeline.stop()
            await asyncio.wait_for(task, timeout=2)

        asyncio.run(run())

        assert pipeline.poll_count == 1
        assert pipeline.running is False
        assert ingestor.fetch_count == 1

    def test_database_stats_use_configured_routes(self, store, feed):
        """Stored-count logging follows the routes the ingestor filters on."""
        feed.vehicle("e1", route_id="1")
        feed.vehicle("e2", route_id="7")
        feed.vehicle("e3", route_id="2")
        asyncio.run(store.insert_observations([_obs_on_route("1"), _obs_on_route("1")]))
        pipeline = _pipeline(store, StaticVehicleIngestor(feed.build(), routes=("2", "7")))

        with capture_logs() as logs:
            asyncio.run(pipeline.run_once())

        (stats,) = [entry for entry in logs if entry["event"] == "Database stats"]
        assert stats["tracked_routes"] == ["2", "7"]
        assert stats["tracked_route_observations"] == 2
        assert stats["total_observations"] == 4

"""Tests for the command-line interface."""

import asyncio
import logging

import pytest
import structlog

from bus_tracker import cli as cli_module
from bus_tracker.cli import BusTrackerCLI
from bus_tracker.config.settings import settings
from bus_tracker.exceptions import FeedFetchError
from bus_tracker.models.transit import BusObservation
from bus_tracker.storage import DatabaseManager, ObservationStore

from conftest import StaticTripUpdateIngestor, StaticVehicleIngestor


@pytest.fixture
def cli():
    """A CLI whose logging setup is undone after the test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield BusTrackerCLI()
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestBusTrackerCLI:
    """Test cases for BusTrackerCLI."""

    def test_no_command(self, cli, capsys):
        assert cli.run([]) == 1
        assert "No command specified" in capsys.readouterr().out

    def test_parser_defaults(self, cli):
        args = cli.build_parser().parse_args(["run"])

        assert args.interval == settings.polling_interval_seconds
        assert args.once is False
        assert args.trip_updates is settings.track_trip_updates

    def test_repeatable_route_option(self, cli):
        args = cli.build_parser().parse_args(["trip-updates", "-r", "1", "--route", "7"])
        assert args.routes == ["1", "7"]

    def test_stats(self, cli, capsys, monkeypatch, tmp_path):
        """The stats command reports stored counts."""
        database_url = f"sqlite:///{tmp_path / 'cli.db'}"
        monkeypatch.setattr(settings, "database_url", database_url)
        monkeypatch.setattr(settings, "observation_routes", ["1"])

        store = ObservationStore(DatabaseManager(database_url))
        asyncio.run(store.initialize())
        asyncio.run(store.insert_observations([
            BusObservation(timestamp=0, vehicle_id="a", route_id="1", latitude=34.0, longitude=-118.5),
            BusObservation(timestamp=0, vehicle_id="b", route_id="2", latitude=34.0, longitude=-118.5),
        ]))
        store.close()

        assert cli.run(["stats"]) == 0

        out = capsys.readouterr().out
        assert "Total observations: 2" in out
        assert "Observations on tracked routes (1): 1" in out
        assert "Trip updates: 0" in out

    def test_trip_updates(self, cli, capsys, monkeypatch, feed):
        """Trip updates for the chosen routes are printed with one line per stop."""
        feed.trip_update(
            "t1",
            route_id="1",
            trip_id="trip-7",
            direction_id=1,
            vehicle_id="4021",
            stops=[
                {"stop_sequence": 4, "stop_id": "1234", "arrival": {"delay": 125}},
                {"stop_sequence": 5, "departure": {"delay": -5}},
            ],
        )
        feed.trip_update("t2", route_id="3", trip_id="trip-9")
        body = feed.build()
        monkeypatch.setattr(
            cli_module,
            "TripUpdateIngestor",
            lambda url, routes: StaticTripUpdateIngestor(body, routes=routes),
        )

        assert cli.run(["trip-updates", "--route", "1"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert "Route 1 | Trip trip-7 | Inbound | 2 stops with updates | Vehicle: 4021" in lines
        assert "  Stop #4 (1234) | Arrival: 2m 5s late" in lines
        assert "  Stop #5 | Departure: 0m 5s early" in lines
        assert not any("trip-9" in line for line in lines)

    def test_trip_updates_none_on_route(self, cli, capsys, monkeypatch, feed):
        feed.trip_update("t1", route_id="3")
        body = feed.build()
        monkeypatch.setattr(
            cli_module,
            "TripUpdateIngestor",
            lambda url, routes: StaticTripUpdateIngestor(body, routes=routes),
        )

        assert cli.run(["trip-updates", "-r", "1"]) == 0
        assert "No trip updates for the selected routes." in capsys.readouterr().out

    def test_trip_updates_fetch_failure(self, cli, capsys, monkeypatch):
        monkeypatch.setattr(
            cli_module,
            "TripUpdateIngestor",
            lambda url, routes: StaticTripUpdateIngestor(FeedFetchError("API returned error status: 503")),
        )

        assert cli.run(["trip-updates"]) == 1
        assert "Error: API returned error status: 503" in capsys.readouterr().out

    def test_debug_feed(self, cli, capsys, monkeypatch, feed):
        """Every entity of the vehicle feed is dumped, route filter or not."""
        feed.vehicle("e1", route_id="2", vehicle_id="4021", current_stop_sequence=3)
        feed.vehicle("e2", with_trip=False)
        body = feed.build()
        monkeypatch.setattr(
            cli_module,
            "VehiclePositionIngestor",
            lambda url, routes: StaticVehicleIngestor(body, routes=routes),
        )

        assert cli.run(["debug-feed", "--url", "http://feed.invalid/vp.bin"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert "Fetching from: http://feed.invalid/vp.bin" in lines
        assert "Number of entities: 2" in lines
        assert "  Route ID: 2" in lines
        assert "  Vehicle ID: 4021" in lines
        assert "  Current stop: 3" in lines
        assert "  Trip data: NONE" in lines

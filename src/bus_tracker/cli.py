#!/usr/bin/env python3
"""Command-line interface for the Big Blue Bus tracker."""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

from .config.settings import settings
from .exceptions import BusTrackerError
from .ingestion import TripUpdateIngestor, VehiclePositionIngestor
from .pipeline import BusTrackerPipeline
from .storage import ObservationStore
from .utils.formatting import describe_snapshot, describe_stop_time_update, describe_trip_update
from .utils.logging import get_logger, setup_logging


class BusTrackerCLI:
    """CLI interface for bus tracker operations."""

    def __init__(self):
        """Initialize the CLI."""
        self.logger = get_logger(__name__)

    def build_parser(self) -> argparse.ArgumentParser:
        """Build the argument parser."""
        parser = argparse.ArgumentParser(
            prog="bus-tracker",
            description=settings.app_name,
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Poll vehicle positions every 60 seconds and store them
  bus-tracker run

  # Run a single poll cycle, also tracking trip updates
  bus-tracker run --once --trip-updates

  # Show delays for routes 1 and 2
  bus-tracker trip-updates --route 1 --route 2

  # Show how many observations are stored
  bus-tracker stats

  # Dump every entity of the vehicle positions feed
  bus-tracker debug-feed
            """
        )
        parser.add_argument(
            "--log-level",
            default=settings.log_level.upper(),
            type=str.upper,
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help=f"Log level (default: {settings.log_level})"
        )

        subparsers = parser.add_subparsers(dest="command", help="Available commands")

        run_parser = subparsers.add_parser("run", help="Poll the feed and store observations")
        run_parser.add_argument(
            "--interval", "-i",
            type=float,
            default=settings.polling_interval_seconds,
            help=f"Polling interval in seconds (default: {settings.polling_interval_seconds:g})"
        )
        run_parser.add_argument("--once", action="store_true", help="Run a single poll cycle")
        run_parser.add_argument(
            "--trip-updates",
            action="store_true",
            default=settings.track_trip_updates,
            help="Also fetch, display and store trip updates"
        )

        trip_parser = subparsers.add_parser("trip-updates", help="Show trip updates and delays")
        trip_parser.add_argument(
            "--route", "-r",
            action="append",
            dest="routes",
            help=f"Route to show, repeatable (default: {', '.join(settings.trip_update_routes)})"
        )
        trip_parser.add_argument("--url", default=settings.trip_updates_url, help="Trip updates feed URL")

        subparsers.add_parser("stats", help="Show stored observation counts")

        debug_parser = subparsers.add_parser("debug-feed", help="Dump the vehicle positions feed")
        debug_parser.add_argument("--url", default=settings.vehicle_positions_url, help="Vehicle positions feed URL")

        return parser

    async def run_pipeline(self, interval: float, once: bool, trip_updates: bool) -> int:
        """Run the poll loop until interrupted."""
        self.logger.info(settings.app_name)
        self.logger.info("Starting polling service...")

        pipeline = BusTrackerPipeline(track_trip_updates=trip_updates, polling_interval=interval)
        await pipeline.initialize()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, pipeline.stop)
            except NotImplementedError:
                # Windows event loops do not support signal handlers
                pass

        await pipeline.run_continuous(max_polls=1 if once else None)
        return 0

    async def show_trip_updates(self, routes: Optional[List[str]], url: str) -> int:
        """Fetch trip updates once and print them per route."""
        async with TripUpdateIngestor(url=url, routes=routes) as ingestor:
            result = await ingestor.ingest()

        if not result.is_successful:
            print(f"Error: {result.error_message}")
            return 1

        if not result.data:
            print("No trip updates for the selected routes.")
            return 0

        for update in result.data:
            print(describe_trip_update(update))
            for stop in update.stop_time_updates:
                print(describe_stop_time_update(stop))
            print()
        return 0

    async def show_stats(self) -> int:
        """Print stored record counts."""
        store = ObservationStore()
        try:
            await store.initialize()
            print(f"Total observations: {await store.count_observations()}")
            routes = settings.observation_routes
            print(
                f"Observations on tracked routes ({', '.join(routes) or 'all'}): "
                f"{await store.count_route_observations(routes)}"
            )
            print(f"Trip updates: {await store.count_trip_updates()}")
        finally:
            store.close()
        return 0

    async def debug_feed(self, url: str) -> int:
        """Print every decoded entity of a vehicle positions feed."""
        print(f"Fetching from: {url}")
        async with VehiclePositionIngestor(url=url, routes=[]) as ingestor:
            snapshot = await ingestor.fetch_data()

        for line in describe_snapshot(snapshot):
            print(line)
        return 0

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Run the CLI."""
        parser = self.build_parser()
        args = parser.parse_args(argv)

        if not args.command:
            print("No command specified. Use --help for available commands.")
            return 1

        setup_logging(level=args.log_level, enable_json=settings.json_logs)

        try:
            if args.command == "run":
                return asyncio.run(self.run_pipeline(args.interval, args.once, args.trip_updates))
            elif args.command == "trip-updates":
                return asyncio.run(self.show_trip_updates(args.routes, args.url))
            elif args.command == "stats":
                return asyncio.run(self.show_stats())
            elif args.command == "debug-feed":
                return asyncio.run(self.debug_feed(args.url))
            else:
                print(f"Unknown command: {args.command}")
                return 1

        except KeyboardInterrupt:
            self.logger.info("Received interrupt signal")
            return 130
        except BusTrackerError as e:
            self.logger.error("Command failed", command=args.command, error=str(e))
            print(f"Error: {e}")
            return 1


def main():
    """Main entry point for CLI."""
    cli = BusTrackerCLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()

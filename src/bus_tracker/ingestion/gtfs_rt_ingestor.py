"""GTFS-RT protobuf ingestors for Big Blue Bus real-time data."""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import aiohttp

from .base import BaseIngestor, IngestionResult
from .decoder import decode_feed
from ..config.settings import settings
from ..exceptions import FeedFetchError
from ..models.feed import EntityKind, FeedSnapshot
from ..processing.normalizer import normalize_trip_updates, normalize_vehicle_positions
from ..processing.route_filter import RouteFilter, build_poll_stats


class GTFSRTIngestor(BaseIngestor):
    """Fetches and decodes one GTFS-RT feed over HTTP."""

    def __init__(
        self,
        name: str,
        url: str,
        routes: Optional[Iterable[str]] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        """Initialize the ingestor for ``url``; ``routes`` empty or None keeps all routes."""
        super().__init__(name, config)
        self.url = url
        self.routes = list(routes or [])
        self.timeout = self.config.get("timeout", settings.request_timeout_seconds)

        # Session for HTTP requests
        self.session: Optional[aiohttp.ClientSession] = None

        # Feed metadata
        self.feed_timestamp: Optional[datetime] = None
        self.feed_version: Optional[str] = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self.initialize_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def initialize_session(self) -> None:
        """Initialize the HTTP session."""
        if not self.session:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={
                    "User-Agent": settings.user_agent,
                    "Accept": "application/x-protobuf"
                }
            )

    async def close(self) -> None:
        """Close the HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None

    async def _fetch_protobuf_feed(self) -> bytes:
        """Fetch the raw feed bytes.

        Raises:
            FeedFetchError: on network failure, non-success status or body read failure.
        """
        await self.initialize_session()
        self.logger.debug("Fetching feed", url=self.url)

        try:
            async with self.session.get(self.url) as response:
                if not 200 <= response.status < 300:
                    raise FeedFetchError(
                        f"API returned error status: {response.status}",
                        url=self.url,
                        status=response.status,
                    )
                try:
                    data = await response.read()
                except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                    raise FeedFetchError(f"Failed to read response body: {e}", url=self.url) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FeedFetchError(f"Failed to fetch {self.url}: {e!r}", url=self.url) from e

        self.logger.debug("Received data from API", bytes=len(data))
        return data

    def _filter(self, records: List[Any]) -> List[Any]:
        if not self.routes:
            return list(records)
        with RouteFilter(self.routes) as route_filter:
            return route_filter.process_batch(records)

    async def fetch_data(self) -> FeedSnapshot:
        """Fetch and decode the feed."""
        data = await self._fetch_protobuf_feed()
        snapshot = decode_feed(data)

        self.feed_timestamp = None
        if snapshot.header_timestamp is not None:
            try:
                self.feed_timestamp = datetime.fromtimestamp(snapshot.header_timestamp, tz=timezone.utc)
            except (OverflowError, OSError, ValueError) as e:
                # Feed status only; normalizers use the raw header value.
                self.logger.warning(
                    "Feed header timestamp is not a valid date",
                    header_timestamp=snapshot.header_timestamp,
                    error=str(e),
                )
        self.feed_version = snapshot.gtfs_realtime_version
        return snapshot

    def get_feed_status(self) -> Dict[str, Any]:
        """Age of the last decoded feed header."""
        if self.feed_timestamp is None:
            return {"last_update": None, "age_seconds": None, "version": self.feed_version}
        age_seconds = (datetime.now(timezone.utc) - self.feed_timestamp).total_seconds()
        return {
            "last_update": self.feed_timestamp.isoformat(),
            "age_seconds": age_seconds,
            "version": self.feed_version,
        }


class VehiclePositionIngestor(GTFSRTIngestor):
    """Polls vehicle positions and reports per-poll counts."""

    def __init__(
        self,
        url: Optional[str] = None,
        routes: Optional[Iterable[str]] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            "vehicle_positions",
            url or settings.vehicle_positions_url,
            settings.observation_routes if routes is None else routes,
            config,
        )

    def transform_data(self, snapshot: FeedSnapshot) -> IngestionResult:
        all_observations = normalize_vehicle_positions(snapshot)
        observations = self._filter(all_observations)
        stats = build_poll_stats(all_observations, observations)

        self.logger.info(
            "Parsed vehicle observations",
            entities=snapshot.count(EntityKind.VEHICLE_POSITION),
            total=stats.total_vehicles,
            filtered=stats.route_1_vehicles,
        )
        return IngestionResult(
            success=True,
            data=observations,
            timestamp=datetime.now(timezone.utc),
            source=self.name,
            record_count=len(observations),
            stats=stats,
        )


class TripUpdateIngestor(GTFSRTIngestor):
    """Polls trip updates for the configured routes."""

    def __init__(
        self,
        url: Optional[str] = None,
        routes: Optional[Iterable[str]] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            "trip_updates",
            url or settings.trip_updates_url,
            settings.trip_update_routes if routes is None else routes,
            config,
        )

    def transform_data(self, snapshot: FeedSnapshot) -> IngestionResult:
        all_updates = normalize_trip_updates(snapshot)
        trip_updates = self._filter(all_updates)

        self.logger.info(
            "Parsed trip updates",
            total=len(all_updates),
            filtered=len(trip_updates),
        )
        return IngestionResult(
            success=True,
            data=trip_updates,
            timestamp=datetime.now(timezone.utc),
            source=self.name,
            record_count=len(trip_updates),
            metadata={"total_trip_updates": len(all_updates)},
        )

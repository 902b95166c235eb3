"""Feed ingestion for GTFS-RT data."""

from .base import BaseIngestor, IngestionResult
from .decoder import decode_feed, snapshot_from_message
from .gtfs_rt_ingestor import GTFSRTIngestor, TripUpdateIngestor, VehiclePositionIngestor

__all__ = [
    "BaseIngestor",
    "GTFSRTIngestor",
    "IngestionResult",
    "TripUpdateIngestor",
    "VehiclePositionIngestor",
    "decode_feed",
    "snapshot_from_message",
]

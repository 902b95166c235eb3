"""Processing of decoded feeds into filtered transit records."""

from .base import BaseProcessor
from .normalizer import normalize_trip_updates, normalize_vehicle_positions, resolve_timestamp
from .route_filter import RouteFilter, build_poll_stats, filter_by_routes, route_set

__all__ = [
    "BaseProcessor",
    "RouteFilter",
    "build_poll_stats",
    "filter_by_routes",
    "normalize_trip_updates",
    "normalize_vehicle_positions",
    "resolve_timestamp",
    "route_set",
]

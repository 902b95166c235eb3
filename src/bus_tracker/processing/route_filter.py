"""Route filtering and per-poll statistics."""

from datetime import datetime, timezone
from typing import FrozenSet, Iterable, List, Optional, Sequence, TypeVar, Union

from .base import BaseProcessor
from ..models.transit import BusObservation, PollStats, TripUpdate

Record = TypeVar("Record", BusObservation, TripUpdate)


def route_set(routes: Union[str, Iterable[str]]) -> FrozenSet[str]:
    """Normalize a single route id or an iterable of ids to a set."""
    if isinstance(routes, str):
        return frozenset([routes])
    return frozenset(routes)


def filter_by_routes(records: Iterable[Record], routes: Union[str, Iterable[str]]) -> List[Record]:
    """Keep records whose ``route_id`` exactly equals one of ``routes``.

    Matching is case-sensitive string equality and relative order is kept.
    """
    targets = route_set(routes)
    return [record for record in records if record.route_id in targets]


class RouteFilter(BaseProcessor):
    """Processor that drops records outside a set of routes."""

    def __init__(self, routes: Union[str, Iterable[str]]):
        """Initialize the filter with the routes to keep."""
        super().__init__("RouteFilter")
        self.routes = route_set(routes)

    def process(self, data: Record) -> Optional[Record]:
        """Return the record if it is on one of the routes, else ``None``."""
        if data.route_id in self.routes:
            return data
        return None


def build_poll_stats(
    all_observations: Sequence[BusObservation],
    filtered: Sequence[BusObservation],
    now: Optional[datetime] = None,
) -> PollStats:
    """Summarize a poll from its pre- and post-filter observations."""
    now = now or datetime.now(timezone.utc)
    return PollStats(
        total_vehicles=len(all_observations),
        route_1_vehicles=len(filtered),
        timestamp=int(now.timestamp()),
    )

"""Exception hierarchy for the bus tracker."""

from typing import Optional


class BusTrackerError(Exception):
    """Base class for all bus tracker errors."""


class FeedFetchError(BusTrackerError):
    """The feed could not be retrieved (network, HTTP status or body read)."""

    def __init__(self, message: str, url: str = "", status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status


class FeedDecodeError(BusTrackerError):
    """The feed bytes are not a valid GTFS-RT FeedMessage."""


class StorageError(BusTrackerError):
    """A database read or write failed."""

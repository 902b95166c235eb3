"""Storage modules for the bus tracker."""

from .database import DatabaseManager
from .observation_store import ObservationStore

__all__ = [
    "DatabaseManager",
    "ObservationStore",
]

"""Base ingestor class for GTFS-RT feeds."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..exceptions import BusTrackerError
from ..models.feed import FeedSnapshot
from ..models.transit import PollStats
from ..utils.logging import get_logger


@dataclass
class IngestionResult:
    """Result of a single poll of a feed."""

    success: bool
    data: List[Any]
    timestamp: datetime
    source: str
    record_count: int
    error_message: Optional[str] = None
    stats: Optional[PollStats] = None
    metadata: Optional[Dict[str, Any]] = None

    @property
    def is_successful(self) -> bool:
        """Check if the poll completed, even with zero records."""
        return self.success


class BaseIngestor(ABC):
    """Abstract base class for feed ingestors.

    A poll is ``fetch_data`` (fetch and decode, may fail) followed by
    ``transform_data`` (pure normalization and filtering). Failures are turned
    into an unsuccessful ``IngestionResult`` so the caller can simply wait for
    the next tick.
    """

    def __init__(self, name: str, config: Optional[Dict[str, Any]] = None):
        """Initialize the ingestor."""
        self.name = name
        self.config = config or {}
        self.logger = get_logger(f"{self.__class__.__name__}.{name}")

        # State
        self.last_successful_ingestion: Optional[datetime] = None
        self.total_records_ingested = 0
        self.total_errors = 0
        self.consecutive_failures = 0

    @abstractmethod
    async def fetch_data(self) -> FeedSnapshot:
        """Fetch and decode one snapshot. Must be implemented by subclasses."""
        pass

    @abstractmethod
    def transform_data(self, snapshot: FeedSnapshot) -> IngestionResult:
        """Normalize a snapshot into records. Must be implemented by subclasses."""
        pass

    def _failure(self, started: datetime, error: Exception) -> IngestionResult:
        self.total_errors += 1
        self.consecutive_failures += 1
        return IngestionResult(
            success=False,
            data=[],
            timestamp=started,
            source=self.name,
            record_count=0,
            error_message=str(error),
        )

    async def ingest(self) -> IngestionResult:
        """Perform a single poll cycle."""
        start_time = datetime.now(timezone.utc)

        try:
            self.logger.debug("Starting poll", source=self.name)
            snapshot = await self.fetch_data()
            result = self.transform_data(snapshot)
        except BusTrackerError as e:
            self.logger.error("Poll failed", source=self.name, error=str(e))
            return self._failure(start_time, e)
        except Exception as e:
            self.logger.error("Unexpected poll error", source=self.name, error=str(e), exc_info=True)
            return self._failure(start_time, e)

        self.total_records_ingested += result.record_count
        self.last_successful_ingestion = start_time
        self.consecutive_failures = 0

        result.metadata = {
            **(result.metadata or {}),
            "entity_count": len(snapshot.entities),
            "processing_time_ms": (datetime.now(timezone.utc) - start_time).total_seconds() * 1000,
        }
        return result

    async def health_check(self) -> Dict[str, Any]:
        """Report whether recent polls have been succeeding."""
        return {
            **self.get_metrics(),
            "status": "healthy" if self.consecutive_failures < 5 else "degraded",
        }

    def get_metrics(self) -> Dict[str, Any]:
        """Get current metrics for the ingestor."""
        return {
            "name": self.name,
            "total_records_ingested": self.total_records_ingested,
            "total_errors": self.total_errors,
            "consecutive_failures": self.consecutive_failures,
            "last_successful_ingestion": self.last_successful_ingestion,
        }

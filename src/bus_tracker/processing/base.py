"""Base class for record-by-record processors such as route filters."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
import logging

logger = logging.getLogger(__name__)


class BaseProcessor(ABC):
    """Applies ``process`` to each record of a poll and keeps counters.

    ``process`` returns the record to keep (possibly a new one) or ``None`` to
    drop it. Processors can be used as context managers to log a summary.
    """

    def __init__(self, name: str):
        self.name = name
        self.processed_count = 0
        self.dropped_count = 0
        self.error_count = 0
        self.start_time: Optional[datetime] = None

    def __enter__(self):
        self.start_time = datetime.now()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time:
            elapsed = (datetime.now() - self.start_time).total_seconds()
            logger.debug(
                f"{self.name}: kept {self.processed_count - self.dropped_count} "
                f"of {self.processed_count} records "
                f"({self.error_count} errors) in {elapsed:.3f}s"
            )

    @abstractmethod
    def process(self, data: Any) -> Any:
        """Return the record to keep, or ``None`` to drop it."""
        pass

    def process_batch(self, data_list: Iterable[Any]) -> List[Any]:
        """Process records in input order.

        A record whose ``process`` call raises is counted as an error and left
        out; the rest of the batch still goes through.
        """
        kept = []
        for item in data_list:
            try:
                result = self.process(item)
            except Exception as e:
                logger.error(f"Error processing record in {self.name}: {e}")
                self.error_count += 1
                continue

            self.processed_count += 1
            if result is None:
                self.dropped_count += 1
            else:
                kept.append(result)
        return kept

    def get_stats(self) -> Dict[str, Any]:
        """Counters accumulated over every batch."""
        attempted = self.processed_count + self.error_count
        return {
            "processor": self.name,
            "processed_count": self.processed_count,
            "dropped_count": self.dropped_count,
            "error_count": self.error_count,
            "success_rate": self.processed_count / attempted if attempted else 0,
        }

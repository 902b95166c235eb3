"""Utility modules for the bus tracker."""

from .formatting import (
    describe_observation,
    describe_snapshot,
    describe_stop_time_update,
    describe_trip_update,
    direction_label,
    format_delay,
    format_timestamp,
)
from .logging import LogContext, get_logger, setup_logging

__all__ = [
    "LogContext",
    "describe_observation",
    "describe_snapshot",
    "describe_stop_time_update",
    "describe_trip_update",
    "direction_label",
    "format_delay",
    "format_timestamp",
    "get_logger",
    "setup_logging",
]

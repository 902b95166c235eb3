"""Configuration for the bus tracker."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]

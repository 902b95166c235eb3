"""Configuration management using Pydantic Settings."""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # GTFS-RT feeds (Big Blue Bus)
    vehicle_positions_url: str = "http://gtfs.bigbluebus.com/vehiclepositions.bin"
    trip_updates_url: str = "http://gtfs.bigbluebus.com/tripupdates.bin"
    request_timeout_seconds: float = 10.0
    user_agent: str = "BigBlueBus-Tracker/0.1"

    # Polling
    polling_interval_seconds: float = 60.0
    track_trip_updates: bool = False

    # Route filters; an empty list keeps every route
    observation_routes: List[str] = ["1"]
    trip_update_routes: List[str] = ["1", "2"]

    # Storage
    database_url: str = "sqlite:///bus_tracking.db"
    database_echo: bool = False

    # Application
    app_name: str = "Big Blue Bus Route 1 Bunching Tracker"
    log_level: str = "INFO"
    environment: str = "development"

    @property
    def json_logs(self) -> bool:
        """Emit JSON log lines outside of local development."""
        return self.environment == "production"


# Global settings instance
settings = Settings()

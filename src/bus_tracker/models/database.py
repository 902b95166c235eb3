"""Database models for bus tracking data using SQLAlchemy."""

from datetime import datetime, timezone
from typing import List

from sqlalchemy import (
    BigInteger, Column, DateTime, Float, ForeignKey, Index, Integer, String
)
from sqlalchemy.orm import Mapped, declarative_base, relationship

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Observation(Base):
    """A single vehicle sighting from the vehicle-positions feed."""
    __tablename__ = 'observations'

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(BigInteger, nullable=False)
    vehicle_id = Column(String(64), nullable=False)
    route_id = Column(String(64), nullable=False)
    trip_id = Column(String(128))
    direction_id = Column(Integer)

    # Position data
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    current_stop_sequence = Column(Integer)
    speed = Column(Float)
    bearing = Column(Float)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index('idx_timestamp', 'timestamp'),
        Index('idx_vehicle', 'vehicle_id'),
        Index('idx_route', 'route_id'),
    )


class TripUpdate(Base):
    """A trip-level update from the trip-updates feed."""
    __tablename__ = 'trip_updates'

    id = Column(Integer, primary_key=True, autoincrement=True)
    route_id = Column(String(64), nullable=False)
    trip_id = Column(String(128), nullable=False)
    direction_id = Column(Integer)
    vehicle_id = Column(String(64))
    timestamp = Column(BigInteger, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    stop_time_updates: Mapped[List["StopTimeUpdate"]] = relationship(
        "StopTimeUpdate",
        back_populates="trip_update",
        order_by="StopTimeUpdate.position",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index('idx_trip_updates_trip', 'trip_id'),
        Index('idx_trip_updates_route_time', 'route_id', 'timestamp'),
    )


class StopTimeUpdate(Base):
    """Per-stop prediction belonging to a trip update."""
    __tablename__ = 'stop_time_updates'

    id = Column(Integer, primary_key=True, autoincrement=True)
    trip_update_id = Column(Integer, ForeignKey('trip_updates.id'), nullable=False)
    position = Column(Integer, nullable=False)  # order within the source entity
    stop_sequence = Column(Integer, nullable=False, default=0)
    stop_id = Column(String(64))

    arrival_time = Column(BigInteger)
    arrival_delay = Column(Integer)
    arrival_uncertainty = Column(Integer)
    departure_time = Column(BigInteger)
    departure_delay = Column(Integer)
    departure_uncertainty = Column(Integer)

    trip_update: Mapped["TripUpdate"] = relationship("TripUpdate", back_populates="stop_time_updates")

    __table_args__ = (
        Index('idx_stop_time_updates_trip_update', 'trip_update_id'),
    )

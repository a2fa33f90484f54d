"""Domain models for static route reference data."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class ControlStop:
    """Mandatory waypoint where every team halts for a fixed dwell time."""

    name: str
    distance_from_start_km: float


@dataclass(frozen=True, slots=True)
class TerrainPoint:
    """Elevation sample along the route."""

    latitude: float
    longitude: float
    elevation_m: float
    distance_km: float
    city: Optional[str] = None
    weather_location: Optional[str] = None

"""Solar car race itinerary simulation."""

from .cancellation import CancellationToken
from .errors import InvalidParametersError, OracleUnavailableError, SimulationCancelledError, SimulationError
from .models import (
    BatteryChargingSegment,
    ControlStopSegment,
    DailyItinerary,
    DrivingSegment,
    EnergyModelConstants,
    LimitingFactor,
    RouteItinerary,
    SegmentKind,
    SimulationParameters,
    SimulationStatus,
)
from .oracles import HttpEnergyProductionOracle, StaticEnergyProductionOracle, build_energy_oracle
from .service import create_route_itinerary
from .vehicle import VehicleProfile, vehicle_profile

__all__ = [
    "create_route_itinerary",
    "build_energy_oracle",
    "vehicle_profile",
    "VehicleProfile",
    "SimulationParameters",
    "EnergyModelConstants",
    "RouteItinerary",
    "DailyItinerary",
    "DrivingSegment",
    "ControlStopSegment",
    "BatteryChargingSegment",
    "SegmentKind",
    "LimitingFactor",
    "SimulationStatus",
    "CancellationToken",
    "StaticEnergyProductionOracle",
    "HttpEnergyProductionOracle",
    "SimulationError",
    "InvalidParametersError",
    "OracleUnavailableError",
    "SimulationCancelledError",
]

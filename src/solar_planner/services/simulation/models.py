"""Simulation domain models."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from datetime import date
from enum import Enum
from typing import ClassVar, List, Union

from ...config import settings
from ...models.domain import ControlStop
from .errors import InvalidParametersError


class SegmentKind(str, Enum):
    DRIVING = "Driving"
    CONTROL_STOP = "ControlStop"
    BATTERY_CHARGING = "BatteryCharging"


class LimitingFactor(str, Enum):
    """Constraint that decided how far a driving segment went."""

    CONTROL_STOP = "control_stop"
    DRIVING_TIME = "driving_time"
    BATTERY = "battery"
    DESTINATION = "destination"


class SimulationStatus(str, Enum):
    DESTINATION_REACHED = "destination_reached"
    MAX_DAYS_REACHED = "max_days_reached"
    NO_PROGRESS = "no_progress"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class _Segment:
    start_km: float
    end_km: float
    battery_before: float
    battery_after: float
    start_time: str
    end_time: str


@dataclass(frozen=True, slots=True)
class DrivingSegment(_Segment):
    kind: ClassVar[SegmentKind] = SegmentKind.DRIVING

    energy_consumed_kwh: float
    energy_produced_kwh: float
    slope_pct: float
    limiting_factor: LimitingFactor
    consumption_fallback: bool = False

    @property
    def distance_km(self) -> float:
        return self.end_km - self.start_km


@dataclass(frozen=True, slots=True)
class ControlStopSegment(_Segment):
    kind: ClassVar[SegmentKind] = SegmentKind.CONTROL_STOP

    control_stop_name: str
    charging_hours: float

    @property
    def distance_km(self) -> float:
        return 0.0


@dataclass(frozen=True, slots=True)
class BatteryChargingSegment(_Segment):
    kind: ClassVar[SegmentKind] = SegmentKind.BATTERY_CHARGING

    charging_hours: float

    @property
    def distance_km(self) -> float:
        return 0.0


RouteSegment = Union[DrivingSegment, ControlStopSegment, BatteryChargingSegment]


@dataclass(slots=True)
class DailyItinerary:
    day_index: int
    date: date
    segments: List[RouteSegment]
    start_km: float
    end_km: float
    total_distance_km: float
    energy_consumption_kwh: float
    start_battery_pct: float
    end_battery_pct: float
    total_charging_hours: float
    energy_production_kwh: float = 0.0
    net_slope_pct: float = 0.0
    reached_max_days: bool = False


@dataclass(slots=True)
class RouteItinerary:
    status: SimulationStatus
    termination_reason: str
    target_distance_km: float
    days: List[DailyItinerary]
    control_stops: tuple[ControlStop, ...]
    total_distance_km: float
    total_energy_production_kwh: float
    total_energy_consumption_kwh: float
    total_charging_hours: float
    average_battery_pct: float
    estimated_arrival_date: date
    estimated_arrival_time: str

    @property
    def total_days(self) -> int:
        return len(self.days)

    @property
    def destination_reached(self) -> bool:
        return self.status is SimulationStatus.DESTINATION_REACHED


@dataclass(frozen=True, slots=True)
class SimulationParameters:
    """Inputs of one simulation run. Defaults describe the 3022 km Darwin-Adelaide route."""

    start_date: date
    total_distance_km: float = 3022.0
    average_speed_kmh: float = 80.0
    driving_hours_per_day: float = 8.0
    energy_efficiency_km_per_kwh: float = 10.0
    panel_area_m2: float = 4.0
    panel_efficiency: float = 0.22
    mppt_efficiency: float = 0.98
    control_stop_dwell_hours: float = 0.5
    low_battery_threshold_pct: float = 25.0
    low_battery_charge_hours: float = 2.0
    max_days: int = 30
    mass_kg: float = 300.0
    default_slope_pct: float = 0.0
    frontal_area_m2: float = 0.95
    drag_coefficient: float = 0.14
    initial_battery_pct: float = 100.0

    @classmethod
    def from_iso(cls, start_date: str, **kwargs) -> "SimulationParameters":
        """Build parameters from an ISO date or datetime string (``2025-08-24`` or ``2025-08-24T00:00:00Z``)."""
        try:
            parsed = date.fromisoformat(start_date.strip()[:10])
        except (AttributeError, ValueError) as exc:
            raise ValueError(f"Invalid start date '{start_date}'") from exc
        return cls(start_date=parsed, **kwargs)

    def validate(self) -> None:
        """Raise :class:`InvalidParametersError` listing every unusable field."""
        problems: list[str] = []
        for item in fields(self):
            value = getattr(self, item.name)
            if isinstance(value, float) and not math.isfinite(value):
                problems.append(f"{item.name} must be a finite number")
        if problems:
            raise InvalidParametersError(problems)

        if self.total_distance_km < 0:
            problems.append("total_distance_km must be >= 0")
        if self.average_speed_kmh <= 0:
            problems.append("average_speed_kmh must be > 0")
        if not 0 < self.driving_hours_per_day <= 24:
            problems.append("driving_hours_per_day must be in (0, 24]")
        if self.energy_efficiency_km_per_kwh <= 0:
            problems.append("energy_efficiency_km_per_kwh must be > 0")
        if self.panel_area_m2 < 0:
            problems.append("panel_area_m2 must be >= 0")
        if not 0 <= self.panel_efficiency <= 1:
            problems.append("panel_efficiency must be in [0, 1]")
        if not 0 <= self.mppt_efficiency <= 1:
            problems.append("mppt_efficiency must be in [0, 1]")
        if self.control_stop_dwell_hours < 0:
            problems.append("control_stop_dwell_hours must be >= 0")
        if not 0 <= self.low_battery_threshold_pct < 100:
            problems.append("low_battery_threshold_pct must be in [0, 100)")
        if self.low_battery_charge_hours <= 0:
            problems.append("low_battery_charge_hours must be > 0")
        if self.max_days < 1:
            problems.append("max_days must be >= 1")
        if self.mass_kg <= 0:
            problems.append("mass_kg must be > 0")
        if self.frontal_area_m2 < 0:
            problems.append("frontal_area_m2 must be >= 0")
        if self.drag_coefficient < 0:
            problems.append("drag_coefficient must be >= 0")
        if not 0 <= self.initial_battery_pct <= 100:
            problems.append("initial_battery_pct must be in [0, 100]")
        if problems:
            raise InvalidParametersError(problems)


@dataclass(slots=True)
class EnergyModelConstants:
    """Empirical tuning knobs. Defaults come from settings; override per run."""

    solar_efficiency_factor: float = settings.solar_efficiency_factor
    auxiliary_kwh_per_hour: float = settings.auxiliary_kwh_per_hour
    electronics_kwh_per_hour: float = settings.electronics_kwh_per_hour
    min_consumption_kwh_per_km: float = settings.min_consumption_kwh_per_km
    slope_sample_distance_km: float = settings.slope_sample_distance_km
    morning_charge_hours: float = settings.morning_charge_hours
    morning_charge_fallback_base_pct: float = settings.morning_charge_fallback_base_pct
    morning_charge_fallback_spread: int = settings.morning_charge_fallback_spread
    production_fallback_base_kwh: float = settings.production_fallback_base_kwh
    production_fallback_spread: int = settings.production_fallback_spread
    day_start_hour: float = settings.day_start_hour
    control_stop_epsilon_km: float = settings.control_stop_epsilon_km
    progress_epsilon_km: float = settings.progress_epsilon_km
    max_stalled_iterations: int = settings.max_stalled_iterations
    max_stalled_days: int = settings.max_stalled_days


@dataclass(frozen=True, slots=True)
class PlannerState:
    """Where the car stands at the start of a day."""

    current_km: float
    remaining_distance_km: float
    battery_pct: float


@dataclass(slots=True)
class DayPlan:
    segments: List[RouteSegment] = field(default_factory=list)
    current_km: float = 0.0
    remaining_distance_km: float = 0.0
    battery_pct: float = 0.0
    total_distance_km: float = 0.0
    energy_consumption_kwh: float = 0.0
    energy_production_kwh: float = 0.0
    charging_hours: float = 0.0
    stalled: bool = False

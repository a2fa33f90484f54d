"""Simulation request/response schemas."""

from __future__ import annotations

import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from ..services.simulation.models import LimitingFactor, SimulationParameters, SimulationStatus


class SimulationRequest(BaseModel):
    start_date: datetime.date = Field(..., description="First race day (ISO date).")
    total_distance_km: float = Field(3022.0, ge=0)
    average_speed_kmh: float = Field(80.0, gt=0)
    driving_hours_per_day: float = Field(8.0, gt=0, le=24)
    energy_efficiency_km_per_kwh: float = Field(10.0, gt=0)
    panel_area_m2: float = Field(4.0, ge=0)
    panel_efficiency: float = Field(0.22, ge=0, le=1)
    mppt_efficiency: float = Field(0.98, ge=0, le=1)
    control_stop_dwell_hours: float = Field(0.5, ge=0)
    low_battery_threshold_pct: float = Field(25.0, ge=0, lt=100)
    low_battery_charge_hours: float = Field(2.0, gt=0)
    max_days: int = Field(30, ge=1, le=365)
    mass_kg: float = Field(300.0, gt=0)
    default_slope_pct: float = Field(0.0, ge=-30, le=30)
    frontal_area_m2: float = Field(0.95, ge=0)
    drag_coefficient: float = Field(0.14, ge=0)
    initial_battery_pct: float = Field(100.0, ge=0, le=100)
    use_terrain: bool = Field(
        default=True,
        description="If False, the default slope is used along the whole route.",
    )

    def to_parameters(self) -> SimulationParameters:
        return SimulationParameters(**self.model_dump(exclude={"use_terrain"}))


class DrivingSegmentModel(BaseModel):
    kind: Literal["Driving"]
    start_km: float
    end_km: float
    distance_km: float
    battery_before: float
    battery_after: float
    start_time: str
    end_time: str
    energy_consumed_kwh: float
    energy_produced_kwh: float
    slope_pct: float
    limiting_factor: LimitingFactor
    consumption_fallback: bool = False


class ControlStopSegmentModel(BaseModel):
    kind: Literal["ControlStop"]
    start_km: float
    end_km: float
    distance_km: float
    battery_before: float
    battery_after: float
    start_time: str
    end_time: str
    control_stop_name: str
    charging_hours: float


class BatteryChargingSegmentModel(BaseModel):
    kind: Literal["BatteryCharging"]
    start_km: float
    end_km: float
    distance_km: float
    battery_before: float
    battery_after: float
    start_time: str
    end_time: str
    charging_hours: float


SegmentModel = Annotated[
    Union[DrivingSegmentModel, ControlStopSegmentModel, BatteryChargingSegmentModel],
    Field(discriminator="kind"),
]


class DailyItineraryModel(BaseModel):
    day_index: int
    date: datetime.date
    start_km: float
    end_km: float
    total_distance_km: float
    energy_production_kwh: float
    energy_consumption_kwh: float
    start_battery_pct: float
    end_battery_pct: float
    total_charging_hours: float
    net_slope_pct: float
    reached_max_days: bool
    segments: List[SegmentModel] = Field(default_factory=list)


class ControlStopModel(BaseModel):
    name: str
    distance_from_start_km: float


class RouteItineraryResponse(BaseModel):
    status: SimulationStatus
    termination_reason: str
    target_distance_km: float
    total_distance_km: float
    total_days: int
    total_energy_production_kwh: float
    total_energy_consumption_kwh: float
    total_charging_hours: float
    average_battery_pct: float
    estimated_arrival_date: datetime.date
    estimated_arrival_time: str
    control_stops: List[ControlStopModel]
    days: List[DailyItineraryModel]


class ControlStopsResponse(BaseModel):
    control_stops: List[ControlStopModel]
    total: int
    notes: Optional[str] = None


class BatterySpecModel(BaseModel):
    nominal_voltage: float
    min_voltage: float
    max_voltage: float
    capacity_ah: float
    energy_kwh: float
    max_discharge_power_kw: float
    standard_charge_rate_a: float
    max_charge_rate_a: float
    standard_discharge_rate_a: float
    max_discharge_rate_a: float


class MotorSpecModel(BaseModel):
    nominal_power_kw: float
    max_power_kw: float
    efficiency: float
    nominal_rpm: float
    nominal_voltage: float
    min_voltage: float
    max_voltage: float


class VehicleProfileResponse(BaseModel):
    speed_kmh: float
    battery_pct: float
    slope_pct: float
    road_load_n: float
    required_power_kw: float
    motor_output_kw: float
    battery_draw_kw: float
    endurance_hours: float = Field(..., description="Hours the current charge lasts at the cruise draw.")
    flat_range_km: float = Field(..., description="Range at the flat km/kWh efficiency.")
    full_charge_hours: float = Field(..., description="CC-CV time from the current charge to 100 %.")
    battery: BatterySpecModel
    motor: MotorSpecModel

"""Steady-state vehicle figures derived from the pack and motor datasheets."""

from __future__ import annotations

from dataclasses import dataclass

from .battery import BATTERY_SPEC, BatterySpec, charging_time_hours, discharge_time_hours, range_km
from .errors import InvalidParametersError
from .motor import (
    DEFAULT_DRAG_COEFFICIENT,
    DEFAULT_FRONTAL_AREA_M2,
    DEFAULT_MASS_KG,
    MOTOR_SPEC,
    MotorSpec,
    battery_power_draw_kw,
    driving_resistance_n,
    motor_power_kw,
    required_power_kw,
)


@dataclass(frozen=True, slots=True)
class VehicleProfile:
    speed_kmh: float
    battery_pct: float
    slope_pct: float
    road_load_n: float
    required_power_kw: float
    motor_output_kw: float
    battery_draw_kw: float
    endurance_hours: float
    flat_range_km: float
    full_charge_hours: float
    battery: BatterySpec
    motor: MotorSpec


def vehicle_profile(
    speed_kmh: float,
    battery_pct: float = 100.0,
    *,
    slope_pct: float = 0.0,
    mass_kg: float = DEFAULT_MASS_KG,
    frontal_area_m2: float = DEFAULT_FRONTAL_AREA_M2,
    drag_coefficient: float = DEFAULT_DRAG_COEFFICIENT,
    energy_efficiency_km_per_kwh: float = 10.0,
    c_rate: float = 0.5,
    battery_spec: BatterySpec = BATTERY_SPEC,
    motor_spec: MotorSpec = MOTOR_SPEC,
) -> VehicleProfile:
    """Cruise figures at a constant speed and slope.

    ``endurance_hours`` is how long the charge at ``battery_pct`` lasts at the
    cruise draw, and ``full_charge_hours`` the CC-CV time from ``battery_pct``
    back to 100 %.
    """

    if speed_kmh <= 0:
        raise InvalidParametersError("speed_kmh must be positive")
    if not 0 <= battery_pct <= 100:
        raise InvalidParametersError("battery_pct must be within [0, 100]")

    road_load = driving_resistance_n(speed_kmh, mass_kg, frontal_area_m2, drag_coefficient, slope_pct)
    power = required_power_kw(road_load, speed_kmh)
    draw = battery_power_draw_kw(power, motor_spec)
    return VehicleProfile(
        speed_kmh=speed_kmh,
        battery_pct=battery_pct,
        slope_pct=slope_pct,
        road_load_n=road_load,
        required_power_kw=power,
        motor_output_kw=motor_power_kw(speed_kmh, spec=motor_spec),
        battery_draw_kw=draw,
        endurance_hours=discharge_time_hours(battery_pct, draw, battery_spec),
        flat_range_km=range_km(battery_pct, energy_efficiency_km_per_kwh, battery_spec),
        full_charge_hours=charging_time_hours(battery_pct, 100.0, c_rate, battery_spec),
        battery=battery_spec,
        motor=motor_spec,
    )

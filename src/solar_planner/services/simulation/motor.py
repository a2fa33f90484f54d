"""Motor and driving-resistance model based on the in-wheel motor datasheet.

Motor: 2.0 kW nominal, ~5.0 kW peak, >=95 % efficiency including the
controller, 810 rpm at nominal load, 96 V nominal (45-140 V input).
"""

from __future__ import annotations

import math
from dataclasses import dataclass

GRAVITY = 9.81  # m/s^2
AIR_DENSITY = 1.225  # kg/m^3, standard atmosphere
ROLLING_COEFFICIENT = 0.01  # low-resistance solar car tyres

DEFAULT_MASS_KG = 300.0
DEFAULT_FRONTAL_AREA_M2 = 0.95
DEFAULT_DRAG_COEFFICIENT = 0.14
DEFAULT_ELECTRONICS_KWH_PER_HOUR = 0.2
DEFAULT_MIN_CONSUMPTION_KWH_PER_KM = 0.05


@dataclass(frozen=True, slots=True)
class MotorSpec:
    nominal_power_kw: float
    max_power_kw: float
    efficiency: float
    nominal_rpm: float
    nominal_voltage: float
    min_voltage: float
    max_voltage: float


MOTOR_SPEC = MotorSpec(
    nominal_power_kw=2.0,
    max_power_kw=5.0,
    efficiency=0.95,
    nominal_rpm=810.0,
    nominal_voltage=96.0,
    min_voltage=45.0,
    max_voltage=140.0,
)


def motor_power_kw(
    speed_kmh: float,
    wheel_diameter_m: float = 0.55,
    gear_ratio: float = 3.5,
    spec: MotorSpec = MOTOR_SPEC,
) -> float:
    """Output power available at a road speed, scaled by motor rpm against nominal rpm."""

    wheel_circumference = math.pi * wheel_diameter_m
    wheel_rpm = (speed_kmh / 3.6) * 60.0 / wheel_circumference
    power_ratio = min(max(0.0, wheel_rpm * gear_ratio / spec.nominal_rpm), 1.5)
    return min(spec.nominal_power_kw * power_ratio, spec.max_power_kw)


def battery_power_draw_kw(required_power_kw: float, spec: MotorSpec = MOTOR_SPEC) -> float:
    return required_power_kw / spec.efficiency


def motor_efficiency(load_ratio: float) -> float:
    """Efficiency curve of a BLDC motor against load.

    Below 30 % load efficiency ramps from 0.80 to 0.95, it stays at 0.95 up to
    80 % and falls linearly to 0.90 at full load.
    """

    load = min(max(0.0, load_ratio), 1.0)
    if load < 0.3:
        return 0.8 + (load / 0.3) * 0.15
    if load <= 0.8:
        return 0.95
    return 0.95 - ((load - 0.8) / 0.2) * 0.05


def driving_resistance_n(
    speed_kmh: float,
    mass_kg: float = DEFAULT_MASS_KG,
    frontal_area_m2: float = DEFAULT_FRONTAL_AREA_M2,
    drag_coefficient: float = DEFAULT_DRAG_COEFFICIENT,
    slope_pct: float = 0.0,
) -> float:
    """Total road load: aerodynamic drag, rolling resistance and grade force."""

    speed_ms = speed_kmh / 3.6
    air_resistance = 0.5 * AIR_DENSITY * frontal_area_m2 * drag_coefficient * speed_ms**2
    rolling_resistance = ROLLING_COEFFICIENT * mass_kg * GRAVITY
    slope_angle = math.atan(slope_pct / 100.0)
    grade_resistance = mass_kg * GRAVITY * math.sin(slope_angle)
    return air_resistance + rolling_resistance + grade_resistance


def required_power_kw(resistance_n: float, speed_kmh: float) -> float:
    return resistance_n * (speed_kmh / 3.6) / 1000.0


def energy_consumed_kwh(
    distance_km: float,
    speed_kmh: float,
    mass_kg: float = DEFAULT_MASS_KG,
    frontal_area_m2: float = DEFAULT_FRONTAL_AREA_M2,
    drag_coefficient: float = DEFAULT_DRAG_COEFFICIENT,
    slope_pct: float = 0.0,
    *,
    electronics_kwh_per_hour: float = DEFAULT_ELECTRONICS_KWH_PER_HOUR,
    min_consumption_kwh_per_km: float = DEFAULT_MIN_CONSUMPTION_KWH_PER_KM,
    spec: MotorSpec = MOTOR_SPEC,
) -> float:
    """Battery energy needed to cover ``distance_km`` at a constant speed.

    Returns 0 for non-positive distances. The result never drops below
    ``distance_km * min_consumption_kwh_per_km``. A non-positive speed yields
    NaN, which callers must treat as a computation fault.
    """

    if distance_km <= 0:
        return 0.0
    if speed_kmh <= 0:
        return math.nan

    resistance = driving_resistance_n(speed_kmh, mass_kg, frontal_area_m2, drag_coefficient, slope_pct)
    power_required = required_power_kw(resistance, speed_kmh)

    load_ratio = min(power_required / spec.nominal_power_kw, 1.0)
    battery_power = power_required / motor_efficiency(load_ratio)

    travel_hours = distance_km / speed_kmh
    consumption = battery_power * travel_hours
    consumption += electronics_kwh_per_hour * travel_hours

    return max(consumption, distance_km * min_consumption_kwh_per_km)

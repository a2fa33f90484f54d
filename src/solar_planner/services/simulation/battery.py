"""Battery model based on the traction pack datasheet.

Pack: 93.6 V nominal (72.8-109.2 V), 31.5 Ah, 2948.4 Wh, 7.488 kW maximum
discharge. Charging is CC-CV: 0.5C standard (15.75 A) or 1.0C maximum
(31.5 A), terminating at 0.05C (1.575 A).
"""

from __future__ import annotations

import math
from dataclasses import dataclass

CV_PHASE_START_SOC = 0.8
CHARGE_END_CURRENT_C_RATE = 0.05


@dataclass(frozen=True, slots=True)
class BatterySpec:
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


BATTERY_SPEC = BatterySpec(
    nominal_voltage=93.6,
    min_voltage=72.8,
    max_voltage=109.2,
    capacity_ah=31.5,
    energy_kwh=2.9484,
    max_discharge_power_kw=7.488,
    standard_charge_rate_a=15.75,
    max_charge_rate_a=31.5,
    standard_discharge_rate_a=6.3,
    max_discharge_rate_a=80.0,
)


def clamp_soc(soc: float) -> float:
    return max(0.0, min(100.0, soc))


def available_energy_kwh(soc: float, spec: BatterySpec = BATTERY_SPEC) -> float:
    return (soc / 100.0) * spec.energy_kwh


def range_km(soc: float, energy_efficiency_km_per_kwh: float, spec: BatterySpec = BATTERY_SPEC) -> float:
    """Distance the stored energy covers at a flat km/kWh efficiency."""
    return available_energy_kwh(soc, spec) * energy_efficiency_km_per_kwh


def new_soc(
    soc: float,
    energy_produced_kwh: float,
    energy_consumed_kwh: float,
    spec: BatterySpec = BATTERY_SPEC,
) -> float:
    """Apply a net energy flow to the state of charge, clamped to [0, 100]."""
    soc_change = (energy_produced_kwh - energy_consumed_kwh) / spec.energy_kwh * 100.0
    return clamp_soc(soc + soc_change)


def charging_stop_soc(soc: float, hours: float, spec: BatterySpec = BATTERY_SPEC) -> float:
    """State of charge after ``hours`` of constant-current charging at the standard rate."""
    charged_ah = spec.standard_charge_rate_a * hours
    return min(100.0, soc + charged_ah / spec.capacity_ah * 100.0)


def charging_time_hours(
    current_soc: float,
    target_soc: float,
    c_rate: float = 0.5,
    spec: BatterySpec = BATTERY_SPEC,
) -> float:
    """Estimate CC-CV charging time between two states of charge.

    The constant-current phase runs up to 80 % SoC. Above that the current
    decays exponentially towards the 0.05C end current, so the tail is
    modelled as ``tau * ln(I_cc / I_end)`` scaled by the share of the
    80-100 % window still to be filled. Used for display only; the planner
    charges with :func:`charging_stop_soc`.
    """

    if current_soc >= target_soc or c_rate <= 0:
        return 0.0

    current = current_soc / 100.0
    target = min(target_soc, 100.0) / 100.0
    charging_current = c_rate * spec.capacity_ah

    cc_end = min(target, CV_PHASE_START_SOC)
    cc_hours = 0.0
    if current < cc_end:
        cc_hours = (cc_end - current) * spec.capacity_ah / charging_current

    cv_hours = 0.0
    end_current = CHARGE_END_CURRENT_C_RATE * spec.capacity_ah
    if target > CV_PHASE_START_SOC and charging_current > end_current:
        tau = 1.0 / c_rate
        window_start = max(current, CV_PHASE_START_SOC)
        share = (target - window_start) / (1.0 - CV_PHASE_START_SOC)
        cv_hours = tau * math.log(charging_current / end_current) * share

    return cc_hours + cv_hours


def discharge_time_hours(soc: float, power_draw_kw: float, spec: BatterySpec = BATTERY_SPEC) -> float:
    if soc <= 0 or power_draw_kw <= 0:
        return 0.0
    return available_energy_kwh(soc, spec) / power_draw_kw

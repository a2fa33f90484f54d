"""Daily segment planner.

Walks the car forward through one race day. Every iteration either charges a
flat battery or drives the shortest of four distances: to the next control
stop, what the remaining driving hours allow, what the battery allows before
reaching the low-battery threshold, and what is left of the route.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Optional, Sequence

from ...models.domain import ControlStop, TerrainPoint
from .battery import BATTERY_SPEC, BatterySpec, charging_stop_soc
from .energy import (
    SolarProductionCache,
    daily_production_kwh,
    segment_energy_consumption,
    segment_energy_production,
    update_battery_level,
)
from .models import (
    BatteryChargingSegment,
    ControlStopSegment,
    DayPlan,
    DrivingSegment,
    EnergyModelConstants,
    LimitingFactor,
    PlannerState,
    SimulationParameters,
)

logger = logging.getLogger(__name__)


def format_time(hours: float) -> str:
    """Render hours since midnight as ``HH:MM:SS``. Hours past 23 are kept."""
    total_seconds = max(0, round(hours * 3600))
    hh, remainder = divmod(total_seconds, 3600)
    mm, ss = divmod(remainder, 60)
    return f"{hh:02d}:{mm:02d}:{ss:02d}"


def next_control_stop(
    control_stops: Sequence[ControlStop],
    position_km: float,
    epsilon_km: float,
) -> Optional[ControlStop]:
    """First stop strictly ahead of the car. A stop within ``epsilon_km`` behind or at the car is done."""
    for stop in control_stops:
        if stop.distance_from_start_km > position_km + epsilon_km:
            return stop
    return None


def start_battery_charging(
    position_km: float,
    battery_pct: float,
    hours: float,
    clock_hours: float,
    spec: BatterySpec = BATTERY_SPEC,
) -> BatteryChargingSegment:
    """Stop at the roadside and charge for ``hours`` at the standard rate."""
    if hours < 0:
        raise ValueError("Charging time cannot be negative.")
    return BatteryChargingSegment(
        start_km=position_km,
        end_km=position_km,
        battery_before=battery_pct,
        battery_after=charging_stop_soc(battery_pct, hours, spec),
        start_time=format_time(clock_hours),
        end_time=format_time(clock_hours + hours),
        charging_hours=hours,
    )


def arrive_at_control_stop(
    stop: ControlStop,
    battery_pct: float,
    dwell_hours: float,
    clock_hours: float,
) -> ControlStopSegment:
    return ControlStopSegment(
        start_km=stop.distance_from_start_km,
        end_km=stop.distance_from_start_km,
        battery_before=battery_pct,
        battery_after=battery_pct,
        start_time=format_time(clock_hours),
        end_time=format_time(clock_hours + dwell_hours),
        control_stop_name=stop.name,
        charging_hours=dwell_hours,
    )


class SegmentPlanner:
    """Plans the segments of a single day. Holds no state between days."""

    def __init__(
        self,
        constants: EnergyModelConstants | None = None,
        battery_spec: BatterySpec = BATTERY_SPEC,
    ) -> None:
        self.constants = constants or EnergyModelConstants()
        self.battery_spec = battery_spec

    def _battery_distance_km(
        self,
        battery_pct: float,
        candidate_km: float,
        consumed_kwh: float,
        produced_kwh: float,
        threshold_pct: float,
    ) -> float:
        """Distance until the pack reaches the threshold at the candidate segment's net kWh/km."""
        if candidate_km <= 0:
            return math.inf
        net_kwh_per_km = (consumed_kwh - produced_kwh) / candidate_km
        if net_kwh_per_km <= 0:
            return math.inf
        usable_kwh = (battery_pct - threshold_pct) / 100.0 * self.battery_spec.energy_kwh
        return max(0.0, usable_kwh / net_kwh_per_km)

    async def plan_day(
        self,
        day: date,
        state: PlannerState,
        control_stops: Sequence[ControlStop],
        terrain: Sequence[TerrainPoint],
        params: SimulationParameters,
        cache: SolarProductionCache,
    ) -> DayPlan:
        constants = self.constants
        plan = DayPlan(
            current_km=state.current_km,
            remaining_distance_km=state.remaining_distance_km,
            battery_pct=state.battery_pct,
        )
        if plan.remaining_distance_km <= 0:
            return plan

        day_total_kwh, used_fallback = await daily_production_kwh(
            cache, day, params.driving_hours_per_day, constants
        )
        if used_fallback:
            logger.warning("Using fallback solar production of %.2f kWh for %s", day_total_kwh, day)

        hours_left = params.driving_hours_per_day
        clock = constants.day_start_hour
        stalled_iterations = 0

        while hours_left > 0 and plan.remaining_distance_km > 0:
            if plan.battery_pct <= params.low_battery_threshold_pct:
                charging = start_battery_charging(
                    plan.current_km,
                    plan.battery_pct,
                    params.low_battery_charge_hours,
                    clock,
                    self.battery_spec,
                )
                logger.debug(
                    "Charging at km %.1f: %.1f%% -> %.1f%%",
                    plan.current_km,
                    charging.battery_before,
                    charging.battery_after,
                )
                plan.segments.append(charging)
                plan.battery_pct = charging.battery_after
                plan.charging_hours += charging.charging_hours
                hours_left -= charging.charging_hours
                clock += charging.charging_hours
                continue

            position_before = plan.current_km
            remaining_before = plan.remaining_distance_km

            stop = next_control_stop(control_stops, plan.current_km, constants.control_stop_epsilon_km)
            to_stop_km = stop.distance_from_start_km - plan.current_km if stop is not None else math.inf
            by_time_km = params.average_speed_kmh * hours_left
            candidate_km = min(to_stop_km, by_time_km, plan.remaining_distance_km)

            consumption = segment_energy_consumption(candidate_km, params, terrain, plan.current_km, constants)
            production = segment_energy_production(
                candidate_km / params.average_speed_kmh,
                day_total_kwh,
                params.driving_hours_per_day,
                constants,
            )
            battery_km = self._battery_distance_km(
                plan.battery_pct,
                candidate_km,
                consumption.total_kwh,
                production.effective_kwh,
                params.low_battery_threshold_pct,
            )

            # Ties resolve in list order.
            limiting_factor, distance_km = min(
                (
                    (LimitingFactor.CONTROL_STOP, to_stop_km),
                    (LimitingFactor.DESTINATION, plan.remaining_distance_km),
                    (LimitingFactor.DRIVING_TIME, by_time_km),
                    (LimitingFactor.BATTERY, battery_km),
                ),
                key=lambda item: item[1],
            )

            if distance_km > 0:
                start_km = plan.current_km
                if limiting_factor is LimitingFactor.DESTINATION:
                    end_km = start_km + plan.remaining_distance_km
                else:
                    end_km = start_km + distance_km

                reached_stop = (
                    stop is not None
                    and abs(end_km - stop.distance_from_start_km) <= constants.control_stop_epsilon_km
                    and stop.distance_from_start_km - start_km <= plan.remaining_distance_km
                )
                if reached_stop:
                    end_km = stop.distance_from_start_km
                distance_km = end_km - start_km

                if distance_km != candidate_km:
                    consumption = segment_energy_consumption(distance_km, params, terrain, start_km, constants)
                    production = segment_energy_production(
                        distance_km / params.average_speed_kmh,
                        day_total_kwh,
                        params.driving_hours_per_day,
                        constants,
                    )
                balance = update_battery_level(
                    plan.battery_pct,
                    production.effective_kwh,
                    consumption.total_kwh,
                    self.battery_spec,
                )
                battery_after = balance.battery_after
                if limiting_factor is LimitingFactor.BATTERY and not reached_stop:
                    battery_after = params.low_battery_threshold_pct

                driving_hours = distance_km / params.average_speed_kmh
                segment = DrivingSegment(
                    start_km=start_km,
                    end_km=end_km,
                    battery_before=plan.battery_pct,
                    battery_after=battery_after,
                    start_time=format_time(clock),
                    end_time=format_time(clock + driving_hours),
                    energy_consumed_kwh=consumption.total_kwh,
                    energy_produced_kwh=production.effective_kwh,
                    slope_pct=consumption.slope_pct,
                    limiting_factor=limiting_factor,
                    consumption_fallback=consumption.used_fallback,
                )
                logger.debug(
                    "Drove km %.2f -> %.2f (%s), battery %.1f%% -> %.1f%%",
                    start_km,
                    end_km,
                    limiting_factor.value,
                    segment.battery_before,
                    segment.battery_after,
                )
                plan.segments.append(segment)
                plan.current_km = end_km
                plan.battery_pct = battery_after
                plan.total_distance_km += distance_km
                plan.energy_consumption_kwh += consumption.total_kwh
                plan.energy_production_kwh += production.effective_kwh
                if limiting_factor is LimitingFactor.DESTINATION:
                    plan.remaining_distance_km = 0.0
                else:
                    plan.remaining_distance_km = max(0.0, plan.remaining_distance_km - distance_km)
                if limiting_factor is LimitingFactor.DRIVING_TIME:
                    hours_left = 0.0
                else:
                    hours_left -= driving_hours
                clock += driving_hours

                if reached_stop:
                    control = arrive_at_control_stop(stop, plan.battery_pct, params.control_stop_dwell_hours, clock)
                    logger.info("Reached control stop %s at km %.1f", stop.name, stop.distance_from_start_km)
                    plan.segments.append(control)
                    plan.charging_hours += control.charging_hours
                    hours_left -= control.charging_hours
                    clock += control.charging_hours

            moved = abs(plan.current_km - position_before)
            shrunk = abs(remaining_before - plan.remaining_distance_km)
            if moved < constants.progress_epsilon_km and shrunk < constants.progress_epsilon_km:
                stalled_iterations += 1
                if stalled_iterations >= constants.max_stalled_iterations:
                    logger.warning(
                        "No progress for %d iterations at km %.3f on %s; ending the day",
                        stalled_iterations,
                        plan.current_km,
                        day,
                    )
                    plan.stalled = True
                    break
            else:
                stalled_iterations = 0

        return plan

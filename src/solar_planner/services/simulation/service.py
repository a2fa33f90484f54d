"""High-level itinerary simulation entry point."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, timedelta
from typing import Iterable, Optional

from ...data.route_repository import load_control_stops, load_terrain_samples
from ...models.domain import ControlStop, TerrainPoint
from .cancellation import CancellationToken
from .energy import SolarProductionCache, apply_morning_charge, daily_production_kwh
from .errors import SimulationCancelledError
from .models import (
    DailyItinerary,
    DayPlan,
    EnergyModelConstants,
    PlannerState,
    RouteItinerary,
    SimulationParameters,
    SimulationStatus,
)
from .oracles import EnergyProductionOracle, build_energy_oracle
from .planner import SegmentPlanner, format_time
from .terrain import segment_slope

logger = logging.getLogger(__name__)


def _load_terrain() -> tuple[TerrainPoint, ...]:
    try:
        return load_terrain_samples()
    except (FileNotFoundError, ValueError) as exc:
        logging.warning("Terrain data unavailable, using the default slope everywhere: %s", exc)
        return tuple()


def _build_day(day_index: int, day: date, state: PlannerState, plan: DayPlan) -> DailyItinerary:
    return DailyItinerary(
        day_index=day_index,
        date=day,
        segments=list(plan.segments),
        start_km=state.current_km,
        end_km=plan.current_km,
        total_distance_km=plan.total_distance_km,
        energy_consumption_kwh=plan.energy_consumption_kwh,
        start_battery_pct=plan.segments[0].battery_before,
        end_battery_pct=plan.segments[-1].battery_after,
        total_charging_hours=plan.charging_hours,
    )


async def create_route_itinerary(
    params: SimulationParameters,
    *,
    energy_oracle: Optional[EnergyProductionOracle] = None,
    control_stops: Optional[Iterable[ControlStop]] = None,
    terrain: Optional[Iterable[TerrainPoint]] = None,
    constants: Optional[EnergyModelConstants] = None,
    cancellation: Optional[CancellationToken] = None,
) -> RouteItinerary:
    """Simulate the race day by day until the car arrives or a stop condition fires.

    Oracle failures fall back to deterministic estimates. Stalled progress,
    the day cap and cancellation end the run early with the partial
    itinerary and a matching :class:`SimulationStatus`.

    Raises:
        InvalidParametersError: if ``params`` fail validation.
    """

    params.validate()
    constants = constants or EnergyModelConstants()
    oracle = energy_oracle if energy_oracle is not None else build_energy_oracle()
    stops = (
        tuple(sorted(control_stops, key=lambda stop: stop.distance_from_start_km))
        if control_stops is not None
        else load_control_stops()
    )
    terrain_points = tuple(terrain) if terrain is not None else _load_terrain()

    cache = SolarProductionCache(
        oracle,
        panel_area_m2=params.panel_area_m2,
        panel_efficiency=params.panel_efficiency,
        mppt_efficiency=params.mppt_efficiency,
        cancellation=cancellation,
    )
    planner = SegmentPlanner(constants)

    logger.info(
        "Simulating %.1f km from %s at %.1f km/h, %.1f h/day, max %d days",
        params.total_distance_km,
        params.start_date,
        params.average_speed_kmh,
        params.driving_hours_per_day,
        params.max_days,
    )

    days: list[DailyItinerary] = []
    state = PlannerState(
        current_km=0.0,
        remaining_distance_km=params.total_distance_km,
        battery_pct=params.initial_battery_pct,
    )
    status: Optional[SimulationStatus] = None
    reason = "destination reached"
    stalled_days = 0
    day_offset = 0

    try:
        while state.remaining_distance_km > 0:
            if cancellation is not None:
                cancellation.raise_if_cancelled()

            current_date = params.start_date + timedelta(days=day_offset)
            plan = await planner.plan_day(current_date, state, stops, terrain_points, params, cache)
            if not plan.segments:
                status = SimulationStatus.NO_PROGRESS
                reason = f"no segments could be planned on {current_date}"
                break

            daily = _build_day(day_offset + 1, current_date, state, plan)
            days.append(daily)
            logger.info(
                "Day %d (%s): km %.1f -> %.1f, battery %.1f%% -> %.1f%%, %.1f km remaining",
                daily.day_index,
                current_date,
                daily.start_km,
                daily.end_km,
                daily.start_battery_pct,
                daily.end_battery_pct,
                plan.remaining_distance_km,
            )

            progress_km = plan.current_km - state.current_km
            state = PlannerState(
                current_km=plan.current_km,
                remaining_distance_km=plan.remaining_distance_km,
                battery_pct=plan.battery_pct,
            )
            day_offset += 1

            if plan.stalled:
                status = SimulationStatus.NO_PROGRESS
                reason = f"planner stalled at km {state.current_km:.3f} on {current_date}"
                break
            stalled_days = stalled_days + 1 if progress_km < constants.progress_epsilon_km else 0
            if stalled_days >= constants.max_stalled_days:
                status = SimulationStatus.NO_PROGRESS
                reason = f"no progress for {stalled_days} consecutive days"
                break
            if state.remaining_distance_km <= 0:
                break
            if day_offset >= params.max_days:
                daily.reached_max_days = True
                status = SimulationStatus.MAX_DAYS_REACHED
                reason = f"maximum of {params.max_days} days reached"
                break

            next_date = params.start_date + timedelta(days=day_offset)
            morning = await apply_morning_charge(cache, next_date, state.battery_pct, constants)
            state = replace(state, battery_pct=morning.battery_after)
    except SimulationCancelledError as exc:
        status = SimulationStatus.CANCELLED
        reason = str(exc)
        logger.info("Simulation cancelled after %d days: %s", len(days), exc)

    if status is None:
        status = SimulationStatus.DESTINATION_REACHED
    if status is SimulationStatus.NO_PROGRESS:
        logging.warning("Simulation aborted: %s", reason)

    driven_days = [day for day in days if day.total_distance_km > 0]
    if status is SimulationStatus.MAX_DAYS_REACHED and driven_days:
        # The capped day may have been dropped for driving nowhere.
        driven_days[-1].reached_max_days = True
    for day in driven_days:
        # Every kept day already looked this key up while planning, so no oracle call happens here.
        day.energy_production_kwh, _ = await daily_production_kwh(
            cache, day.date, params.driving_hours_per_day, constants
        )
        day.net_slope_pct = segment_slope(terrain_points, day.start_km, day.end_km)

    if driven_days:
        arrival_date = driven_days[-1].date
        arrival_time = driven_days[-1].segments[-1].end_time
        average_battery = sum(day.end_battery_pct for day in driven_days) / len(driven_days)
    else:
        arrival_date = params.start_date
        arrival_time = format_time(constants.day_start_hour)
        average_battery = state.battery_pct

    itinerary = RouteItinerary(
        status=status,
        termination_reason=reason,
        target_distance_km=params.total_distance_km,
        days=driven_days,
        control_stops=stops,
        total_distance_km=sum(day.total_distance_km for day in driven_days),
        total_energy_production_kwh=sum(day.energy_production_kwh for day in driven_days),
        total_energy_consumption_kwh=sum(day.energy_consumption_kwh for day in driven_days),
        total_charging_hours=sum(day.total_charging_hours for day in driven_days),
        average_battery_pct=average_battery,
        estimated_arrival_date=arrival_date,
        estimated_arrival_time=arrival_time,
    )
    logger.info(
        "Simulation finished (%s): %d days, %.1f / %.1f km",
        status.value,
        itinerary.total_days,
        itinerary.total_distance_km,
        params.total_distance_km,
    )
    return itinerary

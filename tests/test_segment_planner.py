import asyncio
from datetime import date

import pytest

from solar_planner.models.domain import ControlStop
from solar_planner.services.simulation import planner as planner_module
from solar_planner.services.simulation.battery import BATTERY_SPEC
from solar_planner.services.simulation.energy import SolarProductionCache
from solar_planner.services.simulation.models import (
    BatteryChargingSegment,
    ControlStopSegment,
    DrivingSegment,
    EnergyModelConstants,
    LimitingFactor,
    PlannerState,
    SegmentKind,
    SimulationParameters,
)
from solar_planner.services.simulation.planner import (
    SegmentPlanner,
    arrive_at_control_stop,
    format_time,
    next_control_stop,
    start_battery_charging,
)

RACE_DAY = date(2025, 8, 24)


class ZeroSunOracle:
    async def estimate_energy_production(self, day, time_fraction, panel_area_m2, panel_efficiency, mppt_efficiency):
        return 0.0


def _light_car(**overrides) -> SimulationParameters:
    """Car whose draw is the consumption floor: no aero losses and a light chassis."""
    values = dict(
        start_date=RACE_DAY,
        total_distance_km=1000.0,
        average_speed_kmh=80.0,
        driving_hours_per_day=8.0,
        mass_kg=100.0,
        frontal_area_m2=0.0,
        drag_coefficient=0.0,
        low_battery_threshold_pct=25.0,
        low_battery_charge_hours=2.0,
    )
    values.update(overrides)
    return SimulationParameters(**values)


def _constants(floor_kwh_per_km: float) -> EnergyModelConstants:
    return EnergyModelConstants(
        auxiliary_kwh_per_hour=0.0,
        electronics_kwh_per_hour=0.0,
        min_consumption_kwh_per_km=floor_kwh_per_km,
    )


def _plan(params, constants, control_stops=(), state=None):
    state = state or PlannerState(current_km=0.0, remaining_distance_km=params.total_distance_km, battery_pct=100.0)
    cache = SolarProductionCache(
        ZeroSunOracle(),
        panel_area_m2=params.panel_area_m2,
        panel_efficiency=params.panel_efficiency,
        mppt_efficiency=params.mppt_efficiency,
    )
    return asyncio.run(
        SegmentPlanner(constants).plan_day(RACE_DAY, state, control_stops, (), params, cache)
    )


def test_format_time():
    assert format_time(10.0) == "10:00:00"
    assert format_time(10.5) == "10:30:00"
    assert format_time(10.0 + 1 / 3600) == "10:00:01"
    assert format_time(25.25) == "25:15:00"


def test_next_control_stop_skips_stops_behind():
    stops = (ControlStop("A", 100.0), ControlStop("B", 200.0))
    assert next_control_stop(stops, 0.0, 0.1).name == "A"
    assert next_control_stop(stops, 100.0, 0.1).name == "B"
    assert next_control_stop(stops, 99.95, 0.1).name == "B"
    assert next_control_stop(stops, 250.0, 0.1) is None


def test_transition_helpers_build_tagged_segments():
    charging = start_battery_charging(42.0, 25.0, 1.0, 12.0)
    assert isinstance(charging, BatteryChargingSegment)
    assert charging.kind is SegmentKind.BATTERY_CHARGING
    assert charging.distance_km == 0.0
    assert charging.battery_after == pytest.approx(75.0)
    assert (charging.start_time, charging.end_time) == ("12:00:00", "13:00:00")

    stop = arrive_at_control_stop(ControlStop("Katherine", 322.0), 61.0, 0.5, 14.0)
    assert isinstance(stop, ControlStopSegment)
    assert stop.kind is SegmentKind.CONTROL_STOP
    assert stop.start_km == stop.end_km == 322.0
    assert stop.battery_before == stop.battery_after == 61.0

    with pytest.raises(ValueError):
        start_battery_charging(0.0, 20.0, -1.0, 10.0)


def test_low_battery_inserts_charging_before_driving_on():
    # Floor chosen so 75 % of the pack lasts exactly 200 km
    floor = 0.75 * BATTERY_SPEC.energy_kwh / 200.0
    plan = _plan(_light_car(), _constants(floor))

    first, second = plan.segments[0], plan.segments[1]
    assert isinstance(first, DrivingSegment)
    assert first.limiting_factor is LimitingFactor.BATTERY
    assert first.end_km == pytest.approx(200.0)
    assert first.battery_after == 25.0

    assert isinstance(second, BatteryChargingSegment)
    assert second.start_km == first.end_km
    assert second.battery_before == 25.0
    assert second.battery_after == 100.0
    assert second.charging_hours == 2.0
    assert second.start_time == first.end_time

    assert isinstance(plan.segments[2], DrivingSegment)
    assert plan.charging_hours >= 2.0


def test_control_stop_is_reached_exactly():
    stops = (ControlStop("Checkpoint", 500.0),)
    plan = _plan(_light_car(), _constants(0.001), control_stops=stops)

    drive, stop = plan.segments[0], plan.segments[1]
    assert isinstance(drive, DrivingSegment)
    assert drive.limiting_factor is LimitingFactor.CONTROL_STOP
    assert drive.end_km == 500.0
    assert isinstance(stop, ControlStopSegment)
    assert stop.control_stop_name == "Checkpoint"
    assert stop.distance_km == 0.0
    assert stop.start_km == 500.0
    assert stop.charging_hours == 0.5
    assert stop.battery_before == stop.battery_after == drive.battery_after


def test_segment_ending_just_short_of_stop_snaps_to_it():
    stops = (ControlStop("Checkpoint", 500.0),)
    # 499.95 km of driving time at 80 km/h
    params = _light_car(driving_hours_per_day=499.95 / 80.0)
    plan = _plan(params, _constants(0.001), control_stops=stops)

    drive = plan.segments[0]
    assert drive.limiting_factor is LimitingFactor.DRIVING_TIME
    assert drive.end_km == 500.0
    assert isinstance(plan.segments[1], ControlStopSegment)
    assert plan.current_km == 500.0


def test_battery_limited_segment_snapped_to_stop_keeps_its_own_charge():
    # The pack reaches the threshold at 200 km, 50 m short of the stop
    floor = 0.75 * BATTERY_SPEC.energy_kwh / 200.0
    stops = (ControlStop("Checkpoint", 200.05),)
    plan = _plan(_light_car(), _constants(floor), control_stops=stops)

    drive, stop, charging = plan.segments[:3]
    assert drive.limiting_factor is LimitingFactor.BATTERY
    assert drive.end_km == 200.05
    expected = 100.0 - 200.05 * floor / BATTERY_SPEC.energy_kwh * 100.0
    assert drive.battery_after == pytest.approx(expected)
    assert drive.battery_after < 25.0

    assert isinstance(stop, ControlStopSegment)
    assert stop.battery_before == drive.battery_after
    assert isinstance(charging, BatteryChargingSegment)
    assert charging.battery_before == pytest.approx(expected)


def test_day_ends_when_driving_hours_run_out():
    plan = _plan(_light_car(driving_hours_per_day=2.0), _constants(0.001))
    assert len(plan.segments) == 1
    assert plan.segments[0].limiting_factor is LimitingFactor.DRIVING_TIME
    assert plan.total_distance_km == pytest.approx(160.0)
    assert plan.remaining_distance_km == pytest.approx(840.0)
    assert plan.segments[0].end_time == "12:00:00"


def test_destination_ends_the_day():
    plan = _plan(_light_car(total_distance_km=120.0), _constants(0.001))
    assert plan.remaining_distance_km == 0.0
    assert plan.current_km == pytest.approx(120.0)
    assert plan.segments[-1].limiting_factor is LimitingFactor.DESTINATION


def test_nothing_to_plan_once_arrived():
    params = _light_car()
    plan = _plan(params, _constants(0.001), state=PlannerState(1000.0, 0.0, 80.0))
    assert plan.segments == []
    assert not plan.stalled


def test_stuck_day_is_aborted(monkeypatch):
    # A stop that always sits at the car's position allows no movement at all
    monkeypatch.setattr(
        planner_module,
        "next_control_stop",
        lambda stops, position_km, epsilon_km: ControlStop("Mirage", position_km),
    )
    plan = _plan(_light_car(), _constants(0.001))
    assert plan.stalled
    assert plan.segments == []
    assert plan.current_km == 0.0


def test_driving_segments_never_gain_charge_without_sun():
    floor = 0.75 * BATTERY_SPEC.energy_kwh / 150.0
    plan = _plan(_light_car(), _constants(floor))
    for segment in plan.segments:
        assert 0.0 <= segment.battery_after <= 100.0
        assert segment.end_km >= segment.start_km
        if isinstance(segment, DrivingSegment):
            assert segment.battery_after <= segment.battery_before

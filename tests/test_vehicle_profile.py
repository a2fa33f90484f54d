import math

import pytest

from solar_planner.services.simulation.battery import BATTERY_SPEC
from solar_planner.services.simulation.errors import InvalidParametersError
from solar_planner.services.simulation.motor import MOTOR_SPEC, driving_resistance_n
from solar_planner.services.simulation.vehicle import vehicle_profile


def test_cruise_draw_includes_motor_losses():
    profile = vehicle_profile(80.0)

    assert profile.road_load_n == pytest.approx(driving_resistance_n(80.0))
    assert profile.required_power_kw == pytest.approx(profile.road_load_n * (80.0 / 3.6) / 1000.0)
    assert profile.battery_draw_kw == pytest.approx(profile.required_power_kw / MOTOR_SPEC.efficiency)
    assert profile.endurance_hours == pytest.approx(BATTERY_SPEC.energy_kwh / profile.battery_draw_kw)


def test_motor_output_is_capped_at_high_rpm():
    # 80 km/h turns the motor well past 1.5x nominal rpm
    assert vehicle_profile(80.0).motor_output_kw == pytest.approx(1.5 * MOTOR_SPEC.nominal_power_kw)


def test_range_and_recharge_depend_on_charge():
    full = vehicle_profile(80.0)
    assert full.flat_range_km == pytest.approx(BATTERY_SPEC.energy_kwh * 10.0)
    assert full.full_charge_hours == 0.0

    half = vehicle_profile(80.0, 50.0)
    assert half.flat_range_km == pytest.approx(full.flat_range_km / 2)
    assert half.endurance_hours == pytest.approx(full.endurance_hours / 2)
    assert half.full_charge_hours == pytest.approx(0.6 + 2.0 * math.log(10.0))


def test_climbing_draws_more_power():
    assert vehicle_profile(80.0, slope_pct=4.0).battery_draw_kw > vehicle_profile(80.0).battery_draw_kw


def test_empty_pack_has_no_endurance():
    assert vehicle_profile(60.0, 0.0).endurance_hours == 0.0


def test_invalid_inputs_are_rejected():
    with pytest.raises(InvalidParametersError):
        vehicle_profile(0.0)
    with pytest.raises(InvalidParametersError):
        vehicle_profile(80.0, 120.0)

"""Energy balance helpers: consumption, solar production and battery updates."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from ...models.domain import TerrainPoint
from .battery import BATTERY_SPEC, BatterySpec, clamp_soc, new_soc
from .cancellation import CancellationToken
from .errors import OracleUnavailableError, SimulationCancelledError
from .models import EnergyModelConstants, SimulationParameters
from .motor import energy_consumed_kwh
from .oracles import EnergyProductionOracle
from .terrain import slope_at

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SegmentConsumption:
    total_kwh: float
    motor_kwh: float
    auxiliary_kwh: float
    slope_pct: float
    used_fallback: bool = False


@dataclass(frozen=True, slots=True)
class SegmentProduction:
    solar_kwh: float
    effective_kwh: float


@dataclass(frozen=True, slots=True)
class EnergyBalance:
    net_energy_kwh: float
    battery_change_pct: float
    battery_before: float
    battery_after: float


@dataclass(frozen=True, slots=True)
class MorningCharge:
    battery_before: float
    battery_after: float
    energy_kwh: float
    used_fallback: bool


def segment_energy_consumption(
    distance_km: float,
    params: SimulationParameters,
    terrain: Sequence[TerrainPoint],
    start_km: float,
    constants: EnergyModelConstants,
) -> SegmentConsumption:
    """Energy drawn from the battery to drive ``distance_km`` from ``start_km``.

    The gradient is taken at the start of the stretch. When the motor model
    returns NaN, an infinite or a negative value, the flat
    ``distance / energy_efficiency`` estimate is used and the result is
    flagged with ``used_fallback``.
    """

    slope = slope_at(terrain, start_km, params.default_slope_pct, constants.slope_sample_distance_km)
    if distance_km <= 0:
        return SegmentConsumption(total_kwh=0.0, motor_kwh=0.0, auxiliary_kwh=0.0, slope_pct=slope)

    driving_hours = distance_km / params.average_speed_kmh
    motor_kwh = energy_consumed_kwh(
        distance_km,
        params.average_speed_kmh,
        params.mass_kg,
        params.frontal_area_m2,
        params.drag_coefficient,
        slope,
        electronics_kwh_per_hour=constants.electronics_kwh_per_hour,
        min_consumption_kwh_per_km=constants.min_consumption_kwh_per_km,
    )
    used_fallback = False
    if not math.isfinite(motor_kwh) or motor_kwh < 0:
        fallback_kwh = distance_km / params.energy_efficiency_km_per_kwh
        logger.warning(
            "Motor model returned %r for %.3f km at %.1f km/h (slope %.2f%%); using flat estimate %.4f kWh",
            motor_kwh,
            distance_km,
            params.average_speed_kmh,
            slope,
            fallback_kwh,
        )
        motor_kwh = fallback_kwh
        used_fallback = True

    auxiliary_kwh = driving_hours * constants.auxiliary_kwh_per_hour
    return SegmentConsumption(
        total_kwh=motor_kwh + auxiliary_kwh,
        motor_kwh=motor_kwh,
        auxiliary_kwh=auxiliary_kwh,
        slope_pct=slope,
        used_fallback=used_fallback,
    )


def segment_energy_production(
    driving_hours: float,
    day_total_kwh: float,
    driving_hours_per_day: float,
    constants: EnergyModelConstants,
) -> SegmentProduction:
    """Share of the day's solar yield harvested while driving for ``driving_hours``."""

    if driving_hours <= 0 or driving_hours_per_day <= 0:
        return SegmentProduction(solar_kwh=0.0, effective_kwh=0.0)
    solar_kwh = day_total_kwh * (driving_hours / driving_hours_per_day)
    return SegmentProduction(solar_kwh=solar_kwh, effective_kwh=solar_kwh * constants.solar_efficiency_factor)


def update_battery_level(
    battery_pct: float,
    energy_produced_kwh: float,
    energy_consumed_kwh: float,
    spec: BatterySpec = BATTERY_SPEC,
) -> EnergyBalance:
    net = energy_produced_kwh - energy_consumed_kwh
    return EnergyBalance(
        net_energy_kwh=net,
        battery_change_pct=net / spec.energy_kwh * 100.0,
        battery_before=battery_pct,
        battery_after=new_soc(battery_pct, energy_produced_kwh, energy_consumed_kwh, spec),
    )


def fallback_daily_production_kwh(day: date, constants: EnergyModelConstants) -> float:
    # Vary with the calendar day so a run of failed lookups does not look like a stalled trip.
    return constants.production_fallback_base_kwh + (day.day % constants.production_fallback_spread)


def fallback_morning_charge_pct(day: date, constants: EnergyModelConstants) -> float:
    return constants.morning_charge_fallback_base_pct + (day.day % constants.morning_charge_fallback_spread)


class SolarProductionCache:
    """Memoises oracle answers for one simulation run.

    Keys are ``(date, time fraction, panel area, panel efficiency, MPPT
    efficiency)``. Failed lookups are cached as ``None`` so an unavailable
    oracle is asked only once per key.
    """

    def __init__(
        self,
        oracle: EnergyProductionOracle,
        *,
        panel_area_m2: float,
        panel_efficiency: float,
        mppt_efficiency: float,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.oracle = oracle
        self.panel_area_m2 = panel_area_m2
        self.panel_efficiency = panel_efficiency
        self.mppt_efficiency = mppt_efficiency
        self.cancellation = cancellation
        self._entries: dict[tuple, float | None] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _check_cancelled(self) -> None:
        if self.cancellation is not None:
            self.cancellation.raise_if_cancelled()

    async def lookup(self, day: date, time_fraction: float) -> float | None:
        """Oracle estimate in kWh, or None when the oracle could not answer."""
        key = (day, round(time_fraction, 9), self.panel_area_m2, self.panel_efficiency, self.mppt_efficiency)
        if key in self._entries:
            return self._entries[key]

        self._check_cancelled()
        value: float | None
        try:
            value = float(
                await self.oracle.estimate_energy_production(
                    day,
                    time_fraction,
                    self.panel_area_m2,
                    self.panel_efficiency,
                    self.mppt_efficiency,
                )
            )
            if not math.isfinite(value) or value < 0:
                raise OracleUnavailableError(f"invalid estimate {value!r}")
        except SimulationCancelledError:
            raise
        except Exception as exc:
            logger.warning("Solar production lookup failed for %s (fraction %.3f): %s", day, time_fraction, exc)
            value = None
        self._check_cancelled()

        self._entries[key] = value
        return value


async def daily_production_kwh(
    cache: SolarProductionCache,
    day: date,
    driving_hours_per_day: float,
    constants: EnergyModelConstants,
) -> tuple[float, bool]:
    """Solar yield over the driving window of ``day`` and whether the fallback was used."""

    value = await cache.lookup(day, driving_hours_per_day / 24.0)
    if value is None:
        return fallback_daily_production_kwh(day, constants), True
    return value, False


async def apply_morning_charge(
    cache: SolarProductionCache,
    day: date,
    battery_pct: float,
    constants: EnergyModelConstants,
    spec: BatterySpec = BATTERY_SPEC,
) -> MorningCharge:
    """Charge the pack from the panels during the morning window before driving starts."""

    value = await cache.lookup(day, constants.morning_charge_hours / 24.0)
    if value is None:
        charge_pct = fallback_morning_charge_pct(day, constants)
        after = clamp_soc(battery_pct + charge_pct)
        logger.warning(
            "Morning charge for %s estimated without oracle: %.1f%% -> %.1f%% (+%.1f%%)",
            day,
            battery_pct,
            after,
            charge_pct,
        )
        return MorningCharge(
            battery_before=battery_pct,
            battery_after=after,
            energy_kwh=(after - battery_pct) / 100.0 * spec.energy_kwh,
            used_fallback=True,
        )

    energy = value * constants.solar_efficiency_factor
    after = new_soc(battery_pct, energy, 0.0, spec)
    logger.info("Morning charge for %s: +%.2f kWh, battery %.1f%% -> %.1f%%", day, energy, battery_pct, after)
    return MorningCharge(battery_before=battery_pct, battery_after=after, energy_kwh=energy, used_fallback=False)

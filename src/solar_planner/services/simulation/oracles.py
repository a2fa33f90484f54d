"""Solar energy production estimators consumed by the simulation."""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import date
from typing import Protocol

import httpx

from ...config import settings
from .errors import OracleUnavailableError

logger = logging.getLogger(__name__)


class EnergyProductionOracle(Protocol):
    async def estimate_energy_production(
        self,
        day: date,
        time_fraction: float,
        panel_area_m2: float,
        panel_efficiency: float,
        mppt_efficiency: float,
    ) -> float:
        """Energy (kWh) harvested over ``time_fraction`` of ``day``, after MPPT losses."""
        ...


class StaticEnergyProductionOracle:
    """Weather-independent estimate from a fixed daily insolation.

    The daily yield is spread evenly over ``daylight_hours``; a time fraction
    covering the whole daylight window or more returns the full daily yield.
    """

    def __init__(
        self,
        daily_insolation_kwh_m2: float | None = None,
        daylight_hours: float | None = None,
    ) -> None:
        self.daily_insolation_kwh_m2 = (
            daily_insolation_kwh_m2 if daily_insolation_kwh_m2 is not None else settings.static_daily_insolation_kwh_m2
        )
        self.daylight_hours = daylight_hours if daylight_hours is not None else settings.static_daylight_hours

    async def estimate_energy_production(
        self,
        day: date,
        time_fraction: float,
        panel_area_m2: float,
        panel_efficiency: float,
        mppt_efficiency: float,
    ) -> float:
        daylight_share = min(1.0, max(0.0, time_fraction) * 24.0 / self.daylight_hours)
        return self.daily_insolation_kwh_m2 * panel_area_m2 * panel_efficiency * mppt_efficiency * daylight_share


class HttpEnergyProductionOracle:
    """Async HTTP client for a solar energy estimation service.

    Calls ``GET {base_url}/energy-production`` and expects a JSON body with an
    ``energy_kwh`` number. Server errors, timeouts and network failures are
    retried with exponential backoff; anything left over is raised as
    :class:`OracleUnavailableError`.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.energy_oracle_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("Energy oracle base URL is not configured.")
        self.timeout = timeout if timeout is not None else settings.energy_oracle_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.energy_oracle_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.energy_oracle_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
            transport=self._transport,
        )

    async def estimate_energy_production(
        self,
        day: date,
        time_fraction: float,
        panel_area_m2: float,
        panel_efficiency: float,
        mppt_efficiency: float,
    ) -> float:
        params = {
            "date": day.isoformat(),
            "time_fraction": f"{time_fraction:.6f}",
            "panel_area": panel_area_m2,
            "panel_efficiency": panel_efficiency,
            "mppt_efficiency": mppt_efficiency,
        }
        url = f"{self.base_url}/energy-production"

        async with self._get_client() as client:
            attempt = 0
            while True:
                try:
                    response = await client.get(url, params=params)
                    response.raise_for_status()
                    return _parse_energy(response.json())
                except httpx.HTTPStatusError as exc:
                    if exc.response.status_code < 500:
                        raise OracleUnavailableError(
                            f"Energy oracle rejected request for {day} ({exc.response.status_code})"
                        ) from exc
                    attempt += 1
                    if attempt > self.max_retries:
                        raise OracleUnavailableError(
                            f"Energy oracle failed for {day} after {self.max_retries} retries: {exc}"
                        ) from exc
                except (httpx.TimeoutException, httpx.NetworkError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise OracleUnavailableError(
                            f"Energy oracle at {self.base_url} is not reachable: {exc}"
                        ) from exc
                except ValueError as exc:
                    raise OracleUnavailableError(f"Energy oracle returned an unusable body for {day}: {exc}") from exc

                wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                logger.debug(
                    "Energy oracle request failed, retrying in %.1fs (attempt %d/%d)",
                    wait_time,
                    attempt,
                    self.max_retries,
                )
                await asyncio.sleep(wait_time)


def _parse_energy(payload: object) -> float:
    if not isinstance(payload, dict) or "energy_kwh" not in payload:
        raise ValueError("response missing 'energy_kwh'")
    value = float(payload["energy_kwh"])
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"invalid energy estimate {value!r}")
    return value


def build_energy_oracle() -> EnergyProductionOracle:
    """Oracle selected by configuration: HTTP service when a URL is set, static model otherwise."""
    if settings.energy_oracle_base_url:
        return HttpEnergyProductionOracle()
    return StaticEnergyProductionOracle()


async def check_health(base_url: str | None = None) -> bool:
    """Return True when the configured estimation service answers its health endpoint."""
    base = base_url or settings.energy_oracle_base_url
    if not base:
        return False
    try:
        async with httpx.AsyncClient(timeout=5.0) as client:
            response = await client.get(f"{base.rstrip('/')}/health")
            response.raise_for_status()
            return True
    except httpx.HTTPError:
        return False

"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="SRP_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Solar Race Planner API"
    api_prefix: str = "/api"
    control_stops_file: Path = Field(
        default=Path("data/control_stops.json"),
        description="Control stop waypoints ordered by distance from the start line.",
    )
    terrain_file: Path = Field(
        default=Path("data/terrain.csv"),
        description="Elevation samples along the route.",
    )

    # Energy production oracle
    energy_oracle_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the solar energy estimation service. Static model is used when unset.",
    )
    energy_oracle_timeout_seconds: float = Field(default=10.0, gt=0.0)
    energy_oracle_max_retries: int = Field(default=2, ge=0)
    energy_oracle_backoff_seconds: float = Field(default=0.5, ge=0.0)
    static_daily_insolation_kwh_m2: float = Field(
        default=7.0,
        ge=0.0,
        description="Daily insolation used by the static production model (kWh/m^2/day).",
    )
    static_daylight_hours: float = Field(default=12.0, gt=0.0, le=24.0)

    # Empirical model constants (see EnergyModelConstants)
    solar_efficiency_factor: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Derating applied to harvested solar energy (soiling, heat, wiring).",
    )
    auxiliary_kwh_per_hour: float = Field(default=0.05, ge=0.0)
    electronics_kwh_per_hour: float = Field(default=0.2, ge=0.0)
    min_consumption_kwh_per_km: float = Field(default=0.05, ge=0.0)
    slope_sample_distance_km: float = Field(default=1.0, gt=0.0)
    morning_charge_hours: float = Field(default=4.0, ge=0.0, le=24.0)
    morning_charge_fallback_base_pct: float = Field(default=8.0, ge=0.0)
    morning_charge_fallback_spread: int = Field(default=8, ge=1)
    production_fallback_base_kwh: float = Field(default=6.0, ge=0.0)
    production_fallback_spread: int = Field(default=5, ge=1)
    day_start_hour: float = Field(default=10.0, ge=0.0, lt=24.0)
    control_stop_epsilon_km: float = Field(default=0.1, ge=0.0)
    progress_epsilon_km: float = Field(default=0.001, gt=0.0)
    max_stalled_iterations: int = Field(default=5, ge=1)
    max_stalled_days: int = Field(default=3, ge=1)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("control_stops_file", "terrain_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()

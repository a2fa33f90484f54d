"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings
from ...services.simulation.oracles import check_health as energy_oracle_health_check

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/energy-oracle", status_code=status.HTTP_200_OK)
async def health_energy_oracle() -> dict:
    """Check the solar energy estimation service, if one is configured."""
    if not settings.energy_oracle_base_url:
        return {"service": "energy-oracle", "configured": False, "healthy": True, "mode": "static"}
    try:
        healthy = await energy_oracle_health_check()
        return {"service": "energy-oracle", "configured": True, "healthy": healthy, "mode": "http"}
    except Exception as e:
        return {"service": "energy-oracle", "configured": True, "healthy": False, "error": str(e)}

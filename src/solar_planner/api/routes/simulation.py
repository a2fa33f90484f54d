"""Simulation endpoints."""

from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import Response

from ...data.route_repository import load_control_stops
from ...schemas.simulation import (
    ControlStopModel,
    ControlStopsResponse,
    RouteItineraryResponse,
    SimulationRequest,
    VehicleProfileResponse,
)
from ...services.outputs.itinerary_formatter import itinerary_to_csv, itinerary_to_json
from ...services.simulation.models import RouteItinerary
from ...services.simulation.service import create_route_itinerary
from ...services.simulation.vehicle import vehicle_profile

router = APIRouter(prefix="/simulation", tags=["simulation"])


async def _run(payload: SimulationRequest) -> RouteItinerary:
    try:
        return await create_route_itinerary(
            payload.to_parameters(),
            terrain=None if payload.use_terrain else (),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error simulating itinerary: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to simulate itinerary: {str(exc)}"
        ) from exc


@router.post("/itinerary", response_model=RouteItineraryResponse, status_code=status.HTTP_200_OK)
async def simulate_itinerary(payload: SimulationRequest) -> RouteItineraryResponse:
    itinerary = await _run(payload)
    return RouteItineraryResponse.model_validate(itinerary_to_json(itinerary))


@router.post("/itinerary.csv", status_code=status.HTTP_200_OK)
async def simulate_itinerary_csv(payload: SimulationRequest) -> Response:
    """Same simulation as ``/itinerary``, rendered as one CSV row per segment."""
    itinerary = await _run(payload)
    return Response(
        content=itinerary_to_csv(itinerary),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="itinerary_{payload.start_date.isoformat()}.csv"'},
    )


@router.get("/control-stops", response_model=ControlStopsResponse, status_code=status.HTTP_200_OK)
def get_control_stops() -> ControlStopsResponse:
    try:
        stops = load_control_stops()
    except (FileNotFoundError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return ControlStopsResponse(
        control_stops=[
            ControlStopModel(name=stop.name, distance_from_start_km=stop.distance_from_start_km)
            for stop in stops
        ],
        total=len(stops),
    )


@router.get("/vehicle", response_model=VehicleProfileResponse, status_code=status.HTTP_200_OK)
def get_vehicle_profile(
    speed_kmh: float = Query(80.0, gt=0, le=200),
    battery_pct: float = Query(100.0, ge=0, le=100),
    slope_pct: float = Query(0.0, ge=-30, le=30),
) -> VehicleProfileResponse:
    """Pack and motor datasheet values with the cruise figures at ``speed_kmh``."""
    try:
        profile = vehicle_profile(speed_kmh, battery_pct, slope_pct=slope_pct)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return VehicleProfileResponse.model_validate(asdict(profile))

"""Serializers for itinerary outputs."""

from __future__ import annotations

import csv
import io
from dataclasses import asdict
from enum import Enum

from ..simulation.models import RouteItinerary, RouteSegment


def _plain(value):
    if isinstance(value, Enum):
        return value.value
    return value


def segment_to_json(segment: RouteSegment) -> dict:
    payload = {key: _plain(value) for key, value in asdict(segment).items()}
    payload["kind"] = segment.kind.value
    payload["distance_km"] = segment.distance_km
    return payload


def itinerary_to_json(itinerary: RouteItinerary) -> dict:
    return {
        "status": itinerary.status.value,
        "termination_reason": itinerary.termination_reason,
        "target_distance_km": itinerary.target_distance_km,
        "total_distance_km": itinerary.total_distance_km,
        "total_days": itinerary.total_days,
        "total_energy_production_kwh": itinerary.total_energy_production_kwh,
        "total_energy_consumption_kwh": itinerary.total_energy_consumption_kwh,
        "total_charging_hours": itinerary.total_charging_hours,
        "average_battery_pct": itinerary.average_battery_pct,
        "estimated_arrival_date": itinerary.estimated_arrival_date.isoformat(),
        "estimated_arrival_time": itinerary.estimated_arrival_time,
        "control_stops": [
            {"name": stop.name, "distance_from_start_km": stop.distance_from_start_km}
            for stop in itinerary.control_stops
        ],
        "days": [
            {
                "day_index": day.day_index,
                "date": day.date.isoformat(),
                "start_km": day.start_km,
                "end_km": day.end_km,
                "total_distance_km": day.total_distance_km,
                "energy_production_kwh": day.energy_production_kwh,
                "energy_consumption_kwh": day.energy_consumption_kwh,
                "start_battery_pct": day.start_battery_pct,
                "end_battery_pct": day.end_battery_pct,
                "total_charging_hours": day.total_charging_hours,
                "net_slope_pct": day.net_slope_pct,
                "reached_max_days": day.reached_max_days,
                "segments": [segment_to_json(segment) for segment in day.segments],
            }
            for day in itinerary.days
        ],
    }


def itinerary_to_csv(itinerary: RouteItinerary) -> str:
    """One row per segment, with the owning day's date and index."""
    buffer = io.StringIO()
    fieldnames = [
        "day_index",
        "date",
        "kind",
        "start_km",
        "end_km",
        "distance_km",
        "start_time",
        "end_time",
        "battery_before",
        "battery_after",
        "energy_consumed_kwh",
        "energy_produced_kwh",
        "slope_pct",
        "limiting_factor",
        "control_stop_name",
        "charging_hours",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames, extrasaction="ignore")
    writer.writeheader()
    for day in itinerary.days:
        for segment in day.segments:
            row = segment_to_json(segment)
            row["day_index"] = day.day_index
            row["date"] = day.date.isoformat()
            writer.writerow(row)
    return buffer.getvalue()

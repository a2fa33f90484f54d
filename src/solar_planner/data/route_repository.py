"""Data access helpers for loading static route reference data."""

from __future__ import annotations

import csv
import functools
import json
import logging
from pathlib import Path
from typing import Optional

from ..config import settings
from ..models.domain import ControlStop, TerrainPoint
from ..services.geospatial import cumulative_distances_km

logger = logging.getLogger(__name__)


def _coerce_float(value: Optional[str]) -> Optional[float]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return float(str(value).replace(",", ""))
    except ValueError as exc:
        raise ValueError(f"Unable to parse float from value '{value}'") from exc


@functools.lru_cache(maxsize=4)
def load_control_stops(source: Optional[Path] = None) -> tuple[ControlStop, ...]:
    """Load control stops from the configured JSON file, sorted by distance."""

    json_path = (source or settings.control_stops_file)
    if not json_path.exists():
        raise FileNotFoundError(f"Control stop file not found: {json_path}")

    with json_path.open(mode="r", encoding="utf-8") as handle:
        payload = json.load(handle)

    records = payload.get("control_stops") if isinstance(payload, dict) else payload
    if not isinstance(records, list):
        raise ValueError(f"Control stop file '{json_path}' must contain a 'control_stops' list.")

    stops: list[ControlStop] = []
    for record in records:
        try:
            name = str(record["name"]).strip()
            distance = float(record.get("distance", record.get("distance_from_start_km")))
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Invalid control stop record {record!r} in '{json_path}'") from exc
        if distance < 0:
            raise ValueError(f"Control stop '{name}' has a negative distance ({distance}).")
        stops.append(ControlStop(name=name, distance_from_start_km=distance))

    stops.sort(key=lambda stop: stop.distance_from_start_km)
    logger.info("Loaded %d control stops from %s", len(stops), json_path)
    return tuple(stops)


@functools.lru_cache(maxsize=4)
def load_terrain_samples(source: Optional[Path] = None) -> tuple[TerrainPoint, ...]:
    """Load terrain samples from the configured CSV file.

    The ``distance_km`` column is optional; when absent, distances are
    accumulated along the samples with the haversine formula.
    """

    csv_path = (source or settings.terrain_file)
    if not csv_path.exists():
        raise FileNotFoundError(f"Terrain file not found: {csv_path}")

    rows: list[dict] = []
    with csv_path.open(mode="r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            raise ValueError(f"Terrain file '{csv_path}' is missing a header row.")
        missing_columns = {"latitude", "longitude", "elevation"} - {name.strip().lower() for name in reader.fieldnames}
        if missing_columns:
            raise ValueError(f"Terrain file missing columns: {', '.join(sorted(missing_columns))}")
        for row in reader:
            normalized = {key.strip().lower(): value for key, value in row.items() if key}
            lat = _coerce_float(normalized.get("latitude"))
            lon = _coerce_float(normalized.get("longitude"))
            elevation = _coerce_float(normalized.get("elevation"))
            if lat is None or lon is None or elevation is None:
                continue  # ignore incomplete samples
            normalized["_lat"] = lat
            normalized["_lon"] = lon
            normalized["_elevation"] = elevation
            rows.append(normalized)

    distances = [_coerce_float(row.get("distance_km")) for row in rows]
    if any(distance is None for distance in distances):
        logger.info("Terrain file %s has no usable distance_km column; deriving distances", csv_path)
        distances = cumulative_distances_km([(row["_lat"], row["_lon"]) for row in rows])

    samples = [
        TerrainPoint(
            latitude=row["_lat"],
            longitude=row["_lon"],
            elevation_m=row["_elevation"],
            distance_km=distance,
            city=(row.get("city") or "").strip() or None,
            weather_location=(row.get("weather_loc") or "").strip() or None,
        )
        for row, distance in zip(rows, distances)
    ]
    samples.sort(key=lambda point: point.distance_km)
    logger.info("Loaded %d terrain samples from %s", len(samples), csv_path)
    return tuple(samples)

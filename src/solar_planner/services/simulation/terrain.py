"""Road gradient lookups over the route's terrain samples."""

from __future__ import annotations

import bisect
from typing import Sequence

from ...models.domain import TerrainPoint


def _grade_pct(start: TerrainPoint, end: TerrainPoint) -> float | None:
    distance_diff_km = end.distance_km - start.distance_km
    if distance_diff_km <= 0:
        return None
    return (end.elevation_m - start.elevation_m) / (distance_diff_km * 1000.0) * 100.0


def _nearest_index(terrain: Sequence[TerrainPoint], distance_km: float) -> int:
    distances = [point.distance_km for point in terrain]
    position = bisect.bisect_left(distances, distance_km)
    if position == 0:
        return 0
    if position >= len(terrain):
        return len(terrain) - 1
    before, after = terrain[position - 1], terrain[position]
    if abs(after.distance_km - distance_km) < abs(distance_km - before.distance_km):
        return position
    return position - 1


def slope_at(
    terrain: Sequence[TerrainPoint],
    distance_km: float,
    default_slope_pct: float = 0.0,
    sample_distance_km: float = 1.0,
) -> float:
    """Road gradient (%) at a distance along the route.

    Anchors on the nearest sample and measures the rise over the next
    ``sample_distance_km``; at the end of the data the previous interval is
    used instead. Returns ``default_slope_pct`` when no gradient can be derived.
    Samples must be sorted by ``distance_km``.
    """

    if not terrain:
        return default_slope_pct

    current = _nearest_index(terrain, distance_km)

    forward = current
    while (
        forward < len(terrain) - 1
        and terrain[forward].distance_km - terrain[current].distance_km < sample_distance_km
    ):
        forward += 1
    if forward > current:
        grade = _grade_pct(terrain[current], terrain[forward])
        if grade is not None:
            return grade

    if current > 0:
        grade = _grade_pct(terrain[current - 1], terrain[current])
        if grade is not None:
            return grade

    return default_slope_pct


def segment_slope(terrain: Sequence[TerrainPoint], start_km: float, end_km: float) -> float:
    """Average gradient (%) between the samples nearest to both ends of a stretch."""

    if not terrain or start_km >= end_km:
        return 0.0
    start = terrain[_nearest_index(terrain, start_km)]
    end = terrain[_nearest_index(terrain, end_km)]
    grade = _grade_pct(start, end)
    return grade if grade is not None else 0.0

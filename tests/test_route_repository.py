import json
from pathlib import Path

import pytest

from solar_planner.data.route_repository import load_control_stops, load_terrain_samples

DATA_DIR = Path(__file__).resolve().parents[1] / "data"


@pytest.fixture(autouse=True)
def clear_route_cache():
    load_control_stops.cache_clear()
    load_terrain_samples.cache_clear()
    yield
    load_control_stops.cache_clear()
    load_terrain_samples.cache_clear()


def test_bundled_control_stops():
    stops = load_control_stops(DATA_DIR / "control_stops.json")
    assert len(stops) == 10
    assert stops[0].name == "Katherine"
    assert stops[0].distance_from_start_km == 322
    assert stops[-1].name == "Port Augusta"
    distances = [stop.distance_from_start_km for stop in stops]
    assert distances == sorted(distances)


def test_control_stops_are_sorted(tmp_path: Path):
    source = tmp_path / "stops.json"
    source.write_text(
        json.dumps({"control_stops": [{"name": "B", "distance": 900}, {"name": "A", "distance": 120.5}]}),
        encoding="utf-8",
    )
    stops = load_control_stops(source)
    assert [stop.name for stop in stops] == ["A", "B"]
    assert stops[0].distance_from_start_km == 120.5


def test_control_stops_accept_bare_list(tmp_path: Path):
    source = tmp_path / "stops.json"
    source.write_text(json.dumps([{"name": "Only", "distance_from_start_km": 42}]), encoding="utf-8")
    stops = load_control_stops(source)
    assert stops[0].name == "Only"
    assert stops[0].distance_from_start_km == 42.0


def test_control_stops_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_control_stops(tmp_path / "missing.json")


def test_control_stops_reject_bad_records(tmp_path: Path):
    source = tmp_path / "stops.json"
    source.write_text(json.dumps({"control_stops": [{"name": "Nowhere"}]}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_control_stops(source)

    source.write_text(json.dumps({"control_stops": [{"name": "Behind", "distance": -3}]}), encoding="utf-8")
    load_control_stops.cache_clear()
    with pytest.raises(ValueError):
        load_control_stops(source)


def test_bundled_terrain_samples():
    samples = load_terrain_samples(DATA_DIR / "terrain.csv")
    assert samples[0].city == "Darwin"
    assert samples[0].distance_km == 0
    assert samples[-1].distance_km == pytest.approx(3022)
    distances = [sample.distance_km for sample in samples]
    assert distances == sorted(distances)


def test_terrain_distances_derived_when_missing(tmp_path: Path):
    source = tmp_path / "terrain.csv"
    source.write_text(
        "Latitude,Longitude,Elevation\n"
        "0,0,10\n"
        "0,1,20\n"
        ",,\n",
        encoding="utf-8",
    )
    samples = load_terrain_samples(source)
    assert len(samples) == 2
    assert samples[0].distance_km == 0.0
    assert samples[1].distance_km == pytest.approx(111.19, rel=1e-3)
    assert samples[1].elevation_m == 20.0
    assert samples[1].city is None


def test_terrain_requires_core_columns(tmp_path: Path):
    source = tmp_path / "terrain.csv"
    source.write_text("latitude,longitude\n0,0\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_terrain_samples(source)

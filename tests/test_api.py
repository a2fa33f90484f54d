from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from solar_planner.api.routes import simulation as simulation_routes
from solar_planner.config import settings
from solar_planner.data.route_repository import load_control_stops, load_terrain_samples
from solar_planner.main import create_app
from solar_planner.services.simulation.errors import InvalidParametersError

DATA_DIR = Path(__file__).resolve().parents[1] / "data"


@pytest.fixture(autouse=True)
def bundled_route_data(monkeypatch):
    monkeypatch.setattr(settings, "control_stops_file", DATA_DIR / "control_stops.json")
    monkeypatch.setattr(settings, "terrain_file", DATA_DIR / "terrain.csv")
    monkeypatch.setattr(settings, "energy_oracle_base_url", None)
    load_control_stops.cache_clear()
    load_terrain_samples.cache_clear()
    yield
    load_control_stops.cache_clear()
    load_terrain_samples.cache_clear()


@pytest.fixture
def client():
    return TestClient(create_app())


def test_root_and_health(client):
    root = client.get("/")
    assert root.status_code == 200
    assert root.json()["health"] == "/api/health"

    health = client.get("/api/health")
    assert health.status_code == 200
    assert health.json() == {"status": "ok"}


def test_energy_oracle_health_in_static_mode(client):
    response = client.get("/api/health/energy-oracle")
    assert response.status_code == 200
    assert response.json()["mode"] == "static"


def test_vehicle_profile_endpoint(client):
    response = client.get("/api/simulation/vehicle", params={"speed_kmh": 60, "battery_pct": 50})
    assert response.status_code == 200
    body = response.json()
    assert body["speed_kmh"] == 60.0
    assert body["battery"]["energy_kwh"] == 2.9484
    assert body["motor"]["efficiency"] == 0.95
    assert body["battery_draw_kw"] == pytest.approx(body["required_power_kw"] / 0.95)
    assert body["endurance_hours"] == pytest.approx(0.5 * 2.9484 / body["battery_draw_kw"])
    assert body["full_charge_hours"] > 0

    rejected = client.get("/api/simulation/vehicle", params={"speed_kmh": 0})
    assert rejected.status_code == 422


def test_control_stops_endpoint(client):
    response = client.get("/api/simulation/control-stops")
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 10
    assert body["control_stops"][0] == {"name": "Katherine", "distance_from_start_km": 322.0}


def test_simulate_itinerary(client):
    response = client.post(
        "/api/simulation/itinerary",
        json={"start_date": "2025-08-24", "total_distance_km": 400, "max_days": 10},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "destination_reached"
    assert body["total_distance_km"] == pytest.approx(400.0)
    assert body["total_days"] == len(body["days"])
    assert body["days"][0]["date"] == "2025-08-24"

    kinds = {segment["kind"] for day in body["days"] for segment in day["segments"]}
    assert {"Driving", "ControlStop", "BatteryCharging"} <= kinds
    stops = [
        segment["control_stop_name"]
        for day in body["days"]
        for segment in day["segments"]
        if segment["kind"] == "ControlStop"
    ]
    assert stops == ["Katherine"]


def test_simulate_itinerary_without_terrain(client):
    response = client.post(
        "/api/simulation/itinerary",
        json={"start_date": "2025-08-24", "total_distance_km": 100, "use_terrain": False, "default_slope_pct": 0},
    )
    assert response.status_code == 200
    segments = response.json()["days"][0]["segments"]
    assert all(segment["slope_pct"] == 0.0 for segment in segments if segment["kind"] == "Driving")


def test_simulate_itinerary_csv(client):
    response = client.post(
        "/api/simulation/itinerary.csv",
        json={"start_date": "2025-08-24", "total_distance_km": 100},
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "itinerary_2025-08-24.csv" in response.headers["content-disposition"]
    assert response.text.splitlines()[0].startswith("day_index,date,kind,start_km")


def test_request_validation(client):
    response = client.post("/api/simulation/itinerary", json={"start_date": "2025-08-24", "average_speed_kmh": 0})
    assert response.status_code == 422

    response = client.post("/api/simulation/itinerary", json={"total_distance_km": 10})
    assert response.status_code == 422


def test_invalid_parameters_map_to_bad_request(client, monkeypatch):
    async def reject(params, **kwargs):
        raise InvalidParametersError(["max_days must be >= 1"])

    monkeypatch.setattr(simulation_routes, "create_route_itinerary", reject)
    response = client.post("/api/simulation/itinerary", json={"start_date": "2025-08-24"})
    assert response.status_code == 400
    assert "max_days" in response.json()["detail"]


def test_unexpected_errors_map_to_server_error(client, monkeypatch):
    async def explode(params, **kwargs):
        raise RuntimeError("solver crashed")

    monkeypatch.setattr(simulation_routes, "create_route_itinerary", explode)
    response = client.post("/api/simulation/itinerary", json={"start_date": "2025-08-24"})
    assert response.status_code == 500
    assert "solver crashed" in response.json()["detail"]

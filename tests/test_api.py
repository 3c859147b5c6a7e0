# tests/test_api.py
import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import FakeDirections
from route_planner.core.errors import NoRouteFound
from route_planner.main import create_app
from route_planner.services.directions_client import DirectionsClient
from route_planner.services.geocoding_client import DebouncedSearch, GeocodingClient
from route_planner.services.planner import RoutePlanner


def _geocoder(handler) -> GeocodingClient:
    return GeocodingClient(
        access_token="test-token",
        base_url="https://api.example.test",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.fixture
def directions() -> FakeDirections:
    return FakeDirections()


@pytest.fixture
def client(directions, places_payload) -> TestClient:
    search = DebouncedSearch(
        _geocoder(lambda request: httpx.Response(200, json=places_payload)),
        delay_s=0,
    )
    return TestClient(create_app(planner=RoutePlanner(directions=directions), search=search))


def test_click_flow_builds_a_route(client, directions):
    first = client.post("/planner/waypoints", json={"lat": 37.7749, "lon": -122.4194})
    assert first.status_code == 200
    assert first.json()["state"] == "awaiting_second_point"
    assert directions.calls == []

    second = client.post("/planner/waypoints", json={"lat": 37.78, "lon": -122.41})
    data = second.json()
    assert data["state"] == "ready"
    assert [r["distance_text"] for r in data["routes"]] == ["1.5km", "1.8km"]
    assert len(data["waypoints"]) == 2

    kinds = [f["geometry"]["type"] for f in data["overlays"]["features"]]
    assert kinds.count("LineString") == 2
    assert kinds.count("Point") == 2


def test_selection_and_step_highlight(client):
    client.post("/planner/waypoints", json={"lat": 37.7749, "lon": -122.4194})
    client.post("/planner/waypoints", json={"lat": 37.78, "lon": -122.41})

    selected = client.post("/planner/selection", json={"index": 1}).json()
    assert selected["selected_index"] == 1

    highlighted = client.post("/planner/active-step", json={"leg_index": 0, "step_index": 1}).json()
    assert highlighted["active_step"] == {"leg_index": 0, "step_index": 1}
    assert highlighted["steps"][1]["active"] is True

    bad = client.post("/planner/selection", json={"index": 9})
    assert bad.status_code == 422


def test_selection_before_route_is_a_conflict(client):
    response = client.post("/planner/selection", json={"index": 0})
    assert response.status_code == 409


def test_failure_is_reported_not_raised(client, directions):
    directions.queue(NoRouteFound("No route found between these points."))
    client.post("/planner/waypoints", json={"lat": 37.7749, "lon": -122.4194})
    response = client.post("/planner/waypoints", json={"lat": 37.78, "lon": -122.41})

    assert response.status_code == 200
    assert response.json()["state"] == "error"
    assert response.json()["error"] == "No route found between these points."


def test_preferences_profile_and_reset(client, directions):
    client.post("/planner/waypoints", json={"lat": 37.7749, "lon": -122.4194})
    client.post("/planner/waypoints", json={"lat": 37.78, "lon": -122.41})

    prefs = client.put(
        "/planner/preferences",
        json={"hills": "avoid", "route_type": "quietest", "surface": "paved"},
    ).json()
    assert prefs["preferences"]["hills"] == "avoid"
    assert directions.calls[-1][1].surface.value == "paved"

    profile = client.put("/planner/profile", json={"profile": "walking"}).json()
    assert profile["profile"] == "walking"

    reset = client.post("/planner/reset").json()
    assert reset["state"] == "empty"
    assert reset["overlays"]["features"] == []


def test_invalid_coordinate_is_rejected(client):
    response = client.post("/planner/waypoints", json={"lat": 123.0, "lon": 0.0})
    assert response.status_code == 422


def test_move_unknown_waypoint(client):
    response = client.put("/planner/waypoints/3", json={"lat": 37.0, "lon": -122.0})
    assert response.status_code == 422


def test_imperial_units(client):
    client.post("/planner/waypoints", json={"lat": 37.7749, "lon": -122.4194})
    client.post("/planner/waypoints", json={"lat": 37.78, "lon": -122.41})
    data = client.get("/planner/", params={"unit": "mi"}).json()
    assert data["routes"][0]["distance_text"] == "4921ft"
    assert data["routes"][1]["distance_text"] == "1.1mi"


def test_search_endpoint(client):
    data = client.get("/search/", params={"q": "Paris"}).json()
    assert data["superseded"] is False
    assert data["results"][0]["description"] == "Paris, France"

    blank = client.get("/search/", params={"q": "  "}).json()
    assert blank["results"] == []


def test_search_provider_failure_is_bad_gateway(directions):
    search = DebouncedSearch(
        _geocoder(lambda request: httpx.Response(503, json={"message": "unavailable"})),
        delay_s=0,
    )
    client = TestClient(create_app(planner=RoutePlanner(directions=directions), search=search))

    response = client.get("/search/", params={"q": "Paris"})
    assert response.status_code == 502


def test_unreadable_search_payload_is_bad_gateway(directions):
    search = DebouncedSearch(
        _geocoder(lambda request: httpx.Response(200, json={"features": [{"id": "a", "center": [2.35]}]})),
        delay_s=0,
    )
    client = TestClient(create_app(planner=RoutePlanner(directions=directions), search=search))

    response = client.get("/search/", params={"q": "Paris"})
    assert response.status_code == 502


def test_unreadable_route_payload_is_reported_not_raised():
    payload = {"code": "Ok", "routes": [{"geometry": {"coordinates": [[-122.4]]}, "legs": []}]}
    directions = DirectionsClient(
        access_token="test-token",
        base_url="https://api.example.test",
        http_client=httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
        ),
    )
    client = TestClient(create_app(planner=RoutePlanner(directions=directions)))

    client.post("/planner/waypoints", json={"lat": 37.7749, "lon": -122.4194})
    response = client.post("/planner/waypoints", json={"lat": 37.78, "lon": -122.41})

    assert response.status_code == 200
    assert response.json()["state"] == "error"
    assert response.json()["error"] == "Directions service returned an unreadable route."


def test_negative_step_index_is_rejected(client):
    client.post("/planner/waypoints", json={"lat": 37.7749, "lon": -122.4194})
    client.post("/planner/waypoints", json={"lat": 37.78, "lon": -122.41})

    response = client.post("/planner/active-step", json={"leg_index": -1, "step_index": -1})
    assert response.status_code == 422

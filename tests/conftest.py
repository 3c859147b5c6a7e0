# tests/conftest.py
import asyncio
import os
import sys
from typing import Any, List, Optional, Sequence, Tuple

import pytest

# Add the project root directory to sys.path so that "import route_planner" works
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from route_planner.models.routing import (  # noqa: E402
    Coordinate,
    DirectionsResult,
    Maneuver,
    Route,
    RouteLeg,
    RoutePreferences,
    RouteProfile,
    RouteStep,
)

# Around San Francisco
POINT_A = Coordinate(lat=37.7749, lon=-122.4194)
POINT_B = Coordinate(lat=37.7800, lon=-122.4100)
POINT_C = Coordinate(lat=37.7900, lon=-122.4000)


def build_route(
    distance_m: float = 1500.0,
    duration_s: float = 300.0,
    points: Sequence[Coordinate] = (POINT_A, POINT_B),
) -> Route:
    """A single-leg route whose two steps split the totals evenly."""
    steps = [
        RouteStep(
            maneuver=Maneuver(
                instruction="Head <b>north</b> on Market&nbsp;Street",
                type="depart",
                location=points[0],
            ),
            distance_m=distance_m / 2,
            duration_s=duration_s / 2,
            name="Market Street",
            mode="cycling",
            geometry=list(points[:2]),
        ),
        RouteStep(
            maneuver=Maneuver(
                instruction="Turn left onto Valencia Street bike lane",
                type="turn",
                modifier="left",
                location=points[-1],
            ),
            distance_m=distance_m / 2,
            duration_s=duration_s / 2,
            name="Valencia Street bike lane",
            mode="cycling",
            geometry=list(points[-2:]),
        ),
    ]
    return Route(
        distance_m=distance_m,
        duration_s=duration_s,
        geometry=list(points),
        legs=[RouteLeg(steps=steps, distance_m=distance_m, duration_s=duration_s, summary="Market Street")],
    )


def build_result(*distances: float) -> DirectionsResult:
    routes = [build_route(distance_m=d) for d in (distances or (1500.0,))]
    return DirectionsResult(main=routes[0], alternatives=routes[1:])


class FakeDirections:
    """
    Stand-in for DirectionsClient. Outcomes are consumed in call order;
    an outcome may be a DirectionsResult, an exception, or a held result
    that only resolves once its event is set.
    """

    def __init__(self, default: Optional[DirectionsResult] = None) -> None:
        self.default = default or build_result(1500.0, 1800.0)
        self.outcomes: List[Any] = []
        self.calls: List[Tuple[List[Coordinate], RoutePreferences, Optional[RouteProfile]]] = []

    def queue(self, outcome: Any) -> None:
        self.outcomes.append(outcome)

    def hold(self, result: DirectionsResult) -> asyncio.Event:
        release = asyncio.Event()
        self.outcomes.append((release, result))
        return release

    async def fetch_route(self, coordinates, preferences, profile=None) -> DirectionsResult:
        self.calls.append((list(coordinates), preferences, profile))
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, tuple):
            release, outcome = outcome
            await release.wait()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def fake_directions() -> FakeDirections:
    return FakeDirections()


@pytest.fixture
def directions_payload() -> dict:
    """Minimal Mapbox Directions v5 response with one alternative."""

    def route(distance: float, duration: float) -> dict:
        return {
            "distance": distance,
            "duration": duration,
            "weight": duration,
            "weight_name": "cyclability",
            "geometry": {
                "type": "LineString",
                "coordinates": [[-122.4194, 37.7749], [-122.41, 37.78]],
            },
            "legs": [
                {
                    "distance": distance,
                    "duration": duration,
                    "summary": "Market Street",
                    "steps": [
                        {
                            "distance": distance,
                            "duration": duration,
                            "name": "Market Street",
                            "mode": "cycling",
                            "geometry": {
                                "type": "LineString",
                                "coordinates": [[-122.4194, 37.7749], [-122.41, 37.78]],
                            },
                            "maneuver": {
                                "instruction": "Head northeast on Market Street",
                                "type": "depart",
                                "location": [-122.4194, 37.7749],
                            },
                        }
                    ],
                }
            ],
        }

    return {"code": "Ok", "routes": [route(1500.0, 300.0), route(1800.0, 360.0)], "waypoints": []}


@pytest.fixture
def places_payload() -> dict:
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "id": "place.123",
                "text": "Paris",
                "place_name": "Paris, France",
                "center": [2.3522, 48.8566],
            },
            {
                "id": "place.456",
                "text": "Paris",
                "place_name": "Paris, Texas, United States",
                "center": [-95.5555, 33.6609],
            },
        ],
    }

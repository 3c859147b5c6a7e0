# tests/test_formatting.py
import pytest

from conftest import POINT_A, POINT_B, build_route
from route_planner.models.routing import Coordinate, DistanceUnit, Maneuver, RouteStep
from route_planner.services.formatting import (
    FRIENDLY_ROAD,
    REGULAR_ROAD,
    SAFEST_PATH,
    SHARED_ROAD,
    analyze_route,
    clean_instruction,
    elevation_stats,
    format_distance,
    format_duration,
    is_near,
    path_type_info,
)


@pytest.mark.parametrize(
    "meters, expected",
    [(1500, "1.5km"), (1000, "1.0km"), (450, "450m"), (999.4, "999m"), (0, "0m")],
)
def test_format_distance_metric(meters, expected):
    assert format_distance(meters) == expected


def test_format_distance_imperial():
    assert format_distance(3218.688, DistanceUnit.MI) == "2.0mi"
    assert format_distance(150, DistanceUnit.MI) == "492ft"


@pytest.mark.parametrize(
    "seconds, expected",
    [(3661, "1h 1m"), (90, "1m"), (30, "0m"), (7200, "2h 0m"), (3599, "59m")],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_clean_instruction_strips_markup_and_entities():
    text = "Turn <b>left</b> onto&nbsp;Main&amp;2nd   Street "
    assert clean_instruction(text) == "Turn left onto Main&2nd Street"
    assert clean_instruction("") == ""


def _step(mode: str, name: str) -> RouteStep:
    return RouteStep(
        maneuver=Maneuver(instruction="Go", type="continue", location=POINT_A),
        distance_m=100.0,
        duration_s=20.0,
        name=name,
        mode=mode,
    )


def test_path_type_info_classifies_steps():
    assert path_type_info(_step("cycleway", "")) is SAFEST_PATH
    assert path_type_info(_step("road", "Green Trail")) is SAFEST_PATH
    assert path_type_info(_step("residential", "Elm St")) is FRIENDLY_ROAD
    assert path_type_info(_step("primary", "Main St")) is SHARED_ROAD
    assert path_type_info(_step("motorway", "I-80")) is REGULAR_ROAD


def test_analyze_route_weights_safety_by_distance():
    route = build_route(distance_m=1000.0)
    # first step "Market Street"/cycling → regular road; second named "... bike lane" → bike path
    analysis = analyze_route(route)

    shares = {share.type: share for share in analysis.path_types}
    assert shares["Dedicated bike path"].percentage == pytest.approx(50.0)
    assert shares["Regular road"].distance_m == pytest.approx(500.0)
    assert analysis.safety_score == pytest.approx((1.0 * 500 + 0.4 * 500) / 1000)
    assert analysis.elevation is None


def test_elevation_stats_assume_ten_metre_spacing():
    stats = elevation_stats([10.0, 11.0, 10.5, 12.5])
    assert stats.total_ascent == pytest.approx(3.0)
    assert stats.total_descent == pytest.approx(0.5)
    assert stats.max_gradient == pytest.approx(20.0)
    assert stats.average_gradient == pytest.approx((10.0 + 5.0 + 20.0) / 3)
    assert elevation_stats([5.0]).total_ascent == 0.0


def test_is_near_uses_great_circle_distance():
    close = Coordinate(lat=POINT_A.lat + 0.0005, lon=POINT_A.lon)
    assert is_near(POINT_A, close)
    assert not is_near(POINT_A, POINT_B)
    assert is_near(POINT_A, POINT_B, radius_km=2.0)

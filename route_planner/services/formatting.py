# route_planner/services/formatting.py
"""
Display helpers for distances, durations and turn instructions, plus a
light-weight route analysis (path types, safety score, elevation stats).

Everything here is pure: no I/O and no planner state.
"""

import html
import math
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from route_planner.models.routing import Coordinate, DistanceUnit, Route, RouteStep

METERS_PER_MILE = 1609.344
FEET_PER_METER = 3.28084
EARTH_RADIUS_KM = 6371.0

# Elevation samples are assumed to be this far apart
ELEVATION_SAMPLE_SPACING_M = 10.0

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def format_distance(meters: float, unit: DistanceUnit = DistanceUnit.KM) -> str:
    """
    1500 -> "1.5km", 450 -> "450m"; imperial: "2.0mi", short distances in "ft".
    """
    if unit == DistanceUnit.MI:
        miles = meters / METERS_PER_MILE
        if miles >= 1:
            return f"{miles:.1f}mi"
        return f"{int(round(meters * FEET_PER_METER))}ft"

    if meters >= 1000:
        return f"{meters / 1000:.1f}km"
    return f"{int(round(meters))}m"


def format_duration(seconds: float) -> str:
    """
    3661 -> "1h 1m", 90 -> "1m". Seconds are truncated, never rounded up.
    """
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def clean_instruction(text: str) -> str:
    """Strip markup and entities from a provider instruction."""
    text = html.unescape(text or "")
    text = _TAG_RE.sub("", text)
    return _WS_RE.sub(" ", text).strip()


# ---------------------------------------------------------------------- #
# Route analysis
# ---------------------------------------------------------------------- #

@dataclass(frozen=True)
class PathTypeInfo:
    color: str
    description: str
    safety_score: float


SAFEST_PATH = PathTypeInfo("#22c55e", "Dedicated bike path", 1.0)
FRIENDLY_ROAD = PathTypeInfo("#3b82f6", "Bike-friendly road", 0.8)
SHARED_ROAD = PathTypeInfo("#eab308", "Shared road with bike accommodation", 0.6)
REGULAR_ROAD = PathTypeInfo("#ef4444", "Regular road", 0.4)


def path_type_info(step: RouteStep) -> PathTypeInfo:
    """
    Classify a step by its road class (`mode`) and street name.
    """
    mode = step.mode.lower()
    name = step.name.lower()

    if "cycleway" in mode or "bike" in name or "trail" in name:
        return SAFEST_PATH
    if "residential" in mode or "tertiary" in mode:
        return FRIENDLY_ROAD
    if "secondary" in mode or "primary" in mode:
        return SHARED_ROAD
    return REGULAR_ROAD


@dataclass
class PathTypeShare:
    type: str
    distance_m: float
    percentage: float


@dataclass
class ElevationStats:
    total_ascent: float = 0.0
    total_descent: float = 0.0
    max_gradient: float = 0.0
    average_gradient: float = 0.0


@dataclass
class RouteAnalysis:
    total_distance_m: float
    total_duration_s: float
    path_types: List[PathTypeShare] = field(default_factory=list)
    safety_score: float = 0.0
    elevation: Optional[ElevationStats] = None


def elevation_stats(elevations: Sequence[float]) -> ElevationStats:
    stats = ElevationStats()
    if len(elevations) < 2:
        return stats

    total_gradient = 0.0
    for previous, current in zip(elevations[:-1], elevations[1:]):
        diff = current - previous
        if diff > 0:
            stats.total_ascent += diff
        else:
            stats.total_descent += abs(diff)
        gradient = abs(diff / ELEVATION_SAMPLE_SPACING_M * 100.0)
        stats.max_gradient = max(stats.max_gradient, gradient)
        total_gradient += gradient

    stats.average_gradient = total_gradient / (len(elevations) - 1)
    return stats


def analyze_route(route: Route, elevations: Optional[Sequence[float]] = None) -> RouteAnalysis:
    """
    Summarise a route: distance share per path type and a distance-weighted
    safety score in [0, 1]. Elevation stats only when samples are given.
    """
    distances: Dict[str, float] = {}
    weighted_safety = 0.0

    for step in route.all_steps():
        info = path_type_info(step)
        distances[info.description] = distances.get(info.description, 0.0) + step.distance_m
        weighted_safety += info.safety_score * step.distance_m

    total = route.distance_m
    shares = [
        PathTypeShare(
            type=kind,
            distance_m=distance,
            percentage=(distance / total * 100.0) if total > 0 else 0.0,
        )
        for kind, distance in distances.items()
    ]

    return RouteAnalysis(
        total_distance_m=route.distance_m,
        total_duration_s=route.duration_s,
        path_types=shares,
        safety_score=(weighted_safety / total) if total > 0 else 0.0,
        elevation=elevation_stats(elevations) if elevations is not None else None,
    )


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    d_lat = math.radians(b.lat - a.lat)
    d_lon = math.radians(b.lon - a.lon)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def is_near(a: Coordinate, b: Coordinate, radius_km: float = 0.1) -> bool:
    return haversine_km(a, b) <= radius_km

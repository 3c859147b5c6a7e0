# route_planner/models/routing.py

from enum import Enum
from typing import List, Optional, Sequence, Tuple
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    """
    Geographic position, always stored latitude first.

    Providers (Mapbox directions/geocoding, GeoJSON) speak [lon, lat];
    convert only at those boundaries with to_lon_lat()/from_lon_lat().
    """
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90.0, le=90.0)
    lon: float = Field(ge=-180.0, le=180.0)

    def to_lon_lat(self) -> Tuple[float, float]:
        return (self.lon, self.lat)

    @classmethod
    def from_lon_lat(cls, pair: Sequence[float]) -> "Coordinate":
        return cls(lat=float(pair[1]), lon=float(pair[0]))


class Waypoint(BaseModel):
    """
    A user-placed point. `id` stays stable when the point is moved so the
    map adapter can keep the same marker handle.
    """
    id: str
    coordinate: Coordinate

    @classmethod
    def at(cls, coordinate: Coordinate) -> "Waypoint":
        return cls(id=uuid4().hex, coordinate=coordinate)


# ---------------------------------------------------------------------- #
# Preferences
# ---------------------------------------------------------------------- #

class HillPreference(str, Enum):
    NONE = "none"
    AVOID = "avoid"
    PREFER = "prefer"


class RouteCharacter(str, Enum):
    BALANCED = "balanced"
    FASTEST = "fastest"
    QUIETEST = "quietest"


class SurfacePreference(str, Enum):
    ANY = "any"
    PAVED = "paved"


class RouteProfile(str, Enum):
    CYCLING = "cycling"
    WALKING = "walking"


class DistanceUnit(str, Enum):
    KM = "km"
    MI = "mi"


class RoutePreferences(BaseModel):
    """
    Immutable preference snapshot attached to each directions request.
    """
    model_config = ConfigDict(frozen=True)

    hills: HillPreference = HillPreference.NONE
    route_type: RouteCharacter = RouteCharacter.BALANCED
    surface: SurfacePreference = SurfacePreference.ANY


# ---------------------------------------------------------------------- #
# Directions result
# ---------------------------------------------------------------------- #

class Maneuver(BaseModel):
    instruction: str
    type: str
    modifier: Optional[str] = None
    location: Coordinate


class RouteStep(BaseModel):
    """
    A single maneuver-level segment of a leg ("turn left onto X").
    """
    maneuver: Maneuver
    distance_m: float
    duration_s: float
    name: str = ""
    # Road class / travel mode reported by the provider
    mode: str = ""
    geometry: List[Coordinate] = []


class RouteLeg(BaseModel):
    """
    Portion of a route between two consecutive waypoints.
    """
    steps: List[RouteStep]
    distance_m: float
    duration_s: float
    summary: str = ""


class Route(BaseModel):
    distance_m: float
    duration_s: float
    geometry: List[Coordinate]
    legs: List[RouteLeg]
    weight: Optional[float] = None
    weight_name: Optional[str] = None

    def step(self, leg_index: int, step_index: int) -> RouteStep:
        return self.legs[leg_index].steps[step_index]

    def all_steps(self) -> List[RouteStep]:
        return [step for leg in self.legs for step in leg.steps]


class DirectionsResult(BaseModel):
    """
    Main route plus the provider-ranked alternatives for the same waypoints.
    """
    main: Route
    alternatives: List[Route] = []

    @property
    def routes(self) -> List[Route]:
        return [self.main, *self.alternatives]


# ---------------------------------------------------------------------- #
# Geocoding
# ---------------------------------------------------------------------- #

class PlaceCandidate(BaseModel):
    id: str
    label: str
    description: str
    coordinate: Coordinate

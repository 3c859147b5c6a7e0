# route_planner/models/planner.py

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from route_planner.models.overlay import OverlayDocument
from route_planner.models.routing import (
    PlaceCandidate,
    RoutePreferences,
    RouteProfile,
    Waypoint,
)


class PlannerState(str, Enum):
    EMPTY = "empty"
    AWAITING_SECOND_POINT = "awaiting_second_point"
    FETCHING = "fetching"
    READY = "ready"
    ERROR = "error"


class ActiveStep(BaseModel):
    leg_index: int = Field(ge=0)
    step_index: int = Field(ge=0)


# ---------------------------------------------------------------------- #
# Request bodies
# ---------------------------------------------------------------------- #

class ProfileRequest(BaseModel):
    profile: RouteProfile


class SelectionRequest(BaseModel):
    index: int = Field(ge=0)


# ---------------------------------------------------------------------- #
# Response bodies
# ---------------------------------------------------------------------- #

class RouteOption(BaseModel):
    """
    One entry of [main, *alternatives] as shown in the route list.
    """
    index: int
    distance_m: float
    duration_s: float
    distance_text: str
    duration_text: str
    selected: bool


class StepView(BaseModel):
    leg_index: int
    step_index: int
    instruction: str
    distance_text: str
    duration_text: str
    path_type: str
    active: bool


class PlannerSnapshot(BaseModel):
    """
    Read-only view of the planner: what the sidebar and the map both render.
    """
    state: PlannerState
    profile: RouteProfile
    preferences: RoutePreferences
    waypoints: List[Waypoint]
    routes: List[RouteOption]
    selected_index: int
    steps: List[StepView]
    active_step: Optional[ActiveStep] = None
    error: Optional[str] = None
    overlays: OverlayDocument


class SearchResponse(BaseModel):
    query: str
    superseded: bool = False
    results: List[PlaceCandidate] = []

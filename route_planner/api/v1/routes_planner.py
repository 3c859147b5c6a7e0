# route_planner/api/v1/routes_planner.py
from fastapi import APIRouter, Depends, HTTPException, Request

from route_planner.core.errors import InvalidInput
from route_planner.models.planner import (
    ActiveStep,
    PlannerSnapshot,
    PlannerState,
    ProfileRequest,
    SelectionRequest,
)
from route_planner.models.routing import Coordinate, DistanceUnit, RoutePreferences
from route_planner.services.planner import RoutePlanner

router = APIRouter(
    prefix="/planner",
    tags=["planner"],
)


def get_planner(request: Request) -> RoutePlanner:
    return request.app.state.planner


def _require_ready(planner: RoutePlanner) -> None:
    if planner.state != PlannerState.READY:
        raise HTTPException(
            status_code=409,
            detail=f"No route is ready (planner is {planner.state.value}).",
        )


@router.get("/", response_model=PlannerSnapshot, summary="Current planner state")
async def get_state(
    unit: DistanceUnit = DistanceUnit.KM,
    planner: RoutePlanner = Depends(get_planner),
) -> PlannerSnapshot:
    return planner.snapshot(unit)


@router.post("/waypoints", response_model=PlannerSnapshot, summary="Add a waypoint")
async def add_waypoint(
    coordinate: Coordinate,
    planner: RoutePlanner = Depends(get_planner),
) -> PlannerSnapshot:
    """
    Append a waypoint (map click). From the second waypoint on, the route
    is fetched before the snapshot is returned.
    """
    await planner.add_waypoint(coordinate)
    return planner.snapshot()


@router.put("/waypoints/{index}", response_model=PlannerSnapshot, summary="Move a waypoint")
async def move_waypoint(
    index: int,
    coordinate: Coordinate,
    planner: RoutePlanner = Depends(get_planner),
) -> PlannerSnapshot:
    try:
        await planner.move_waypoint(index, coordinate)
    except InvalidInput as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return planner.snapshot()


@router.put("/preferences", response_model=PlannerSnapshot, summary="Replace route preferences")
async def update_preferences(
    preferences: RoutePreferences,
    planner: RoutePlanner = Depends(get_planner),
) -> PlannerSnapshot:
    await planner.update_preferences(preferences)
    return planner.snapshot()


@router.put("/profile", response_model=PlannerSnapshot, summary="Switch cycling/walking")
async def set_profile(
    body: ProfileRequest,
    planner: RoutePlanner = Depends(get_planner),
) -> PlannerSnapshot:
    await planner.set_profile(body.profile)
    return planner.snapshot()


@router.post("/selection", response_model=PlannerSnapshot, summary="Select a route alternative")
async def select_alternative(
    body: SelectionRequest,
    planner: RoutePlanner = Depends(get_planner),
) -> PlannerSnapshot:
    _require_ready(planner)
    try:
        planner.select_alternative(body.index)
    except InvalidInput as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return planner.snapshot()


@router.post("/active-step", response_model=PlannerSnapshot, summary="Highlight a turn-by-turn step")
async def highlight_step(
    body: ActiveStep,
    planner: RoutePlanner = Depends(get_planner),
) -> PlannerSnapshot:
    _require_ready(planner)
    try:
        planner.highlight_step(body.leg_index, body.step_index)
    except InvalidInput as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return planner.snapshot()


@router.post("/reset", response_model=PlannerSnapshot, summary="Clear waypoints and routes")
async def reset(planner: RoutePlanner = Depends(get_planner)) -> PlannerSnapshot:
    planner.reset()
    return planner.snapshot()

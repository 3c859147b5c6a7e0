# route_planner/services/planner.py

import asyncio
from time import perf_counter
from typing import List, Optional, Protocol, Sequence

from route_planner.core.errors import InvalidInput, RoutePlannerError
from route_planner.core.logger import logger
from route_planner.core.tasks import cancel_pending, was_superseded
from route_planner.models.overlay import OverlayDocument
from route_planner.models.planner import (
    ActiveStep,
    PlannerSnapshot,
    PlannerState,
    RouteOption,
    StepView,
)
from route_planner.models.routing import (
    Coordinate,
    DirectionsResult,
    DistanceUnit,
    Route,
    RoutePreferences,
    RouteProfile,
    RouteStep,
    Waypoint,
)
from route_planner.services.formatting import (
    clean_instruction,
    format_distance,
    format_duration,
    path_type_info,
)
from route_planner.services.map_view import MapViewAdapter

PROFILE_COLORS = {
    RouteProfile.CYCLING: "#3b82f6",
    RouteProfile.WALKING: "#10b981",
}


class DirectionsProvider(Protocol):
    async def fetch_route(
        self,
        coordinates: Sequence[Coordinate],
        preferences: RoutePreferences,
        profile: Optional[RouteProfile] = None,
    ) -> DirectionsResult: ...


class RoutePlanner:
    """
    Route-planning interaction controller.

    Owns the waypoints, the preference snapshot, the fetched routes, the
    selection and the active step; drives the map view adapter so that the
    overlays always mirror that state.

    Only the most recently initiated directions request may change state:
    every fetch bumps a generation counter and cancels the one in flight,
    and any result whose generation is stale is dropped on arrival.

    A failed fetch keeps the last good route (stored and drawn) and moves
    to ERROR; selection and step highlighting need a fresh READY.
    """

    def __init__(
        self,
        directions: DirectionsProvider,
        map_view: Optional[MapViewAdapter] = None,
        preferences: Optional[RoutePreferences] = None,
        profile: RouteProfile = RouteProfile.CYCLING,
    ) -> None:
        self.directions = directions
        self.map_view = map_view or MapViewAdapter(route_color=PROFILE_COLORS[profile])
        self._preferences = preferences or RoutePreferences()
        self._profile = profile

        self._waypoints: List[Waypoint] = []
        self._result: Optional[DirectionsResult] = None
        self._selected = 0
        self._active_step: Optional[ActiveStep] = None
        self._error: Optional[str] = None

        self._fetching = False
        self._generation = 0
        self._inflight: Optional["asyncio.Task[DirectionsResult]"] = None
        self._disposed = False

    # ------------------------------------------------------------------ #
    # Read-only state
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> PlannerState:
        if self._fetching:
            return PlannerState.FETCHING
        if self._error is not None:
            return PlannerState.ERROR
        if self._result is not None:
            return PlannerState.READY
        if not self._waypoints:
            return PlannerState.EMPTY
        if len(self._waypoints) == 1:
            return PlannerState.AWAITING_SECOND_POINT
        # Two or more waypoints but no request has settled yet
        return PlannerState.FETCHING

    @property
    def waypoints(self) -> List[Waypoint]:
        return list(self._waypoints)

    @property
    def preferences(self) -> RoutePreferences:
        return self._preferences

    @property
    def profile(self) -> RouteProfile:
        return self._profile

    @property
    def result(self) -> Optional[DirectionsResult]:
        return self._result

    @property
    def selected_index(self) -> int:
        return self._selected

    @property
    def selected_route(self) -> Optional[Route]:
        if self._result is None:
            return None
        return self._result.routes[self._selected]

    @property
    def active_step(self) -> Optional[ActiveStep]:
        return self._active_step

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def generation(self) -> int:
        return self._generation

    # ------------------------------------------------------------------ #
    # Events
    # ------------------------------------------------------------------ #

    async def add_waypoint(self, coordinate: Coordinate) -> Waypoint:
        """
        Append a waypoint (map click). With two or more waypoints a new
        directions request supersedes whatever is in flight.
        """
        self._ensure_alive()
        waypoint = Waypoint.at(coordinate)
        self._waypoints.append(waypoint)
        self.map_view.add_waypoint_marker(waypoint)
        logger.info(
            "Waypoint {} added at ({:.6f}, {:.6f})",
            len(self._waypoints),
            coordinate.lat,
            coordinate.lon,
        )

        if len(self._waypoints) >= 2:
            await self.fetch_route()
        return waypoint

    async def move_waypoint(self, index: int, coordinate: Coordinate) -> Waypoint:
        """Move an existing waypoint (marker drag); keeps its id and marker."""
        self._ensure_alive()
        if not 0 <= index < len(self._waypoints):
            raise InvalidInput(f"No waypoint at index {index}.")

        moved = Waypoint(id=self._waypoints[index].id, coordinate=coordinate)
        self._waypoints[index] = moved
        self.map_view.sync_waypoints(self._waypoints)

        if len(self._waypoints) >= 2:
            await self.fetch_route()
        return moved

    async def update_preferences(self, preferences: RoutePreferences) -> None:
        self._ensure_alive()
        self._preferences = preferences
        logger.info("Preferences updated: {}", preferences.model_dump(mode="json"))
        if len(self._waypoints) >= 2:
            await self.fetch_route()

    async def set_profile(self, profile: RouteProfile) -> None:
        """Switch between cycling and walking directions."""
        self._ensure_alive()
        self._profile = profile
        self.map_view.route_color = PROFILE_COLORS[profile]
        if self._result is not None:
            self.map_view.draw_route(self._result.main, self._result.alternatives, selected=self._selected)
        logger.info("Route profile set to {}", profile.value)
        if len(self._waypoints) >= 2:
            await self.fetch_route()

    async def fetch_route(self) -> None:
        """
        Request directions for the current waypoints and preferences.

        Provider failures never escape: they become `error` and the ERROR
        state, with the previous route and every overlay left as they were.
        """
        self._ensure_alive()
        if len(self._waypoints) < 2:
            raise InvalidInput("At least two waypoints are required to compute a route.")

        self._generation += 1
        generation = self._generation
        cancel_pending(self._inflight)

        coordinates = [waypoint.coordinate for waypoint in self._waypoints]
        task = asyncio.create_task(
            self.directions.fetch_route(coordinates, self._preferences, self._profile)
        )
        self._inflight = task
        self._fetching = True
        self._error = None

        t0 = perf_counter()
        try:
            result = await task
        except asyncio.CancelledError:
            if was_superseded(task):
                logger.debug("Directions request #{} superseded", generation)
                return
            if generation == self._generation:
                self._settle()
                self._error = "Route request was cancelled."
            raise
        except RoutePlannerError as exc:
            if generation != self._generation:
                logger.debug("Dropping failure of stale request #{}", generation)
                return
            self._settle()
            self._error = str(exc)
            logger.warning("Directions request #{} failed: {}", generation, exc)
            return
        except Exception:
            if generation == self._generation:
                self._settle()
                self._error = "Unexpected error while fetching the route."
            raise

        if generation != self._generation:
            logger.debug("Dropping result of stale request #{}", generation)
            return

        self._settle()
        self._apply(result)
        logger.info(
            "Request #{} ready in {:.2f} ms: {} route(s), main {}",
            generation,
            (perf_counter() - t0) * 1000.0,
            len(result.routes),
            format_distance(result.main.distance_m),
        )

    def select_alternative(self, index: int) -> Route:
        """Emphasise one of [main, *alternatives]. Never hits the network."""
        result = self._require_ready("select a route")
        if not 0 <= index < len(result.routes):
            raise InvalidInput(f"No route at index {index}.")

        self._selected = index
        self._active_step = None
        self.map_view.clear_step_marker()
        self.map_view.set_alternative_emphasis(index)
        return result.routes[index]

    def highlight_step(self, leg_index: int, step_index: int) -> RouteStep:
        """Highlight one turn-by-turn step of the selected route."""
        result = self._require_ready("highlight a step")
        route = result.routes[self._selected]
        if not 0 <= leg_index < len(route.legs):
            raise InvalidInput(f"No leg {leg_index} in the selected route.")
        if not 0 <= step_index < len(route.legs[leg_index].steps):
            raise InvalidInput(f"No step {step_index} in leg {leg_index}.")
        step = route.step(leg_index, step_index)

        self._active_step = ActiveStep(leg_index=leg_index, step_index=step_index)
        self.map_view.show_step_marker(step)
        return step

    def reset(self) -> None:
        """Back to EMPTY from any state; drops any in-flight request."""
        self._ensure_alive()
        self._generation += 1
        cancel_pending(self._inflight)
        self._settle()

        self._waypoints = []
        self._result = None
        self._selected = 0
        self._active_step = None
        self._error = None

        self.map_view.clear_all()
        self.map_view.reset_view()
        logger.info("Planner reset")

    def dispose(self) -> None:
        """Teardown: cancel pending work and release the map widget."""
        if self._disposed:
            return
        self._generation += 1
        cancel_pending(self._inflight)
        self._settle()
        self.map_view.dispose()
        self._disposed = True

    # ------------------------------------------------------------------ #
    # Presentation
    # ------------------------------------------------------------------ #

    def snapshot(self, unit: DistanceUnit = DistanceUnit.KM) -> PlannerSnapshot:
        routes = self._result.routes if self._result is not None else []
        options = [
            RouteOption(
                index=index,
                distance_m=route.distance_m,
                duration_s=route.duration_s,
                distance_text=format_distance(route.distance_m, unit),
                duration_text=format_duration(route.duration_s),
                selected=index == self._selected,
            )
            for index, route in enumerate(routes)
        ]

        steps: List[StepView] = []
        selected = self.selected_route
        if selected is not None:
            for leg_index, leg in enumerate(selected.legs):
                for step_index, step in enumerate(leg.steps):
                    steps.append(
                        StepView(
                            leg_index=leg_index,
                            step_index=step_index,
                            instruction=clean_instruction(step.maneuver.instruction),
                            distance_text=format_distance(step.distance_m, unit),
                            duration_text=format_duration(step.duration_s),
                            path_type=path_type_info(step).description,
                            active=self._active_step == ActiveStep(leg_index=leg_index, step_index=step_index),
                        )
                    )

        overlays: OverlayDocument = self.map_view.document()
        return PlannerSnapshot(
            state=self.state,
            profile=self._profile,
            preferences=self._preferences,
            waypoints=self.waypoints,
            routes=options,
            selected_index=self._selected,
            steps=steps,
            active_step=self._active_step,
            error=self._error,
            overlays=overlays,
        )

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _apply(self, result: DirectionsResult) -> None:
        self._result = result
        self._selected = 0
        self._active_step = None
        self._error = None

        self.map_view.clear_step_marker()
        self.map_view.draw_route(result.main, result.alternatives, selected=0)
        self.map_view.fit_to_bounds(result.main.geometry)

    def _settle(self) -> None:
        self._fetching = False
        self._inflight = None

    def _require_ready(self, action: str) -> DirectionsResult:
        self._ensure_alive()
        if self.state != PlannerState.READY or self._result is None:
            raise InvalidInput(f"Cannot {action} while the planner is {self.state.value}.")
        return self._result

    def _ensure_alive(self) -> None:
        if self._disposed:
            raise InvalidInput("Planner has been disposed.")

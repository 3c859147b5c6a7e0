# route_planner/services/directions_client.py

from time import perf_counter
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from route_planner.core.config import settings
from route_planner.core.errors import InvalidInput, NetworkFailure, NoRouteFound, ProviderError
from route_planner.core.logger import logger
from route_planner.models.routing import (
    Coordinate,
    DirectionsResult,
    Maneuver,
    Route,
    RouteLeg,
    RoutePreferences,
    RouteProfile,
    RouteStep,
)
from route_planner.services.preferences import to_query_params

# Leg totals may drift from route totals by provider rounding
LEG_SUM_TOLERANCE = 1.0


class DirectionsClient:
    """
    Mapbox Directions v5 client.

    Sole responsibility:
    - talk to the directions endpoint over HTTP
    - convert internal (lat, lon) → provider "lon,lat;lon,lat"
    - map failures onto the planner error taxonomy
    - return a normalised DirectionsResult

    It never touches planner or map state.
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        base_url: Optional[str] = None,
        profile: Optional[RouteProfile] = None,
        alternatives: Optional[bool] = None,
        timeout_s: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.access_token = access_token if access_token is not None else settings.MAPBOX_ACCESS_TOKEN
        self.base_url = (base_url or settings.MAPBOX_BASE_URL).rstrip("/")
        self.profile = profile or RouteProfile(settings.ROUTE_PROFILE)
        self.alternatives = settings.REQUEST_ALTERNATIVES if alternatives is None else alternatives
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout_s if timeout_s is not None else settings.HTTP_TIMEOUT_S,
        )

    # ------------------------------------------------------------------ #
    # Request construction
    # ------------------------------------------------------------------ #

    @staticmethod
    def format_coordinates(coordinates: Sequence[Coordinate]) -> str:
        """Convert (lat, lon) coordinates to the provider's 'lon,lat;lon,lat;...'."""
        return ";".join(f"{lon},{lat}" for lon, lat in (c.to_lon_lat() for c in coordinates))

    def build_url(self, coordinates: Sequence[Coordinate], profile: Optional[RouteProfile] = None) -> str:
        profile = profile or self.profile
        return (
            f"{self.base_url}/directions/v5/mapbox/{profile.value}/"
            f"{self.format_coordinates(coordinates)}"
        )

    def build_params(self, preferences: RoutePreferences) -> Dict[str, str]:
        params = {
            "geometries": "geojson",
            "steps": "true",
            "overview": "full",
            "alternatives": "true" if self.alternatives else "false",
            "annotations": "distance,duration",
            "access_token": self.access_token,
        }
        params.update(to_query_params(preferences))
        return params

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def fetch_route(
        self,
        coordinates: Sequence[Coordinate],
        preferences: RoutePreferences,
        profile: Optional[RouteProfile] = None,
    ) -> DirectionsResult:
        """
        Fetch the main route and alternatives through the ordered coordinates.

        Raises:
            InvalidInput: fewer than 2 coordinates (no request is made).
            NetworkFailure: the request never got an HTTP answer.
            ProviderError: non-success status, provider error code, or a
                payload that does not parse into routes.
            NoRouteFound: success but no route for these waypoints.
        """
        if len(coordinates) < 2:
            raise InvalidInput("At least two waypoints are required to compute a route.")

        url = self.build_url(coordinates, profile)
        params = self.build_params(preferences)
        logger.info(
            "Requesting {} route through {} waypoints (preferences: {})",
            (profile or self.profile).value,
            len(coordinates),
            preferences.model_dump(mode="json"),
        )

        t0 = perf_counter()
        try:
            response = await self._client.get(url, params=params)
        except httpx.TransportError as exc:
            logger.warning("Directions request failed: {}", exc)
            raise NetworkFailure("Could not reach the directions service.") from exc
        logger.info(
            "Directions answered {} in {:.2f} ms",
            response.status_code,
            (perf_counter() - t0) * 1000.0,
        )

        payload = self._json_or_none(response)

        if not response.is_success:
            message = (payload or {}).get("message") or response.reason_phrase or "Unknown error"
            raise ProviderError(f"Directions error: {message}", status_code=response.status_code)

        if payload is None:
            raise ProviderError("Directions service returned an unreadable response.", response.status_code)

        code = payload.get("code", "Ok")
        if code == "NoRoute":
            raise NoRouteFound("No route found between these points.")
        if code != "Ok":
            message = payload.get("message") or code
            raise ProviderError(f"Directions error: {message}", status_code=response.status_code)

        routes = payload.get("routes") or []
        if not routes:
            raise NoRouteFound("No route found between these points.")

        try:
            parsed = [self._parse_route(raw) for raw in routes]
        except (KeyError, IndexError, TypeError, ValueError, ValidationError) as exc:
            logger.warning("Could not parse directions payload: {}", exc)
            raise ProviderError("Directions service returned an unreadable route.", response.status_code) from exc
        return DirectionsResult(main=parsed[0], alternatives=parsed[1:])

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _json_or_none(response: httpx.Response) -> Optional[Dict[str, Any]]:
        try:
            data = response.json()
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    @staticmethod
    def _parse_line(geometry: Optional[Dict[str, Any]]) -> List[Coordinate]:
        # GeoJSON coordinates are [lon, lat]
        return [Coordinate.from_lon_lat(pair) for pair in (geometry or {}).get("coordinates") or []]

    def _parse_step(self, raw: Dict[str, Any]) -> RouteStep:
        maneuver = raw.get("maneuver") or {}
        return RouteStep(
            maneuver=Maneuver(
                instruction=maneuver.get("instruction") or "",
                type=maneuver.get("type") or "continue",
                modifier=maneuver.get("modifier"),
                location=Coordinate.from_lon_lat(maneuver["location"]),
            ),
            distance_m=float(raw.get("distance") or 0.0),
            duration_s=float(raw.get("duration") or 0.0),
            name=raw.get("name") or "",
            mode=raw.get("mode") or "",
            geometry=self._parse_line(raw.get("geometry")),
        )

    def _parse_route(self, raw: Dict[str, Any]) -> Route:
        legs = [
            RouteLeg(
                steps=[self._parse_step(step) for step in leg.get("steps") or []],
                distance_m=float(leg.get("distance") or 0.0),
                duration_s=float(leg.get("duration") or 0.0),
                summary=leg.get("summary") or "",
            )
            for leg in raw.get("legs") or []
        ]
        route = Route(
            distance_m=float(raw.get("distance") or 0.0),
            duration_s=float(raw.get("duration") or 0.0),
            geometry=self._parse_line(raw.get("geometry")),
            legs=legs,
            weight=raw.get("weight"),
            weight_name=raw.get("weight_name"),
        )

        leg_distance = sum(leg.distance_m for leg in legs)
        leg_duration = sum(leg.duration_s for leg in legs)
        if legs and (
            abs(leg_distance - route.distance_m) > LEG_SUM_TOLERANCE
            or abs(leg_duration - route.duration_s) > LEG_SUM_TOLERANCE
        ):
            logger.warning(
                "Leg totals ({:.1f} m, {:.1f} s) differ from route totals ({:.1f} m, {:.1f} s)",
                leg_distance,
                leg_duration,
                route.distance_m,
                route.duration_s,
            )
        return route

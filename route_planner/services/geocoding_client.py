# route_planner/services/geocoding_client.py

import asyncio
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from route_planner.core.config import settings
from route_planner.core.errors import NetworkFailure, ProviderError
from route_planner.core.logger import logger
from route_planner.core.tasks import cancel_pending, was_superseded
from route_planner.models.routing import Coordinate, PlaceCandidate


class GeocodingClient:
    """
    Mapbox place search: free text in, ranked place candidates out.
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.access_token = access_token if access_token is not None else settings.MAPBOX_ACCESS_TOKEN
        self.base_url = (base_url or settings.MAPBOX_BASE_URL).rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout_s if timeout_s is not None else settings.HTTP_TIMEOUT_S,
        )

    async def search(self, query: str) -> List[PlaceCandidate]:
        """
        Return candidates in provider order. A blank query returns []
        without touching the network.
        """
        if not query or not query.strip():
            return []

        url = f"{self.base_url}/geocoding/v5/mapbox.places/{quote(query.strip(), safe='')}.json"
        params = {
            "access_token": self.access_token,
            "types": settings.GEOCODING_TYPES,
            "limit": str(settings.GEOCODING_LIMIT),
            "language": settings.GEOCODING_LANGUAGE,
        }

        try:
            response = await self._client.get(url, params=params)
        except httpx.TransportError as exc:
            logger.warning("Geocoding request failed: {}", exc)
            raise NetworkFailure("Could not reach the search service.") from exc

        if not response.is_success:
            raise ProviderError(
                f"Search failed: {self._message(response)}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError("Search service returned an unreadable response.", response.status_code) from exc

        features = payload.get("features") if isinstance(payload, dict) else None
        features = features or []
        try:
            candidates = [
                self._parse_feature(feature)
                for feature in features
                if self._feature_center(feature) is not None
            ]
        except (AttributeError, IndexError, TypeError, ValueError, ValidationError) as exc:
            logger.warning("Could not parse search payload: {}", exc)
            raise ProviderError("Search service returned unreadable places.", response.status_code) from exc
        if len(candidates) < len(features):
            logger.debug("Skipped {} places without coordinates", len(features) - len(candidates))
        logger.debug("Search {!r} returned {} candidates", query, len(candidates))
        return candidates

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @staticmethod
    def _message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("message"):
            return data["message"]
        return response.reason_phrase or "Unknown error"

    @staticmethod
    def _feature_center(feature: Dict[str, Any]) -> Optional[List[float]]:
        # [lon, lat]
        return feature.get("center") or (feature.get("geometry") or {}).get("coordinates")

    @classmethod
    def _parse_feature(cls, feature: Dict[str, Any]) -> PlaceCandidate:
        return PlaceCandidate(
            id=str(feature.get("id", "")),
            label=feature.get("text") or "",
            description=feature.get("place_name") or "",
            coordinate=Coordinate.from_lon_lat(cls._feature_center(feature)),
        )


class DebouncedSearch:
    """
    Search that only fires once typing pauses.

    Every submit() cancels the pending search (timer or request) before
    scheduling its own, so only the latest query reaches the provider.
    A superseded submit() resolves to None.
    """

    def __init__(self, client: GeocodingClient, delay_s: Optional[float] = None) -> None:
        self.client = client
        self.delay_s = settings.SEARCH_DEBOUNCE_S if delay_s is None else delay_s
        self._pending: Optional["asyncio.Task[List[PlaceCandidate]]"] = None

    async def submit(self, query: str) -> Optional[List[PlaceCandidate]]:
        self.cancel()
        if not query.strip():
            return []

        task = asyncio.create_task(self._run(query))
        self._pending = task
        try:
            return await task
        except asyncio.CancelledError:
            if was_superseded(task):
                logger.debug("Search {!r} superseded by a newer query", query)
                return None
            raise
        finally:
            if self._pending is task:
                self._pending = None

    def cancel(self) -> None:
        cancel_pending(self._pending)
        self._pending = None

    async def _run(self, query: str) -> List[PlaceCandidate]:
        await asyncio.sleep(self.delay_s)
        return await self.client.search(query)

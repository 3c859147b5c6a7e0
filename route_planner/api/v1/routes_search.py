# route_planner/api/v1/routes_search.py
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from route_planner.core.errors import NetworkFailure, ProviderError
from route_planner.core.logger import logger
from route_planner.models.planner import SearchResponse
from route_planner.services.geocoding_client import DebouncedSearch

router = APIRouter(
    prefix="/search",
    tags=["search"],
)


def get_search(request: Request) -> DebouncedSearch:
    return request.app.state.search


@router.get("/", response_model=SearchResponse, summary="Search places (debounced)")
async def search_places(
    q: str = Query("", max_length=256),
    search: DebouncedSearch = Depends(get_search),
) -> SearchResponse:
    """
    Debounced place search. A request overtaken by a newer one within the
    debounce window answers with `superseded: true` and no results.
    """
    try:
        results = await search.submit(q)
    except (NetworkFailure, ProviderError) as exc:
        logger.warning("Place search for {!r} failed: {}", q, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    if results is None:
        return SearchResponse(query=q, superseded=True)
    return SearchResponse(query=q, results=results)

# route_planner/main.py

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from route_planner.api.v1 import routes_health, routes_planner, routes_search
from route_planner.core.config import settings
from route_planner.core.logger import logger
from route_planner.services.directions_client import DirectionsClient
from route_planner.services.geocoding_client import DebouncedSearch, GeocodingClient
from route_planner.services.planner import RoutePlanner

# BASE_DIR = .../route_planner
BASE_DIR = Path(__file__).resolve().parent
# PROJECT_ROOT = parent of route_planner → .../
PROJECT_ROOT = BASE_DIR.parent
# STATIC_DIR = .../static
STATIC_DIR = PROJECT_ROOT / "static"
INDEX_FILE = STATIC_DIR / "index.html"


def create_app(
    planner: Optional[RoutePlanner] = None,
    search: Optional[DebouncedSearch] = None,
) -> FastAPI:
    """
    Build the API. `planner` and `search` can be injected (tests); otherwise
    they are wired to the Mapbox clients from settings and closed on shutdown.
    """
    owned_directions: Optional[DirectionsClient] = None
    owned_geocoder: Optional[GeocodingClient] = None

    if planner is None:
        owned_directions = DirectionsClient()
        planner = RoutePlanner(directions=owned_directions, profile=owned_directions.profile)
    if search is None:
        owned_geocoder = GeocodingClient()
        search = DebouncedSearch(owned_geocoder)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("{} {} starting ({})", settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT)
        yield
        search.cancel()
        planner.dispose()
        if owned_directions is not None:
            await owned_directions.aclose()
        if owned_geocoder is not None:
            await owned_geocoder.aclose()
        logger.info("{} stopped", settings.APP_NAME)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Cycling/walking route planner with a Leaflet frontend served from /map.",
        lifespan=lifespan,
    )
    app.state.planner = planner
    app.state.search = search

    # Routers
    app.include_router(routes_health.router, prefix="", tags=["health"])
    app.include_router(routes_planner.router, prefix="", tags=["planner"])
    app.include_router(routes_search.router, prefix="", tags=["search"])

    # Serve /static/* from the static folder at project root
    app.mount("/static", StaticFiles(directory=STATIC_DIR, check_dir=False), name="static")

    @app.get("/map")
    async def map_page() -> FileResponse:
        """
        Serve the frontend map page from static/index.html
        """
        logger.info("Serving /map from {}", INDEX_FILE)

        if not INDEX_FILE.exists():
            logger.error("index.html not found at {}", INDEX_FILE)
            raise HTTPException(status_code=404, detail="index.html not found")

        return FileResponse(INDEX_FILE)

    return app


app = create_app()

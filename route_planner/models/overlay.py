# route_planner/models/overlay.py

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from route_planner.models.routing import Coordinate


class MarkerSpec(BaseModel):
    """
    Desired marker on the map. `id` is the reconciliation key.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    coordinate: Coordinate
    color: str
    kind: str = "waypoint"  # "waypoint" | "step"
    label: Optional[str] = None


class PolylineSpec(BaseModel):
    """
    Desired polyline on the map. Higher `z_index` is drawn on top.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    coordinates: List[Coordinate]
    color: str
    weight: int
    opacity: float
    z_index: int = 0


class Bounds(BaseModel):
    south: float
    west: float
    north: float
    east: float

    @classmethod
    def around(cls, coordinates: List[Coordinate]) -> "Bounds":
        lats = [c.lat for c in coordinates]
        lons = [c.lon for c in coordinates]
        return cls(south=min(lats), west=min(lons), north=max(lats), east=max(lons))


class ViewState(BaseModel):
    """
    Camera of the map widget. When `bounds` is set the client fits to it,
    otherwise it centers on `center` at `zoom`.
    """
    center: Coordinate
    zoom: int
    bounds: Optional[Bounds] = None
    padding_px: int = 0
    max_zoom: Optional[int] = None


class OverlayDocument(BaseModel):
    """
    What the widget publishes for the Leaflet client:
    a GeoJSON FeatureCollection plus the current view.
    """
    type: str = "FeatureCollection"
    features: List[Dict[str, Any]]
    view: ViewState

# route_planner/services/map_view.py

from itertools import count
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from route_planner.core.config import settings
from route_planner.core.logger import logger
from route_planner.models.overlay import (
    Bounds,
    MarkerSpec,
    OverlayDocument,
    PolylineSpec,
    ViewState,
)
from route_planner.models.routing import Coordinate, Route, RouteStep, Waypoint
from route_planner.services.formatting import clean_instruction

START_COLOR = "#22c55e"
END_COLOR = "#ef4444"
VIA_COLOR = "#3b82f6"
STEP_COLOR = "#f59e0b"
ALTERNATIVE_COLOR = "#94a3b8"

STEP_MARKER_ID = "step"


class MapWidget(Protocol):
    """
    Capability set the planner needs from a map library.
    Handles returned by add_* are opaque to the caller.
    """

    def add_marker(self, spec: MarkerSpec) -> Any: ...

    def remove_marker(self, handle: Any) -> None: ...

    def add_polyline(self, spec: PolylineSpec) -> Any: ...

    def remove_polyline(self, handle: Any) -> None: ...

    def fit_bounds(self, bounds: Bounds, padding_px: int, max_zoom: int) -> None: ...

    def set_view(self, center: Coordinate, zoom: int) -> None: ...

    def to_document(self) -> OverlayDocument: ...

    def remove(self) -> None: ...


class GeoJsonMapWidget:
    """
    In-memory widget that publishes its layers as GeoJSON for the Leaflet page.
    """

    def __init__(self, center: Coordinate, zoom: int) -> None:
        self._ids = count(1)
        self._markers: Dict[int, MarkerSpec] = {}
        self._polylines: Dict[int, PolylineSpec] = {}
        self._view = ViewState(center=center, zoom=zoom)
        self.removed = False

    @property
    def marker_count(self) -> int:
        return len(self._markers)

    @property
    def polyline_count(self) -> int:
        return len(self._polylines)

    @property
    def view(self) -> ViewState:
        return self._view

    def add_marker(self, spec: MarkerSpec) -> int:
        self._ensure_alive()
        handle = next(self._ids)
        self._markers[handle] = spec
        return handle

    def remove_marker(self, handle: int) -> None:
        self._ensure_alive()
        self._markers.pop(handle, None)

    def add_polyline(self, spec: PolylineSpec) -> int:
        self._ensure_alive()
        handle = next(self._ids)
        self._polylines[handle] = spec
        return handle

    def remove_polyline(self, handle: int) -> None:
        self._ensure_alive()
        self._polylines.pop(handle, None)

    def fit_bounds(self, bounds: Bounds, padding_px: int, max_zoom: int) -> None:
        self._ensure_alive()
        self._view = self._view.model_copy(
            update={"bounds": bounds, "padding_px": padding_px, "max_zoom": max_zoom}
        )

    def set_view(self, center: Coordinate, zoom: int) -> None:
        self._ensure_alive()
        self._view = ViewState(center=center, zoom=zoom)

    def to_document(self) -> OverlayDocument:
        features: List[Dict[str, Any]] = []
        # Lines first, lowest z_index first, so markers and the selected route end up on top
        for handle, line in sorted(self._polylines.items(), key=lambda item: (item[1].z_index, item[0])):
            features.append(
                {
                    "type": "Feature",
                    "geometry": {
                        "type": "LineString",
                        "coordinates": [list(c.to_lon_lat()) for c in line.coordinates],
                    },
                    "properties": {
                        "id": line.id,
                        "layer": "route",
                        "color": line.color,
                        "weight": line.weight,
                        "opacity": line.opacity,
                        "z_index": line.z_index,
                    },
                }
            )
        for handle, marker in sorted(self._markers.items()):
            features.append(
                {
                    "type": "Feature",
                    "geometry": {"type": "Point", "coordinates": list(marker.coordinate.to_lon_lat())},
                    "properties": {
                        "id": marker.id,
                        "layer": marker.kind,
                        "color": marker.color,
                        "label": marker.label,
                    },
                }
            )
        return OverlayDocument(features=features, view=self._view)

    def remove(self) -> None:
        self._markers.clear()
        self._polylines.clear()
        self.removed = True

    def _ensure_alive(self) -> None:
        if self.removed:
            raise RuntimeError("Map widget has been removed.")


WidgetFactory = Callable[[Coordinate, int], MapWidget]


class MapViewAdapter:
    """
    Sole owner of the map widget and every overlay handle on it.

    Callers describe what should be on the map; the adapter reconciles that
    desired set against the handles it holds (keyed by stable ids) and only
    adds/removes the difference. Every operation is idempotent.
    """

    def __init__(
        self,
        widget_factory: Optional[WidgetFactory] = None,
        default_center: Optional[Coordinate] = None,
        default_zoom: Optional[int] = None,
        route_color: str = VIA_COLOR,
    ) -> None:
        self.widget_factory: WidgetFactory = widget_factory or GeoJsonMapWidget
        self.default_center = default_center or Coordinate(
            lat=settings.DEFAULT_CENTER_LAT,
            lon=settings.DEFAULT_CENTER_LON,
        )
        self.default_zoom = settings.DEFAULT_ZOOM if default_zoom is None else default_zoom
        self.route_color = route_color

        self._widget: Optional[MapWidget] = None
        self._disposed = False

        self._markers: Dict[str, Tuple[MarkerSpec, Any]] = {}
        self._polylines: Dict[str, Tuple[PolylineSpec, Any]] = {}

        # Last drawn inputs, kept so emphasis/marker colours can be recomputed
        self._waypoints: List[Waypoint] = []
        self._routes: List[Route] = []
        self._selected = 0

    # ------------------------------------------------------------------ #
    # Widget ownership
    # ------------------------------------------------------------------ #

    @property
    def widget(self) -> MapWidget:
        if self._disposed:
            raise RuntimeError("MapViewAdapter has been disposed.")
        if self._widget is None:
            self._widget = self.widget_factory(self.default_center, self.default_zoom)
            logger.debug("Map widget created at {} zoom {}", self.default_center, self.default_zoom)
        return self._widget

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def marker_ids(self) -> List[str]:
        return list(self._markers)

    @property
    def polyline_ids(self) -> List[str]:
        return list(self._polylines)

    def dispose(self) -> None:
        """Release the widget and all handles. Safe to call repeatedly."""
        if self._disposed:
            return
        if self._widget is not None:
            self.clear_all()
            self._widget.remove()
            self._widget = None
        self._disposed = True
        logger.debug("Map widget disposed")

    def document(self) -> OverlayDocument:
        if self._widget is None:
            return OverlayDocument(
                features=[],
                view=ViewState(center=self.default_center, zoom=self.default_zoom),
            )
        return self._widget.to_document()

    # ------------------------------------------------------------------ #
    # Markers
    # ------------------------------------------------------------------ #

    def add_waypoint_marker(self, waypoint: Waypoint) -> None:
        if any(existing.id == waypoint.id for existing in self._waypoints):
            return
        self.sync_waypoints([*self._waypoints, waypoint])

    def sync_waypoints(self, waypoints: Iterable[Waypoint]) -> None:
        """Make the waypoint markers mirror `waypoints` exactly."""
        self._waypoints = list(waypoints)
        last = len(self._waypoints) - 1
        desired = {
            waypoint.id: MarkerSpec(
                id=waypoint.id,
                coordinate=waypoint.coordinate,
                color=START_COLOR if index == 0 else END_COLOR if index == last else VIA_COLOR,
                kind="waypoint",
                label=f"Point {index + 1}",
            )
            for index, waypoint in enumerate(self._waypoints)
        }
        self._reconcile_markers(desired, kind="waypoint")

    def show_step_marker(self, step: RouteStep) -> None:
        """Show the single transient step marker and center the view on it."""
        location = step.maneuver.location
        self._reconcile_markers(
            {
                STEP_MARKER_ID: MarkerSpec(
                    id=STEP_MARKER_ID,
                    coordinate=location,
                    color=STEP_COLOR,
                    kind="step",
                    label=clean_instruction(step.maneuver.instruction),
                )
            },
            kind="step",
        )
        self.widget.set_view(location, settings.FIT_MAX_ZOOM)

    def clear_step_marker(self) -> None:
        self._reconcile_markers({}, kind="step")

    # ------------------------------------------------------------------ #
    # Routes
    # ------------------------------------------------------------------ #

    def draw_route(self, primary: Route, alternatives: Iterable[Route] = (), selected: int = 0) -> None:
        self._routes = [primary, *alternatives]
        self._selected = selected
        self._reconcile_polylines(self._route_specs())

    def set_alternative_emphasis(self, index: int) -> None:
        if not 0 <= index < len(self._routes):
            raise IndexError(f"No route drawn at index {index}.")
        self._selected = index
        self._reconcile_polylines(self._route_specs())

    # ------------------------------------------------------------------ #
    # View
    # ------------------------------------------------------------------ #

    def fit_to_bounds(self, coordinates: List[Coordinate]) -> None:
        if not coordinates:
            return
        self.widget.fit_bounds(
            Bounds.around(coordinates),
            padding_px=settings.FIT_PADDING_PX,
            max_zoom=settings.FIT_MAX_ZOOM,
        )

    def reset_view(self) -> None:
        self.widget.set_view(self.default_center, self.default_zoom)

    def clear_all(self) -> None:
        """Remove every marker and polyline. A no-op when nothing is drawn."""
        if self._widget is None:
            self._waypoints, self._routes, self._selected = [], [], 0
            return
        for _, handle in self._markers.values():
            self._widget.remove_marker(handle)
        for _, handle in self._polylines.values():
            self._widget.remove_polyline(handle)
        self._markers.clear()
        self._polylines.clear()
        self._waypoints, self._routes, self._selected = [], [], 0

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _route_specs(self) -> Dict[str, PolylineSpec]:
        specs: Dict[str, PolylineSpec] = {}
        for index, route in enumerate(self._routes):
            selected = index == self._selected
            specs[f"route-{index}"] = PolylineSpec(
                id=f"route-{index}",
                coordinates=route.geometry,
                color=self.route_color if selected else ALTERNATIVE_COLOR,
                weight=5 if selected else 4,
                opacity=0.8 if selected else 0.4,
                z_index=1 if selected else 0,
            )
        return specs

    def _reconcile_markers(self, desired: Dict[str, MarkerSpec], kind: str) -> None:
        widget = self.widget
        current = {key: entry for key, entry in self._markers.items() if entry[0].kind == kind}

        for key, (spec, handle) in current.items():
            if desired.get(key) != spec:
                widget.remove_marker(handle)
                del self._markers[key]

        for key, spec in desired.items():
            if key not in self._markers:
                self._markers[key] = (spec, widget.add_marker(spec))

    def _reconcile_polylines(self, desired: Dict[str, PolylineSpec]) -> None:
        widget = self.widget

        for key, (spec, handle) in list(self._polylines.items()):
            if desired.get(key) != spec:
                widget.remove_polyline(handle)
                del self._polylines[key]

        # Add bottom layers first so the selected route lands on top
        for key, spec in sorted(desired.items(), key=lambda item: item[1].z_index):
            if key not in self._polylines:
                self._polylines[key] = (spec, widget.add_polyline(spec))

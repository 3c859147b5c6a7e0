# route_planner/services/preferences.py

from typing import Dict, List

from route_planner.models.routing import (
    HillPreference,
    RouteCharacter,
    RoutePreferences,
    SurfacePreference,
)


def excluded_classes(preferences: RoutePreferences) -> List[str]:
    """
    Road classes the provider should avoid, in a stable order without duplicates.
    """
    excluded: List[str] = []
    if preferences.route_type == RouteCharacter.QUIETEST:
        excluded.extend(["motorway", "toll"])
    if preferences.surface == SurfacePreference.PAVED:
        excluded.append("unpaved")
    return list(dict.fromkeys(excluded))


def to_query_params(preferences: RoutePreferences) -> Dict[str, str]:
    """
    Translate a preference snapshot into extra directions query parameters.

    The defaults (no hill preference, balanced, any surface) add nothing.
    """
    params: Dict[str, str] = {}

    excluded = excluded_classes(preferences)
    if excluded:
        params["exclude"] = ",".join(excluded)

    if preferences.route_type == RouteCharacter.FASTEST:
        params["continue_straight"] = "true"

    if preferences.hills == HillPreference.AVOID:
        params["avoid_steep"] = "true"
    elif preferences.hills == HillPreference.PREFER:
        params["avoid_steep"] = "false"

    return params

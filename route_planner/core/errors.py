# route_planner/core/errors.py
from typing import Optional


class RoutePlannerError(Exception):
    """
    Base class for every failure raised by the planner and its provider clients.
    """


class InvalidInput(RoutePlannerError):
    """Caller misuse, e.g. a directions request with fewer than 2 waypoints."""


class NetworkFailure(RoutePlannerError):
    """Transport-level failure talking to a provider (timeout, DNS, reset)."""


class ProviderError(RoutePlannerError):
    """
    The provider answered with a non-success status.

    `message` is the provider's own explanation when it sent one.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NoRouteFound(RoutePlannerError):
    """Successful response that contains no route for the waypoints."""

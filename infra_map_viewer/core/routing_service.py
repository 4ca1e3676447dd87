"""Routing lookup against an OSRM-compatible HTTP service.

Request:  GET {base}/route/v1/{profile}/{o_lon},{o_lat};{d_lon},{d_lat}?overview=full&geometries=geojson
Response: {"code": "Ok" | <error>, "routes": [{"distance": m, "duration": s, "geometry": GeoJSON}]}

A non-"Ok" code, an empty route list, a transport error or a malformed body all
raise RoutingError. Callers turn that into a user-visible alert.
"""

import logging
from dataclasses import dataclass
from typing import Any

import requests

from infra_map_viewer.constants import RoutingConfig

logger = logging.getLogger(__name__)

LonLat = tuple[float, float]


class RoutingError(Exception):
    """The routing service could not produce a route."""


@dataclass(frozen=True)
class RouteResult:
    """First route returned by the routing service."""

    distance_m: float
    duration_s: float
    geometry: dict[str, Any]


class OSRMRoutingService:
    """Thin client for the OSRM route endpoint.

    Example:
        service = OSRMRoutingService()
        result = service.route(origin=(-96.72, 16.76), destination=(-96.70, 16.80))
    """

    def __init__(
        self,
        base_url: str = RoutingConfig.BASE_URL,
        profile: str = RoutingConfig.PROFILE,
        timeout_s: float = RoutingConfig.TIMEOUT_S,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.profile = profile
        self.timeout_s = timeout_s
        self.session = session or requests.Session()

    def build_url(self, origin: LonLat, destination: LonLat) -> str:
        """Build the route request URL for an origin/destination pair."""
        coords = f"{origin[0]},{origin[1]};{destination[0]},{destination[1]}"
        return f"{self.base_url}/route/v1/{self.profile}/{coords}"

    def route(self, origin: LonLat, destination: LonLat) -> RouteResult:
        """Fetch the driving route between two points.

        Args:
            origin: (lon, lat) of the start point.
            destination: (lon, lat) of the end point.

        Returns:
            RouteResult for the first route.

        Raises:
            RoutingError: If the request fails or no route is found.
        """
        url = self.build_url(origin=origin, destination=destination)
        logger.info(f"[ROUTE] Requesting {url}")
        try:
            response = self.session.get(
                url,
                params={"overview": "full", "geometries": "geojson"},
                timeout=self.timeout_s,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise RoutingError(f"Routing request failed: {e}") from e

        return self.parse_response(data)

    @staticmethod
    def parse_response(data: Any) -> RouteResult:
        """Extract the first route from an OSRM response body.

        Raises:
            RoutingError: On a non-"Ok" code, no routes or missing fields.
        """
        if not isinstance(data, dict):
            raise RoutingError("Routing response is not a JSON object")
        code = data.get("code")
        if code != RoutingConfig.OK_CODE:
            raise RoutingError(f"Routing service returned code {code!r}")
        routes = data.get("routes") or []
        if not routes:
            raise RoutingError("Routing service returned no routes")

        route = routes[0]
        try:
            return RouteResult(
                distance_m=float(route["distance"]),
                duration_s=float(route["duration"]),
                geometry=route["geometry"],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RoutingError(f"Malformed route in response: {e}") from e

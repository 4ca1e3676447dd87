"""Geodesic and map-projection calculations.

Provides the geographic helpers used by the measurement tools and renderer:
- Great-circle distance (Haversine formula, mean Earth radius 6,371 km)
- Signed shortest angle between two bearings (wraps at 0°/360°)
- Web Mercator projection between lon/lat and world pixel coordinates
- Easing curves for camera and terrain animation

Coordinates are (lon, lat) in decimal degrees (WGS84), matching GeoJSON order.
"""

from math import atan, atan2, cos, degrees, exp, log, pi, radians, sin, sqrt, tan

# Mean Earth radius in kilometers (spherical approximation)
EARTH_RADIUS_KM = 6371.0

# Web Mercator latitude limit
MAX_MERCATOR_LAT = 85.051129


class GeoCalculator:
    """Static methods for geodesic calculations and Web Mercator projection.

    Bearings are in degrees clockwise from North.
    Distances are in kilometers.
    """

    EARTH_RADIUS_KM = EARTH_RADIUS_KM

    @staticmethod
    def haversine_distance_km(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
        """Calculate great-circle distance between two points using Haversine formula.

        Args:
            lon1: Longitude of first point (decimal degrees)
            lat1: Latitude of first point (decimal degrees)
            lon2: Longitude of second point (decimal degrees)
            lat2: Latitude of second point (decimal degrees)

        Returns:
            Distance in kilometers.
        """
        dlat = radians(lat2 - lat1)
        dlon = radians(lon2 - lon1)
        a = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlon / 2) ** 2
        a = min(1.0, a)
        return EARTH_RADIUS_KM * 2 * atan2(sqrt(a), sqrt(1 - a))

    @staticmethod
    def shortest_bearing_delta(current_deg: float, target_deg: float) -> float:
        """Signed shortest angular difference from current to target bearing.

        Example: current=10°, target=350° gives -20° (turn left), not +340°.

        Returns:
            Difference in degrees within [-180, 180).
        """
        return ((target_deg - current_deg + 540.0) % 360.0) - 180.0

    @staticmethod
    def lonlat_to_world(lon: float, lat: float, world_size: float) -> tuple[float, float]:
        """Project lon/lat to Web Mercator world pixels (origin at top-left)."""
        lat = max(-MAX_MERCATOR_LAT, min(MAX_MERCATOR_LAT, lat))
        x = (lon + 180.0) / 360.0 * world_size
        y = (1.0 - log(tan(pi / 4 + radians(lat) / 2)) / pi) / 2.0 * world_size
        return x, y

    @staticmethod
    def world_to_lonlat(x: float, y: float, world_size: float) -> tuple[float, float]:
        """Inverse of lonlat_to_world."""
        lon = x / world_size * 360.0 - 180.0
        n = pi * (1.0 - 2.0 * y / world_size)
        lat = degrees(2 * atan(exp(n)) - pi / 2)
        return lon, lat


def ease_out_quart(t: float) -> float:
    """Fast start, long gentle finish. Used for terrain exaggeration ramps."""
    return 1 - (1 - t) ** 4


def ease_out_quad(t: float) -> float:
    """Quadratic ease-out, t * (2 - t). Used for camera pitch and bearing easing."""
    return t * (2 - t)

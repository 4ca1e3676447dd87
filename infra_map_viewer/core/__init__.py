"""Core foundation classes with no renderer or UI dependencies.

- GeoCalculator: Haversine distance, bearing deltas, Web Mercator projection
- FrameScheduler: Cancelable repeating-frame loops (AnimationHandle tokens)
- OSRMRoutingService: External routing lookup (RouteResult, RoutingError)
"""

from infra_map_viewer.core.frame_scheduler import AnimationHandle, FrameScheduler
from infra_map_viewer.core.geo_calculator import GeoCalculator, ease_out_quad, ease_out_quart
from infra_map_viewer.core.routing_service import OSRMRoutingService, RouteResult, RoutingError

__all__ = [
    # Geo calculator
    "GeoCalculator",
    "ease_out_quad",
    "ease_out_quart",
    # Frame scheduler
    "AnimationHandle",
    "FrameScheduler",
    # Routing
    "OSRMRoutingService",
    "RouteResult",
    "RoutingError",
]

"""Shared pytest fixtures for infra_map_viewer tests.

Provides in-memory renderers, a mounted MapView and a stub routing service.
DeckRenderer keeps the whole map state in memory, so tests drive it exactly
the way the front end does: notify_style_ready() after a style request and
fire() for pointer events.

COORDINATES:
    Tests use the default start view near Paso Ancho, Oaxaca (lon -96.73, lat 16.76)
    at zoom 9.65, unless a test needs simpler math near (0, 0).
"""

import pytest

from infra_map_viewer.constants import MapConfig, StyleConfig
from infra_map_viewer.core.frame_scheduler import FrameScheduler
from infra_map_viewer.core.routing_service import RouteResult, RoutingError
from infra_map_viewer.model.camera_state import CameraState
from infra_map_viewer.render.renderer import DeckRenderer
from infra_map_viewer.ui.map_view import MapView


# =============================================================================
# STUB ROUTING SERVICE
# =============================================================================


class StubRoutingService:
    """Routing service returning a fixed result (or raising) and recording calls."""

    def __init__(self, result: RouteResult | None = None, error: str | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple[tuple[float, float], tuple[float, float]]] = []

    def route(self, origin: tuple[float, float], destination: tuple[float, float]) -> RouteResult:
        self.calls.append((origin, destination))
        if self.error is not None:
            raise RoutingError(self.error)
        assert self.result is not None
        return self.result


# 12.34 km, 1 h 1 min 1 s
ROUTE_12KM = RouteResult(
    distance_m=12340.0,
    duration_s=3661.0,
    geometry={"type": "LineString", "coordinates": [[-96.73, 16.76], [-96.71, 16.78], [-96.70, 16.80]]},
)

ROUTE_START = (-96.73, 16.76)
ROUTE_END = (-96.70, 16.80)


# =============================================================================
# RENDERER FIXTURES
# =============================================================================


@pytest.fixture
def start_camera() -> CameraState:
    """Default start view, flat and facing north."""
    return CameraState(center=(MapConfig.START_CENTER_LON, MapConfig.START_CENTER_LAT), zoom=MapConfig.START_ZOOM)


@pytest.fixture
def renderer(start_camera: CameraState) -> DeckRenderer:
    """Primary renderer on the 2D base style."""
    return DeckRenderer(style_url=StyleConfig.BASE_2D_URL, camera=start_camera)


@pytest.fixture
def overview(start_camera: CameraState) -> DeckRenderer:
    """Overview (minimap) renderer."""
    return DeckRenderer(
        style_url=StyleConfig.MINIMAP_URL,
        camera=CameraState(center=start_camera.center, zoom=start_camera.zoom - 3),
        width=240,
        height=180,
    )


@pytest.fixture
def scheduler() -> FrameScheduler:
    return FrameScheduler()


# =============================================================================
# MAP VIEW FIXTURES
# =============================================================================


@pytest.fixture
def view(renderer: DeckRenderer, overview: DeckRenderer) -> MapView:
    """MapView mounted on both renderers, idle, base 2D style."""
    map_view = MapView()
    map_view.mount(primary=renderer, overview=overview)
    return map_view


@pytest.fixture
def routing_ok() -> StubRoutingService:
    return StubRoutingService(result=ROUTE_12KM)


@pytest.fixture
def routing_down() -> StubRoutingService:
    return StubRoutingService(error="connection refused")

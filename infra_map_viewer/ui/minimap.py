"""Overview map kept in step with the primary viewport.

On every primary move/zoom the primary bounds are pushed to the overview as
a closed polygon (SW, NW, NE, SE, SW), and the overview is centred on the
primary centre at max(0, zoom - 3).
"""

import logging
from collections.abc import Callable
from typing import Any

from shapely.geometry import Polygon, mapping

from infra_map_viewer.constants import MinimapConfig
from infra_map_viewer.render.renderer import VIEWPORT_EVENTS, Renderer, RendererError

logger = logging.getLogger(__name__)

RendererGetter = Callable[[], Renderer | None]


def bounds_polygon(west: float, south: float, east: float, north: float) -> dict[str, Any]:
    """GeoJSON feature of a lon/lat box, ring SW -> NW -> NE -> SE -> SW."""
    ring = [(west, south), (west, north), (east, north), (east, south)]
    return {"type": "Feature", "geometry": mapping(Polygon(ring)), "properties": {}}


def overview_zoom(primary_zoom: float) -> float:
    return max(0.0, primary_zoom - MinimapConfig.ZOOM_OFFSET)


class MinimapSynchronizer:
    """Mirrors the primary viewport onto the overview renderer.

    Both renderers are looked up at call time; a missing overview (not yet
    created, or already destroyed) makes sync() a no-op.
    """

    def __init__(self, get_primary: RendererGetter, get_overview: RendererGetter) -> None:
        self._get_primary = get_primary
        self._get_overview = get_overview
        self._attached_to: Renderer | None = None

    def setup_overview(self) -> None:
        """Add the viewport indicator source and layers to the overview (idempotent)."""
        overview = self._get_overview()
        if overview is None or overview.get_source(MinimapConfig.BOUNDS_SOURCE_ID) is not None:
            return
        empty = {"type": "Feature", "geometry": {"type": "Polygon", "coordinates": []}, "properties": {}}
        overview.add_source(MinimapConfig.BOUNDS_SOURCE_ID, {"type": "geojson", "data": empty})
        overview.add_layer(
            {
                "id": MinimapConfig.BOUNDS_FILL_LAYER_ID,
                "type": "fill",
                "source": MinimapConfig.BOUNDS_SOURCE_ID,
                "paint": {"fill-color": MinimapConfig.BOUNDS_COLOR, "fill-opacity": 0.2},
            }
        )
        overview.add_layer(
            {
                "id": MinimapConfig.BOUNDS_OUTLINE_LAYER_ID,
                "type": "line",
                "source": MinimapConfig.BOUNDS_SOURCE_ID,
                "paint": {"line-color": MinimapConfig.BOUNDS_COLOR, "line-width": 2},
            }
        )

    def attach(self) -> None:
        """Subscribe sync() to the primary viewport events."""
        primary = self._get_primary()
        if primary is None or self._attached_to is primary:
            return
        self.detach()
        for event in VIEWPORT_EVENTS:
            primary.on(event, self.sync)
        self._attached_to = primary

    def detach(self) -> None:
        if self._attached_to is None:
            return
        for event in VIEWPORT_EVENTS:
            self._attached_to.off(event, self.sync)
        self._attached_to = None

    def sync(self, **_event: Any) -> None:
        primary = self._get_primary()
        overview = self._get_overview()
        if primary is None or overview is None:
            return
        west, south, east, north = primary.get_bounds()
        camera = primary.get_camera()
        try:
            if overview.get_source(MinimapConfig.BOUNDS_SOURCE_ID) is not None:
                overview.set_source_data(MinimapConfig.BOUNDS_SOURCE_ID, bounds_polygon(west, south, east, north))
            overview.jump_to(center=camera.center, zoom=overview_zoom(camera.zoom))
        except RendererError as e:
            logger.warning(f"[MINIMAP] Sync failed: {e}")

"""CameraState - immutable viewport pose.

Captured before every style transition and restored exactly (no easing) once
the new style is ready, since a full style reload may reset the viewport.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from infra_map_viewer.render.renderer import Renderer


@dataclass(frozen=True)
class CameraState:
    """Viewport pose: center (lon, lat), zoom, bearing and pitch in degrees."""

    center: tuple[float, float]
    zoom: float
    bearing: float = 0.0
    pitch: float = 0.0

    @property
    def lon(self) -> float:
        return self.center[0]

    @property
    def lat(self) -> float:
        return self.center[1]

    @staticmethod
    def capture(renderer: Renderer) -> CameraState:
        """Snapshot the renderer's current pose."""
        return renderer.get_camera()

    def restore(self, renderer: Renderer) -> None:
        """Jump the renderer back to this pose instantly."""
        renderer.jump_to(center=self.center, zoom=self.zoom, bearing=self.bearing, pitch=self.pitch)

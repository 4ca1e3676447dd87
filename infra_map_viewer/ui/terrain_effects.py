"""Terrain (3D) effects: exaggeration ramp, sky layer and camera pitch easing.

All motion is driven by the FrameScheduler. Two named loops are used:

    terrain-exaggeration: ramps terrain exaggeration from 0 to the target (ease-out-quart)
    camera-ease: interpolates pitch/bearing towards a target (ease-out-quad)

Starting a loop of either kind cancels the running one, so a second ease
never fights the first. A canceled camera ease drops its completion callback.
"""

import logging
from collections.abc import Callable

from infra_map_viewer.constants import TerrainConfig
from infra_map_viewer.core.frame_scheduler import AnimationHandle, FrameScheduler
from infra_map_viewer.core.geo_calculator import GeoCalculator, ease_out_quad, ease_out_quart
from infra_map_viewer.model.style_mode import TerrainParams
from infra_map_viewer.render.renderer import Renderer, RendererError

logger = logging.getLogger(__name__)

EXAGGERATION_LOOP = "terrain-exaggeration"
CAMERA_EASE_LOOP = "camera-ease"


def terrain_source_spec() -> dict:
    return {"type": "raster-dem", "url": TerrainConfig.SOURCE_URL, "tileSize": TerrainConfig.SOURCE_TILE_SIZE}


def sky_layer_spec(sun_intensity: float) -> dict:
    return {
        "id": TerrainConfig.SKY_LAYER_ID,
        "type": "sky",
        "paint": {
            "sky-type": "atmosphere",
            "sky-atmosphere-sun": [0.0, 0.0],
            "sky-atmosphere-sun-intensity": sun_intensity,
        },
    }


class TerrainEffectAnimator:
    """Applies and removes the 3D terrain effect on the mounted renderer."""

    def __init__(self, scheduler: FrameScheduler, get_renderer: Callable[[], Renderer | None]) -> None:
        self._scheduler = scheduler
        self._get_renderer = get_renderer

    # =========================================================================
    # Frame-driven primitives
    # =========================================================================

    def animate_exaggeration(self, target: float, duration_ms: float) -> AnimationHandle:
        """Ramp terrain exaggeration from 0 to target over duration_ms.

        The first frame after the call is progress 0. Frames are skipped while
        no terrain is set (e.g. removed by a style swap mid-ramp).
        """
        start: list[float] = []

        def update(timestamp: float) -> None:
            if not start:
                start.append(timestamp)
            progress = min((timestamp - start[0]) / duration_ms, 1.0) if duration_ms > 0 else 1.0
            renderer = self._get_renderer()
            if renderer is not None:
                terrain = renderer.get_terrain()
                if terrain is not None:
                    try:
                        renderer.set_terrain({**terrain, "exaggeration": target * ease_out_quart(progress)})
                    except RendererError as e:
                        logger.warning(f"[TERRAIN] Error animating terrain exaggeration: {e}")
            if progress >= 1.0 or renderer is None:
                self._scheduler.cancel(handle)

        handle = self._scheduler.start(update, name=EXAGGERATION_LOOP)
        return handle

    def ease_camera(
        self,
        duration_ms: float,
        pitch: float | None = None,
        bearing: float | None = None,
        on_complete: Callable[[], None] | None = None,
    ) -> AnimationHandle | None:
        """Ease pitch and/or bearing to a target with ease-out-quad.

        Bearing follows the shortest way round. on_complete runs once, after the
        final frame has been applied.

        Returns:
            Handle of the easing loop, or None if no renderer is mounted.
        """
        renderer = self._get_renderer()
        if renderer is None:
            return None
        origin = renderer.get_camera()
        bearing_delta = GeoCalculator.shortest_bearing_delta(origin.bearing, bearing) if bearing is not None else 0.0
        pitch_delta = pitch - origin.pitch if pitch is not None else 0.0
        start: list[float] = []

        def update(timestamp: float) -> None:
            if not start:
                start.append(timestamp)
            current = self._get_renderer()
            if current is None:
                self._scheduler.cancel(handle)
                return
            progress = min((timestamp - start[0]) / duration_ms, 1.0) if duration_ms > 0 else 1.0
            eased = ease_out_quad(progress)
            if progress >= 1.0:
                # Land exactly on the target
                current.jump_to(pitch=pitch, bearing=bearing % 360.0 if bearing is not None else None)
                self._scheduler.cancel(handle)
                if on_complete is not None:
                    on_complete()
                return
            current.jump_to(
                pitch=origin.pitch + pitch_delta * eased if pitch is not None else None,
                bearing=(origin.bearing + bearing_delta * eased) % 360.0 if bearing is not None else None,
            )

        handle = self._scheduler.start(update, name=CAMERA_EASE_LOOP)
        return handle

    def cancel(self) -> None:
        """Stop the exaggeration ramp and any camera ease."""
        self._scheduler.cancel(self._scheduler.handle_for(EXAGGERATION_LOOP))
        self._scheduler.cancel(self._scheduler.handle_for(CAMERA_EASE_LOOP))

    # =========================================================================
    # 3D on/off
    # =========================================================================

    def apply_or_remove_3d(self, active: bool, params: TerrainParams) -> None:
        """Turn the terrain effect on (ramp, sky, tilt if flat) or off (flatten, then remove)."""
        renderer = self._get_renderer()
        if renderer is None:
            return
        if active:
            self._apply_3d(renderer, params)
        else:
            self._remove_3d(renderer)

    def _apply_3d(self, renderer: Renderer, params: TerrainParams) -> None:
        try:
            if renderer.get_source(TerrainConfig.SOURCE_ID) is None:
                renderer.add_source(TerrainConfig.SOURCE_ID, terrain_source_spec())
            renderer.set_terrain({"source": TerrainConfig.SOURCE_ID, "exaggeration": TerrainConfig.INITIAL_EXAGGERATION})
            self.animate_exaggeration(target=params.exaggeration, duration_ms=TerrainConfig.EXAGGERATION_RAMP_MS)
            if renderer.get_layer(TerrainConfig.SKY_LAYER_ID) is None:
                renderer.add_layer(sky_layer_spec(params.sun_intensity))
            # Only tilt a flat camera; keep a pitch the user already chose
            if renderer.get_camera().pitch < TerrainConfig.FLAT_PITCH_THRESHOLD_DEG:
                self.ease_camera(duration_ms=TerrainConfig.PITCH_IN_MS, pitch=params.pitch)
            logger.info(f"[TERRAIN] 3D on: exaggeration {params.exaggeration}, pitch {params.pitch}")
        except RendererError as e:
            logger.warning(f"[TERRAIN] Error applying 3D effects: {e}")

    def _remove_3d(self, renderer: Renderer) -> None:
        self._scheduler.cancel(self._scheduler.handle_for(EXAGGERATION_LOOP))
        if renderer.get_camera().pitch > 0:
            # Sky and terrain go only once the camera is flat again
            self.ease_camera(duration_ms=TerrainConfig.PITCH_OUT_MS, pitch=0.0, on_complete=self.remove_effects_now)
        else:
            self.remove_effects_now()

    def remove_effects_now(self) -> None:
        """Synchronously drop the sky layer and the terrain (if present)."""
        renderer = self._get_renderer()
        if renderer is None:
            return
        try:
            if renderer.get_layer(TerrainConfig.SKY_LAYER_ID) is not None:
                renderer.remove_layer(TerrainConfig.SKY_LAYER_ID)
            if renderer.get_terrain() is not None:
                renderer.set_terrain(None)
        except RendererError as e:
            logger.warning(f"[TERRAIN] Error removing 3D effects: {e}")

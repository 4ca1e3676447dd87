"""Style mode transitions: swap the base style while preserving the view.

Transition protocol for set_mode(satellite_on, terrain_on):

1. Snapshot the live camera.
2. Remove terrain and sky synchronously, stopping terrain animations.
3. Resolve the target style. If it is already loaded (and no load is in
   flight), skip to step 6.
4. Ask the renderer to load the target style.
5. When the style is ready: re-attach everything derived (domain layers,
   layer visibility, measurement entities, interaction handlers, pulse
   animation) through the reattach callback, then restore the camera exactly.
6. Apply or remove the terrain effect for the new mode.

A request issued while a load is in flight preempts it: it restarts from
step 1 with the live camera, and the superseded ready signal is ignored.
If the ready signal never fires the view stays on the old style; this is
only logged.
"""

import logging
from collections.abc import Callable

from infra_map_viewer.model.camera_state import CameraState
from infra_map_viewer.model.style_mode import StyleMode, resolve_style_mode, style_url, terrain_params
from infra_map_viewer.render.renderer import Renderer
from infra_map_viewer.ui.context import ViewModeContext
from infra_map_viewer.ui.terrain_effects import TerrainEffectAnimator

logger = logging.getLogger(__name__)


class StyleModeController:
    """Serializes style mode changes on the mounted primary renderer."""

    def __init__(
        self,
        get_renderer: Callable[[], Renderer | None],
        terrain: TerrainEffectAnimator,
        view_mode: ViewModeContext,
        reattach: Callable[[], None],
    ) -> None:
        self._get_renderer = get_renderer
        self._terrain = terrain
        self._view_mode = view_mode
        self._reattach = reattach
        self._generation = 0
        self._pending: int | None = None

    @property
    def loaded_mode(self) -> StyleMode:
        """Style most recently requested from the renderer."""
        return self._view_mode.loaded_mode

    @property
    def is_loading(self) -> bool:
        return self._pending is not None

    def reset(self) -> None:
        """Forget in-flight loads and modes. The next renderer starts on the 2D base style."""
        self._generation += 1
        self._pending = None
        self._view_mode.clear()

    def set_mode(self, satellite_on: bool, terrain_on: bool) -> bool:
        """Transition to the style and terrain effect for the given toggles.

        Returns:
            True if a style swap was requested, False if it was skipped
            (same style) or no renderer is mounted.
        """
        renderer = self._get_renderer()
        if renderer is None:
            return False

        self._generation += 1
        generation = self._generation
        camera = CameraState.capture(renderer)

        self._terrain.cancel()
        self._terrain.remove_effects_now()

        target = resolve_style_mode(satellite_on, terrain_on)
        params = terrain_params(target, terrain_on)

        if target == self._view_mode.loaded_mode and self._pending is None:
            logger.info(f"[STYLE] Staying on {target.value}, terrain {'on' if terrain_on else 'off'}")
            self._terrain.apply_or_remove_3d(terrain_on, params)
            return False

        def on_ready() -> None:
            if generation != self._generation:
                logger.info(f"[STYLE] Ignoring stale style ready (request {generation}, current {self._generation})")
                return
            self._pending = None
            current = self._get_renderer()
            if current is None:
                return
            self._reattach()
            camera.restore(current)
            self._terrain.apply_or_remove_3d(terrain_on, params)
            logger.info(f"[STYLE] Transition to {target.value} complete")

        if self._pending is not None:
            logger.info(f"[STYLE] Preempting style request {self._pending} with {generation}")
        self._pending = generation
        self._view_mode.loaded_mode = target
        logger.info(f"[STYLE] Loading {target.value} (request {generation})")
        renderer.load_style(style_url(target), on_ready)
        return True

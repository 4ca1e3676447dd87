"""Reflect the externally owned layer toggles onto renderer layers."""

import logging
from collections.abc import Mapping

from infra_map_viewer.constants import LayerConfig
from infra_map_viewer.render.renderer import Renderer

logger = logging.getLogger(__name__)


def expand_companions(layer_id: str, companions: Mapping[str, list[str]] = LayerConfig.COMPANIONS) -> list[str]:
    """Render layers driven by one logical toggle (the id itself if it has no companions)."""
    return list(companions.get(layer_id, [layer_id]))


class LayerVisibilitySynchronizer:
    """Applies a layer-id -> visible mapping to the renderer.

    Layers that do not exist (yet) are skipped, and any error the renderer
    raises is treated as "layer not ready": a style swap may be in flight.
    The mapping is only read, never mutated.
    """

    def __init__(self, companions: Mapping[str, list[str]] | None = None) -> None:
        self._companions = companions if companions is not None else LayerConfig.COMPANIONS

    def apply(self, renderer: Renderer | None, visibility: Mapping[str, bool]) -> int:
        """Set visibility on every existing layer. Returns the number of layers updated."""
        if renderer is None:
            return 0
        updated = 0
        for layer_id, visible in visibility.items():
            for render_id in expand_companions(layer_id, self._companions):
                try:
                    if renderer.get_layer(render_id) is None:
                        continue
                    renderer.set_layout_property(render_id, "visibility", "visible" if visible else "none")
                    updated += 1
                except Exception as e:
                    logger.debug(f"[LAYERS] Layer '{render_id}' not ready: {type(e).__name__}: {e}")
        return updated

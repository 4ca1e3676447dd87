"""Registration of the infrastructure data sources and layers."""

import logging

from infra_map_viewer.constants import LayerConfig
from infra_map_viewer.render.renderer import Renderer

logger = logging.getLogger(__name__)


def register_domain_layers(renderer: Renderer | None) -> int:
    """Add every domain source and layer that is not present yet.

    Safe to call repeatedly: after a style swap it re-adds everything, on an
    intact style it adds nothing.

    Returns:
        Number of layers added.
    """
    if renderer is None:
        return 0
    for source_id, url in LayerConfig.SOURCES.items():
        if renderer.get_source(source_id) is None:
            renderer.add_source(source_id, {"type": "vector", "url": url})
    added = 0
    for spec in LayerConfig.LAYERS:
        if renderer.get_layer(spec["id"]) is None:
            renderer.add_layer(spec)
            added += 1
    if added:
        logger.info(f"[LAYERS] Registered {added} domain layers")
    return added

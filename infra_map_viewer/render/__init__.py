"""Renderer capability consumed by the map view core, and its pydeck implementation."""

from infra_map_viewer.render.renderer import (
    DeckRenderer,
    DuplicateIdError,
    LayerNotFoundError,
    Renderer,
    RendererError,
    SourceNotFoundError,
    hex_to_rgba,
)

__all__ = [
    "Renderer",
    "DeckRenderer",
    "RendererError",
    "LayerNotFoundError",
    "SourceNotFoundError",
    "DuplicateIdError",
    "hex_to_rgba",
]

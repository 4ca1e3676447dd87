"""Renderer capability and its pydeck-backed implementation.

The map view core never talks to a drawing library directly. It consumes the
Renderer protocol: maplibre-style sources and layers, paint/layout properties,
terrain, camera, projection, event subscriptions and style loading with a
completion signal.

DeckRenderer keeps that state in memory and renders it to a pydeck.Deck. The
host front end reports back through notify_style_ready() and fire().

Style swap semantics (mirrors a full maplibre setStyle without diffing):
- sources, layers and terrain are discarded immediately
- layer-scoped event handlers are discarded (custom bindings must be re-issued)
- global handlers (move, zoom, click) survive
- on ready, the style's own default camera is applied if the style defines one
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from math import cos, radians, sin
from typing import Any, Protocol

import pydeck as pdk

from infra_map_viewer.constants import LayerConfig, MapConfig, TerrainConfig
from infra_map_viewer.core.geo_calculator import GeoCalculator
from infra_map_viewer.model.camera_state import CameraState

logger = logging.getLogger(__name__)

EventHandler = Callable[..., None]
Bounds = tuple[float, float, float, float]  # (west, south, east, north)

VIEWPORT_EVENTS = ("move", "zoom")


class RendererError(Exception):
    """Base class for renderer state errors."""


class LayerNotFoundError(RendererError):
    pass


class SourceNotFoundError(RendererError):
    pass


class DuplicateIdError(RendererError):
    pass


class Renderer(Protocol):
    """Capability the map view core consumes."""

    def add_source(self, source_id: str, spec: dict[str, Any]) -> None: ...

    def remove_source(self, source_id: str) -> None: ...

    def get_source(self, source_id: str) -> dict[str, Any] | None: ...

    def set_source_data(self, source_id: str, data: dict[str, Any]) -> None: ...

    def add_layer(self, spec: dict[str, Any]) -> None: ...

    def remove_layer(self, layer_id: str) -> None: ...

    def get_layer(self, layer_id: str) -> dict[str, Any] | None: ...

    def layer_ids(self) -> list[str]: ...

    def set_paint_property(self, layer_id: str, name: str, value: Any) -> None: ...

    def set_layout_property(self, layer_id: str, name: str, value: Any) -> None: ...

    def set_terrain(self, spec: dict[str, Any] | None) -> None: ...

    def get_terrain(self) -> dict[str, Any] | None: ...

    def get_camera(self) -> CameraState: ...

    def jump_to(
        self,
        center: tuple[float, float] | None = None,
        zoom: float | None = None,
        bearing: float | None = None,
        pitch: float | None = None,
    ) -> None: ...

    def get_bounds(self) -> Bounds: ...

    def project(self, lon: float, lat: float) -> tuple[float, float]: ...

    def on(self, event: str, handler: EventHandler, layer_id: str | None = None) -> None: ...

    def off(self, event: str, handler: EventHandler, layer_id: str | None = None) -> None: ...

    def load_style(self, style_url: str, on_ready: Callable[[], None]) -> None: ...

    def set_cursor(self, cursor: str) -> None: ...

    def remove(self) -> None: ...


class DeckRenderer:
    """In-memory maplibre-style renderer state, drawn with pydeck.

    Example:
        renderer = DeckRenderer(style_url=StyleConfig.BASE_2D_URL, camera=camera)
        renderer.add_source("points", {"type": "geojson", "data": feature})
        deck = renderer.to_deck()
    """

    def __init__(
        self,
        style_url: str,
        camera: CameraState,
        width: int = MapConfig.VIEWPORT_WIDTH,
        height: int = MapConfig.VIEWPORT_HEIGHT,
        max_pitch: float = MapConfig.MAX_PITCH,
    ) -> None:
        self.style_url = style_url
        self.width = width
        self.height = height
        self.max_pitch = max_pitch
        self.cursor = ""
        self.removed = False
        self._camera = camera
        self._sources: dict[str, dict[str, Any]] = {}
        self._layers: dict[str, dict[str, Any]] = {}
        self._terrain: dict[str, Any] | None = None
        self._handlers: dict[tuple[str, str | None], list[EventHandler]] = {}
        self._pending_style: tuple[str, Callable[[], None]] | None = None

    # =========================================================================
    # Sources
    # =========================================================================

    def add_source(self, source_id: str, spec: dict[str, Any]) -> None:
        if source_id in self._sources:
            raise DuplicateIdError(f"Source '{source_id}' already exists")
        self._sources[source_id] = copy.deepcopy(spec)

    def remove_source(self, source_id: str) -> None:
        if source_id not in self._sources:
            raise SourceNotFoundError(f"Source '{source_id}' does not exist")
        in_use = [layer_id for layer_id, layer in self._layers.items() if layer.get("source") == source_id]
        if in_use:
            raise RendererError(f"Source '{source_id}' is used by layers {in_use}")
        del self._sources[source_id]

    def get_source(self, source_id: str) -> dict[str, Any] | None:
        return self._sources.get(source_id)

    def set_source_data(self, source_id: str, data: dict[str, Any]) -> None:
        source = self._sources.get(source_id)
        if source is None:
            raise SourceNotFoundError(f"Source '{source_id}' does not exist")
        source["data"] = data

    # =========================================================================
    # Layers
    # =========================================================================

    def add_layer(self, spec: dict[str, Any]) -> None:
        layer_id = spec["id"]
        if layer_id in self._layers:
            raise DuplicateIdError(f"Layer '{layer_id}' already exists")
        source_id = spec.get("source")
        if source_id is not None and source_id not in self._sources:
            raise SourceNotFoundError(f"Layer '{layer_id}' references missing source '{source_id}'")
        layer = copy.deepcopy(spec)
        layer.setdefault("paint", {})
        layer.setdefault("layout", {})
        self._layers[layer_id] = layer

    def remove_layer(self, layer_id: str) -> None:
        if layer_id not in self._layers:
            raise LayerNotFoundError(f"Layer '{layer_id}' does not exist")
        del self._layers[layer_id]
        for event, scoped in list(self._handlers):
            if scoped == layer_id:
                del self._handlers[(event, scoped)]

    def get_layer(self, layer_id: str) -> dict[str, Any] | None:
        return self._layers.get(layer_id)

    def layer_ids(self) -> list[str]:
        """Layer ids bottom to top."""
        return list(self._layers)

    def _require_layer(self, layer_id: str) -> dict[str, Any]:
        layer = self._layers.get(layer_id)
        if layer is None:
            raise LayerNotFoundError(f"Layer '{layer_id}' does not exist")
        return layer

    def set_paint_property(self, layer_id: str, name: str, value: Any) -> None:
        self._require_layer(layer_id)["paint"][name] = value

    def set_layout_property(self, layer_id: str, name: str, value: Any) -> None:
        self._require_layer(layer_id)["layout"][name] = value

    def is_visible(self, layer_id: str) -> bool:
        return self._require_layer(layer_id)["layout"].get("visibility", "visible") != "none"

    # =========================================================================
    # Terrain
    # =========================================================================

    def set_terrain(self, spec: dict[str, Any] | None) -> None:
        if spec is not None and spec.get("source") not in self._sources:
            raise SourceNotFoundError(f"Terrain source '{spec.get('source')}' does not exist")
        self._terrain = dict(spec) if spec is not None else None

    def get_terrain(self) -> dict[str, Any] | None:
        return self._terrain

    # =========================================================================
    # Camera and projection
    # =========================================================================

    def get_camera(self) -> CameraState:
        return self._camera

    def jump_to(
        self,
        center: tuple[float, float] | None = None,
        zoom: float | None = None,
        bearing: float | None = None,
        pitch: float | None = None,
    ) -> None:
        """Move the camera instantly and emit move/zoom events."""
        old = self._camera
        new = CameraState(
            center=tuple(center) if center is not None else old.center,
            zoom=zoom if zoom is not None else old.zoom,
            bearing=bearing if bearing is not None else old.bearing,
            pitch=min(pitch, self.max_pitch) if pitch is not None else old.pitch,
        )
        self._camera = new
        if new != old:
            self.fire("move")
        if new.zoom != old.zoom:
            self.fire("zoom")

    def _world_size(self) -> float:
        return MapConfig.TILE_SIZE * 2**self._camera.zoom

    def project(self, lon: float, lat: float) -> tuple[float, float]:
        """Screen pixel position of a coordinate (bearing applied, pitch ignored)."""
        world = self._world_size()
        px, py = GeoCalculator.lonlat_to_world(lon, lat, world)
        cx, cy = GeoCalculator.lonlat_to_world(self._camera.lon, self._camera.lat, world)
        dx, dy = px - cx, py - cy
        theta = radians(self._camera.bearing)
        rx = dx * cos(theta) + dy * sin(theta)
        ry = -dx * sin(theta) + dy * cos(theta)
        return self.width / 2 + rx, self.height / 2 + ry

    def unproject(self, x: float, y: float) -> tuple[float, float]:
        world = self._world_size()
        cx, cy = GeoCalculator.lonlat_to_world(self._camera.lon, self._camera.lat, world)
        rx, ry = x - self.width / 2, y - self.height / 2
        theta = radians(self._camera.bearing)
        dx = rx * cos(theta) - ry * sin(theta)
        dy = rx * sin(theta) + ry * cos(theta)
        return GeoCalculator.world_to_lonlat(cx + dx, cy + dy, world)

    def get_bounds(self) -> Bounds:
        """Axis-aligned lon/lat box around the four screen corners."""
        corners = [
            self.unproject(0, 0),
            self.unproject(self.width, 0),
            self.unproject(self.width, self.height),
            self.unproject(0, self.height),
        ]
        lons = [c[0] for c in corners]
        lats = [c[1] for c in corners]
        return min(lons), min(lats), max(lons), max(lats)

    # =========================================================================
    # Events
    # =========================================================================

    def on(self, event: str, handler: EventHandler, layer_id: str | None = None) -> None:
        self._handlers.setdefault((event, layer_id), []).append(handler)

    def off(self, event: str, handler: EventHandler, layer_id: str | None = None) -> None:
        handlers = self._handlers.get((event, layer_id), [])
        if handler in handlers:
            handlers.remove(handler)

    def handler_count(self, event: str, layer_id: str | None = None) -> int:
        return len(self._handlers.get((event, layer_id), []))

    def fire(self, event: str, layer_id: str | None = None, **payload: Any) -> None:
        """Dispatch an event to its subscribers (front end -> core)."""
        for handler in list(self._handlers.get((event, layer_id), [])):
            handler(**payload)

    def set_cursor(self, cursor: str) -> None:
        self.cursor = cursor

    # =========================================================================
    # Style lifecycle
    # =========================================================================

    def load_style(self, style_url: str, on_ready: Callable[[], None]) -> None:
        """Start a full style swap. on_ready fires once, from notify_style_ready()."""
        if self._pending_style is not None:
            logger.info(f"[STYLE] Style load superseded: {self._pending_style[0]} -> {style_url}")
        self.style_url = style_url
        self._sources.clear()
        self._layers.clear()
        self._terrain = None
        self._handlers = {key: handlers for key, handlers in self._handlers.items() if key[1] is None}
        self._pending_style = (style_url, on_ready)

    @property
    def style_pending(self) -> bool:
        return self._pending_style is not None

    def notify_style_ready(self, style_json: dict[str, Any] | None = None) -> None:
        """Front end finished loading the requested style.

        Args:
            style_json: Loaded style document. Its root center/zoom/bearing/pitch,
                when present, replace the current camera.
        """
        if self._pending_style is None:
            return
        style_url, on_ready = self._pending_style
        self._pending_style = None
        if style_json:
            defaults = {key: style_json[key] for key in ("center", "zoom", "bearing", "pitch") if key in style_json}
            if defaults:
                self.jump_to(**defaults)
        logger.info(f"[STYLE] Style ready: {style_url}")
        on_ready()

    def remove(self) -> None:
        """Destroy the renderer. Pending style callbacks are dropped."""
        self._pending_style = None
        self._handlers.clear()
        self._sources.clear()
        self._layers.clear()
        self._terrain = None
        self.removed = True

    # =========================================================================
    # pydeck output
    # =========================================================================

    def get_view_state(self) -> pdk.ViewState:
        """Create Pydeck ViewState from the current camera."""
        return pdk.ViewState(
            longitude=self._camera.lon,
            latitude=self._camera.lat,
            zoom=self._camera.zoom,
            bearing=self._camera.bearing,
            pitch=self._camera.pitch,
            max_pitch=self.max_pitch,
        )

    def to_deck(self, tooltip: dict | bool = False) -> pdk.Deck:
        """Render visible layers (bottom to top) to a pydeck Deck."""
        deck_layers: list[pdk.Layer] = []
        if self._terrain is not None:
            deck_layers.append(_terrain_layer(self._terrain))
        for layer_id, layer in self._layers.items():
            if layer["layout"].get("visibility", "visible") == "none":
                continue
            deck_layer = _to_deck_layer(layer, self._sources.get(layer.get("source", "")))
            if deck_layer is not None:
                deck_layers.append(deck_layer)
        return pdk.Deck(
            layers=deck_layers,
            initial_view_state=self.get_view_state(),
            map_style=self.style_url,
            map_provider="mapbox",
            tooltip=tooltip,
        )


# =============================================================================
# maplibre layer spec -> pydeck layer
# =============================================================================


def hex_to_rgba(color: Any, opacity: float = 1.0) -> list[int]:
    """Convert '#rrggbb' or '#rrggbbaa' to [r, g, b, a]. Expressions fall back to grey."""
    if not isinstance(color, str) or not color.startswith("#") or len(color) not in (7, 9):
        return [102, 102, 102, int(255 * opacity)]
    r, g, b = (int(color[i : i + 2], 16) for i in (1, 3, 5))
    alpha = int(color[7:9], 16) / 255 if len(color) == 9 else 1.0
    return [r, g, b, int(255 * alpha * opacity)]


def vector_tile_url(url: str, template: str = LayerConfig.VECTOR_TILE_URL) -> str:
    """Tile URL template for a 'pmtiles://.../<name>.pmtiles' archive. Other URLs pass through."""
    if not url.startswith("pmtiles://"):
        return url
    name = url.rsplit("/", 1)[-1].removesuffix(".pmtiles")
    return template.replace("{name}", name)


def _number(value: Any, default: float) -> float:
    return float(value) if isinstance(value, (int, float)) else default


def _to_deck_layer(layer: dict[str, Any], source: dict[str, Any] | None) -> pdk.Layer | None:
    if source is None:
        return None
    paint = layer["paint"]
    layer_type = layer["type"]
    common: dict[str, Any] = {"id": layer["id"], "pickable": True}

    if source.get("type") == "vector":
        # Only the layer's own source-layer is decoded from each tile
        if "source-layer" in layer:
            common["load_options"] = {"mvt": {"layers": [layer["source-layer"]]}}
        return pdk.Layer(
            "MVTLayer",
            data=vector_tile_url(source.get("url", "")),
            get_fill_color=hex_to_rgba(
                paint.get("fill-color", paint.get("circle-color")), _number(paint.get("fill-opacity"), 1.0)
            ),
            get_line_color=hex_to_rgba(paint.get("line-color", paint.get("circle-stroke-color"))),
            get_line_width=_number(paint.get("line-width", paint.get("circle-stroke-width")), 1.0),
            point_radius_min_pixels=_number(paint.get("circle-radius"), 4.0),
            line_width_units="pixels",
            **common,
        )

    data = source.get("data")
    if layer_type == "circle":
        return pdk.Layer(
            "GeoJsonLayer",
            data=data,
            point_type="circle",
            get_fill_color=hex_to_rgba(paint.get("circle-color"), _number(paint.get("circle-opacity"), 1.0)),
            get_line_color=hex_to_rgba(paint.get("circle-stroke-color", "#ffffff")),
            get_point_radius=_number(paint.get("circle-radius"), 5.0),
            point_radius_units="pixels",
            line_width_min_pixels=_number(paint.get("circle-stroke-width"), 0.0),
            stroked=True,
            **common,
        )
    if layer_type == "line":
        return pdk.Layer(
            "GeoJsonLayer",
            data=data,
            get_line_color=hex_to_rgba(paint.get("line-color"), _number(paint.get("line-opacity"), 1.0)),
            get_line_width=_number(paint.get("line-width"), 1.0),
            line_width_units="pixels",
            **common,
        )
    if layer_type == "fill":
        return pdk.Layer(
            "GeoJsonLayer",
            data=data,
            get_fill_color=hex_to_rgba(paint.get("fill-color"), _number(paint.get("fill-opacity"), 1.0)),
            get_line_color=hex_to_rgba(paint.get("line-color", paint.get("fill-color"))),
            line_width_min_pixels=_number(paint.get("line-width"), 1.0),
            stroked=True,
            filled=True,
            **common,
        )
    # sky and other atmosphere layers have no deck.gl counterpart
    return None


# AWS Terrarium decoder, scaled by exaggeration
_TERRARIUM_DECODER = {"rScaler": 256, "gScaler": 1, "bScaler": 1 / 256, "offset": -32768}
_TERRARIUM_TILES = "https://s3.amazonaws.com/elevation-tiles-prod/terrarium/{z}/{x}/{y}.png"


def _terrain_layer(terrain: dict[str, Any]) -> pdk.Layer:
    """3D TerrainLayer whose elevation decoder is scaled by the terrain exaggeration."""
    factor = float(terrain.get("exaggeration", 1.0))
    decoder = {key: value * factor for key, value in _TERRARIUM_DECODER.items()}
    return pdk.Layer(
        "TerrainLayer",
        elevation_data=_TERRARIUM_TILES,
        elevation_decoder=decoder,
        id=f"{TerrainConfig.SOURCE_ID}-mesh",
        pickable=False,
    )

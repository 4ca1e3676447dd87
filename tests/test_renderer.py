"""Tests for the in-memory DeckRenderer.

Tests: source/layer bookkeeping, style lifecycle, camera and projection, pydeck output
Focus: The maplibre-like contract the view controllers rely on.
"""

import pytest

from infra_map_viewer.constants import StyleConfig
from infra_map_viewer.model.camera_state import CameraState
from infra_map_viewer.render.renderer import (
    DeckRenderer,
    DuplicateIdError,
    LayerNotFoundError,
    RendererError,
    SourceNotFoundError,
    hex_to_rgba,
    vector_tile_url,
)

POINT = {"type": "Feature", "geometry": {"type": "Point", "coordinates": [-96.73, 16.76]}, "properties": {}}


def add_point_layer(renderer: DeckRenderer, layer_id: str = "pt") -> None:
    renderer.add_source(layer_id, {"type": "geojson", "data": POINT})
    renderer.add_layer({"id": layer_id, "type": "circle", "source": layer_id, "paint": {"circle-color": "#ff0000"}})


# =============================================================================
# SOURCES AND LAYERS
# =============================================================================


class TestSourcesAndLayers:
    def test_duplicate_source_rejected(self, renderer: DeckRenderer) -> None:
        renderer.add_source("a", {"type": "geojson", "data": POINT})
        with pytest.raises(DuplicateIdError):
            renderer.add_source("a", {"type": "geojson", "data": POINT})

    def test_duplicate_layer_rejected(self, renderer: DeckRenderer) -> None:
        add_point_layer(renderer)
        with pytest.raises(DuplicateIdError):
            renderer.add_layer({"id": "pt", "type": "circle", "source": "pt"})

    def test_layer_needs_existing_source(self, renderer: DeckRenderer) -> None:
        with pytest.raises(SourceNotFoundError):
            renderer.add_layer({"id": "orphan", "type": "circle", "source": "nope"})

    def test_source_in_use_cannot_be_removed(self, renderer: DeckRenderer) -> None:
        add_point_layer(renderer)
        with pytest.raises(RendererError):
            renderer.remove_source("pt")
        renderer.remove_layer("pt")
        renderer.remove_source("pt")
        assert renderer.get_source("pt") is None

    def test_missing_layer_property_raises(self, renderer: DeckRenderer) -> None:
        with pytest.raises(LayerNotFoundError):
            renderer.set_paint_property("ghost", "circle-radius", 4)

    def test_layer_order_is_insertion_order(self, renderer: DeckRenderer) -> None:
        add_point_layer(renderer, "a")
        add_point_layer(renderer, "b")
        assert renderer.layer_ids() == ["a", "b"]

    def test_visibility_via_layout(self, renderer: DeckRenderer) -> None:
        add_point_layer(renderer)
        assert renderer.is_visible("pt")
        renderer.set_layout_property("pt", "visibility", "none")
        assert not renderer.is_visible("pt")

    def test_terrain_requires_source(self, renderer: DeckRenderer) -> None:
        with pytest.raises(SourceNotFoundError):
            renderer.set_terrain({"source": "dem", "exaggeration": 1.0})


# =============================================================================
# EVENTS AND STYLE LIFECYCLE
# =============================================================================


class TestStyleLifecycle:
    def test_load_style_drops_layers_and_layer_handlers(self, renderer: DeckRenderer) -> None:
        add_point_layer(renderer)
        calls: list[str] = []
        renderer.on("click", lambda **_: calls.append("layer"), layer_id="pt")
        renderer.on("click", lambda **_: calls.append("global"))

        renderer.load_style(StyleConfig.SATELLITE_URL, on_ready=lambda: None)

        assert renderer.layer_ids() == []
        assert renderer.get_source("pt") is None
        assert renderer.handler_count("click", layer_id="pt") == 0
        renderer.fire("click", lon=0.0, lat=0.0)
        assert calls == ["global"]

    def test_on_ready_fires_once(self, renderer: DeckRenderer) -> None:
        ready: list[int] = []
        renderer.load_style(StyleConfig.SATELLITE_URL, on_ready=lambda: ready.append(1))
        assert renderer.style_pending
        renderer.notify_style_ready()
        renderer.notify_style_ready()
        assert ready == [1]
        assert not renderer.style_pending
        assert renderer.style_url == StyleConfig.SATELLITE_URL

    def test_style_camera_applied_before_on_ready(self, renderer: DeckRenderer) -> None:
        seen: list[CameraState] = []
        renderer.load_style(StyleConfig.SATELLITE_URL, on_ready=lambda: seen.append(renderer.get_camera()))
        renderer.notify_style_ready(style_json={"center": [0.0, 0.0], "zoom": 1.0})
        assert seen[0].center == (0.0, 0.0)
        assert seen[0].zoom == 1.0

    def test_remove_drops_pending_callback(self, renderer: DeckRenderer) -> None:
        ready: list[int] = []
        renderer.load_style(StyleConfig.SATELLITE_URL, on_ready=lambda: ready.append(1))
        renderer.remove()
        renderer.notify_style_ready()
        assert ready == []
        assert renderer.removed

    def test_off_detaches_handler(self, renderer: DeckRenderer) -> None:
        calls: list[int] = []

        def handler(**_) -> None:
            calls.append(1)

        renderer.on("move", handler)
        renderer.off("move", handler)
        renderer.jump_to(zoom=12.0)
        assert calls == []


# =============================================================================
# CAMERA AND PROJECTION
# =============================================================================


class TestCamera:
    def test_jump_emits_move_and_zoom(self, renderer: DeckRenderer) -> None:
        events: list[str] = []
        renderer.on("move", lambda **_: events.append("move"))
        renderer.on("zoom", lambda **_: events.append("zoom"))
        renderer.jump_to(bearing=45.0)
        renderer.jump_to(zoom=3.0)
        assert events == ["move", "move", "zoom"]

    def test_unchanged_jump_is_silent(self, renderer: DeckRenderer) -> None:
        events: list[str] = []
        renderer.on("move", lambda **_: events.append("move"))
        renderer.jump_to(center=renderer.get_camera().center)
        assert events == []

    def test_pitch_clamped_to_max(self, renderer: DeckRenderer) -> None:
        renderer.jump_to(pitch=120.0)
        assert renderer.get_camera().pitch == 85.0

    def test_center_projects_to_viewport_middle(self, renderer: DeckRenderer) -> None:
        camera = renderer.get_camera()
        x, y = renderer.project(camera.lon, camera.lat)
        assert x == pytest.approx(640.0)
        assert y == pytest.approx(360.0)

    def test_unproject_inverts_project(self, renderer: DeckRenderer) -> None:
        renderer.jump_to(bearing=30.0)
        x, y = renderer.project(-96.6, 16.7)
        lon, lat = renderer.unproject(x, y)
        assert lon == pytest.approx(-96.6)
        assert lat == pytest.approx(16.7)

    def test_bounds_contain_center(self, renderer: DeckRenderer) -> None:
        west, south, east, north = renderer.get_bounds()
        camera = renderer.get_camera()
        assert west < camera.lon < east
        assert south < camera.lat < north


# =============================================================================
# PYDECK OUTPUT
# =============================================================================


class TestDeckOutput:
    def test_invisible_layers_not_rendered(self, renderer: DeckRenderer) -> None:
        add_point_layer(renderer, "shown")
        add_point_layer(renderer, "hidden")
        renderer.set_layout_property("hidden", "visibility", "none")
        deck = renderer.to_deck()
        assert [layer.id for layer in deck.layers] == ["shown"]

    def test_terrain_adds_terrain_layer(self, renderer: DeckRenderer) -> None:
        renderer.add_source("dem", {"type": "raster-dem", "url": "https://example.invalid/dem.json"})
        renderer.set_terrain({"source": "dem", "exaggeration": 1.5})
        deck = renderer.to_deck()
        assert deck.layers[0].type == "TerrainLayer"

    def test_vector_layer_reads_tiles_of_its_source_layer(self, renderer: DeckRenderer) -> None:
        renderer.add_source("presa", {"type": "vector", "url": "pmtiles://data/presamargarita.pmtiles"})
        renderer.add_layer(
            {"id": "presa", "type": "fill", "source": "presa", "source-layer": "presamargarita_tile", "paint": {}}
        )
        (layer,) = renderer.to_deck().layers
        assert layer.type == "MVTLayer"
        assert layer.load_options == {"mvt": {"layers": ["presamargarita_tile"]}}

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("pmtiles://data/inpi.pmtiles", "http://tiles.test/inpi/{z}/{x}/{y}.mvt"),
            ("https://tiles.test/other/{z}/{x}/{y}.pbf", "https://tiles.test/other/{z}/{x}/{y}.pbf"),
        ],
    )
    def test_vector_tile_url(self, url: str, expected: str) -> None:
        assert vector_tile_url(url, template="http://tiles.test/{name}/{z}/{x}/{y}.mvt") == expected

    def test_sky_layer_has_no_deck_counterpart(self, renderer: DeckRenderer) -> None:
        renderer.add_layer({"id": "sky", "type": "sky", "paint": {}})
        assert renderer.to_deck().layers == []

    @pytest.mark.parametrize(
        "color,opacity,expected",
        [
            ("#ff0000", 0.5, [255, 0, 0, 127]),
            ("#00ff00", 1.0, [0, 255, 0, 255]),
            ("#0000ffff", 0.5, [0, 0, 255, 127]),
            (["match", ["get", "x"], "#fff"], 1.0, [102, 102, 102, 255]),
        ],
    )
    def test_hex_to_rgba(self, color, opacity: float, expected: list[int]) -> None:
        assert hex_to_rgba(color, opacity) == expected

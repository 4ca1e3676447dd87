"""Configuration constants for the infrastructure map viewer.

All configurable parameters are centralized here for easy tuning.

Classes:
    AppConfig: UI application settings
    MapConfig: Initial primary map view parameters
    StyleConfig: Base map style resources (2D, outdoor 3D, satellite, minimap)
    TerrainConfig: Terrain source, exaggeration and pitch parameters per mode
    AnimationConfig: Marker pulse, community pulse and compass smoothing
    MeasurementConfig: Route/line measurement styling and labels
    RoutingConfig: External routing service (OSRM) settings
    MinimapConfig: Overview map parameters
    LayerConfig: Domain data sources, layers, companions and default visibility
    PopupConfig: Contextual popup fields per layer
"""

import os


class AppConfig:
    """UI application settings."""

    TITLE = "Presa Margarita Maza (Paso Ancho)"
    ICON = "🗺️"
    LAYOUT = "wide"
    MAP_HEIGHT = 720
    ATTRIBUTION = "Secretaría de Gobernación"


class MapConfig:
    """Initial primary map view parameters."""

    START_CENTER_LON = -96.72966
    START_CENTER_LAT = 16.76375
    START_ZOOM = 9.65
    START_PITCH = 0.0
    START_BEARING = 0.0
    MAX_PITCH = 85.0

    # Viewport size used for projection until the front end reports its own
    VIEWPORT_WIDTH = 1280
    VIEWPORT_HEIGHT = 720

    # Web Mercator world size at zoom 0 (maplibre uses 512px tiles)
    TILE_SIZE = 512


class StyleConfig:
    """Base map style resources.

    Four toggle combinations collapse to three styles: terrain effects are layered
    on top of the satellite style rather than swapping its URL.
    """

    MAPTILER_KEY = os.environ.get("MAPTILER_API_KEY", "")

    BASE_2D_URL = "https://www.mapabase.atdt.gob.mx/style.json"
    OUTDOOR_3D_URL = f"https://api.maptiler.com/maps/outdoor-v2/style.json?key={MAPTILER_KEY}"
    SATELLITE_URL = f"https://api.maptiler.com/maps/satellite/style.json?key={MAPTILER_KEY}"
    MINIMAP_URL = f"https://api.maptiler.com/maps/dataviz-light/style.json?key={MAPTILER_KEY}"


class TerrainConfig:
    """Terrain source and 3D effect parameters."""

    SOURCE_ID = "terrain-rgb"
    SOURCE_URL = f"https://api.maptiler.com/tiles/terrain-rgb-v2/tiles.json?key={StyleConfig.MAPTILER_KEY}"
    SOURCE_TILE_SIZE = 256
    SKY_LAYER_ID = "sky"

    # Satellite terrain is gentler than outdoor terrain to keep imagery legible
    OUTDOOR_EXAGGERATION = 1.5
    OUTDOOR_PITCH = 70.0
    OUTDOOR_SUN_INTENSITY = 5.0
    SATELLITE_EXAGGERATION = 1.2
    SATELLITE_PITCH = 60.0
    SATELLITE_SUN_INTENSITY = 3.0

    # Terrain starts barely raised, then ramps to the target exaggeration
    INITIAL_EXAGGERATION = 0.1
    EXAGGERATION_RAMP_MS = 2500.0

    # Only tilt the camera automatically when it is (nearly) flat
    FLAT_PITCH_THRESHOLD_DEG = 5.0
    PITCH_IN_MS = 1500.0
    PITCH_OUT_MS = 1200.0
    RESET_NORTH_MS = 1000.0


class AnimationConfig:
    """Continuous animation parameters (timestamps in milliseconds)."""

    # Transient marker pulse: radius = BASE * (|sin(t / PERIOD)| + OFFSET)
    PULSE_BASE_RADIUS = 15.0
    PULSE_PERIOD_MS = 500.0
    PULSE_RADIUS_OFFSET = 0.5
    PULSE_OPACITY_RADIUS = 25.0  # opacity = 1 - radius / PULSE_OPACITY_RADIUS

    # Community layer breathing (slower, independent phase)
    COMMUNITY_PERIOD_MS = 1200.0
    COMMUNITY_RADIUS = (8.0, 12.0)
    COMMUNITY_HALO_RADIUS = (12.0, 18.0)
    COMMUNITY_HALO_OPACITY = (0.1, 0.25)
    COMMUNITY_PULSE_OPACITY_FACTOR = 0.4

    # Compass needle moves this fraction of the remaining angle per frame
    COMPASS_SMOOTHING = 0.15


class MeasurementConfig:
    """Route and straight-line measurement styling and labels."""

    ROUTE_COLOR = "#007cbf"
    ROUTE_WIDTH = 5
    ROUTE_MARKER_COLOR = "#009f81"
    LINE_COLOR = "#ff6b35"
    LINE_WIDTH = 4
    LINE_DASH = [2, 2]
    LINE_OPACITY = 0.8
    ENDPOINT_RADIUS = 6
    TRANSIENT_PULSE_RADIUS = 10
    MARKER_STROKE_COLOR = "#ffffff"

    LINE_LABEL = "straight line"
    HOUR_SINGULAR = "hora"
    HOUR_PLURAL = "horas"
    MINUTES_UNIT = "min"

    ROUTE_FAILED_MESSAGE = "No se pudo calcular la ruta. Por favor, inténtelo de nuevo."

    CROSSHAIR_CURSOR = "crosshair"
    POINTER_CURSOR = "pointer"

    # Two clicks per measurement gesture: start and end
    MAX_POINTS = 2


class RoutingConfig:
    """External routing service settings (OSRM HTTP API)."""

    BASE_URL = "https://router.project-osrm.org"
    PROFILE = "driving"
    TIMEOUT_S = 20
    OK_CODE = "Ok"


class MinimapConfig:
    """Overview map parameters."""

    ZOOM_OFFSET = 3.0
    BOUNDS_SOURCE_ID = "viewport-bounds"
    BOUNDS_FILL_LAYER_ID = "viewport-bounds-fill"
    BOUNDS_OUTLINE_LAYER_ID = "viewport-bounds-outline"
    BOUNDS_COLOR = "#007cbf"
    WIDTH = 240
    HEIGHT = 180


# ID_Pueblo 1..72 coloured with the Dark2 palette (cycled), unknown ids in grey
_DARK2 = ["#1b9e77", "#d95f02", "#7570b3", "#e7298a", "#66a61e", "#e6ab02", "#a6761d", "#666666"]
_PUEBLO_MATCH: list = ["match", ["get", "ID_Pueblo"]]
for _i in range(1, 73):
    _PUEBLO_MATCH.extend([str(_i), _DARK2[_i % len(_DARK2)]])
_PUEBLO_MATCH.append("#666666")


class LayerConfig:
    """Domain data sources and layers.

    Layers are listed bottom to top. Companion layers share their primary's
    source and follow its visibility toggle.
    """

    COMMUNITY = "comind"
    COMMUNITY_HALO = "comind-halo"
    COMMUNITY_PULSE = "comind-pulse"

    SOURCES: dict[str, str] = {
        "LocalidadesSedeINPI": "pmtiles://data/inpi.pmtiles",
        "perimetrales": "pmtiles://data/perimetrales_nocert_oax.pmtiles",
        "lrvillasola": "pmtiles://data/lr_villasola.pmtiles",
        "acueducto": "pmtiles://data/acueductoyramales.pmtiles",
        "locvillasola": "pmtiles://data/loc_villasola.pmtiles",
        "comind": "pmtiles://data/comunidades_inpi.pmtiles",
        "presa": "pmtiles://data/presamargarita.pmtiles",
    }

    # The deck fetches z/x/y vector tiles, e.g. from `pmtiles serve data/`
    VECTOR_TILE_URL = os.environ.get("VECTOR_TILE_URL", "http://localhost:8080/{name}/{z}/{x}/{y}.mvt")

    LAYERS: list[dict] = [
        {
            "id": "LocalidadesSedeINPI",
            "type": "circle",
            "source": "LocalidadesSedeINPI",
            "source-layer": "inpi_tile",
            "paint": {
                "circle-radius": 3.2,
                "circle-color": _PUEBLO_MATCH,
                "circle-stroke-color": "#ffffff",
                "circle-stroke-width": 0,
            },
        },
        {
            "id": "perimetrales",
            "type": "fill",
            "source": "perimetrales",
            "source-layer": "perimetrales_nocert_oax_tile",
            "paint": {"fill-color": "#15ff00ff", "fill-opacity": 0.5, "fill-outline-color": "#ffffffff"},
        },
        {
            "id": "lrvillasola",
            "type": "circle",
            "source": "lrvillasola",
            "source-layer": "lr_villasola_tile",
            "paint": {
                "circle-color": "#0da326ff",
                "circle-radius": 8,
                "circle-opacity": 0.8,
                "circle-stroke-color": "#ffffffff",
                "circle-stroke-width": 2,
            },
        },
        {
            "id": "acueducto",
            "type": "line",
            "source": "acueducto",
            "source-layer": "acueductoyramales_tile",
            "paint": {"line-color": "#00FFF0", "line-width": 3, "line-opacity": 0.8},
        },
        {
            "id": "locvillasola",
            "type": "fill",
            "source": "locvillasola",
            "source-layer": "loc_villasola_tile",
            "paint": {"fill-color": "#f0f34cff", "fill-opacity": 0.7, "fill-outline-color": "#ffffffff"},
        },
        {
            "id": "comind-halo",
            "type": "circle",
            "source": "comind",
            "source-layer": "comunidades_inpi_tile",
            "paint": {"circle-color": "#df7649", "circle-radius": 12, "circle-opacity": 0.15, "circle-blur": 0.8},
        },
        {
            "id": "comind-pulse",
            "type": "circle",
            "source": "comind",
            "source-layer": "comunidades_inpi_tile",
            "paint": {"circle-color": "#df7649", "circle-radius": 15, "circle-opacity": 0.6},
        },
        {
            "id": "comind",
            "type": "circle",
            "source": "comind",
            "source-layer": "comunidades_inpi_tile",
            "paint": {
                "circle-color": "#df7649",
                "circle-radius": 8,
                "circle-stroke-color": "#ffffff",
                "circle-stroke-width": 2.5,
            },
        },
        {
            "id": "presa",
            "type": "fill",
            "source": "presa",
            "source-layer": "presamargarita_tile",
            "paint": {"fill-color": "#4c9af3ff", "fill-opacity": 0.8, "fill-outline-color": "#ffffffff"},
        },
    ]

    # One logical toggle drives several render layers
    COMPANIONS: dict[str, list[str]] = {
        COMMUNITY: [COMMUNITY, COMMUNITY_HALO, COMMUNITY_PULSE],
    }

    DEFAULT_VISIBILITY: dict[str, bool] = {
        "acueducto": True,
        "presa": True,
        "LocalidadesSedeINPI": False,
        "comind": True,
        "locvillasola": False,
        "lrvillasola": False,
        "perimetrales": False,
    }

    LABELS: dict[str, str] = {
        "acueducto": "Acueducto y ramales",
        "presa": "Presa Margarita Maza",
        "comind": "Comunidades (area de influencia)",
        "locvillasola": "Localidades Villa Sola",
        "lrvillasola": "Localidades rurales",
        "perimetrales": "Nucleos Agrarios",
        "LocalidadesSedeINPI": "Pueblos Indígenas",
    }


assert all(layer["source"] in LayerConfig.SOURCES for layer in LayerConfig.LAYERS), "Layer with unknown source"
assert set(LayerConfig.DEFAULT_VISIBILITY) == set(LayerConfig.SOURCES), "Every source needs a default toggle"
assert set(LayerConfig.LABELS) == set(LayerConfig.DEFAULT_VISIBILITY)
assert all(
    companion in {layer["id"] for layer in LayerConfig.LAYERS}
    for companions in LayerConfig.COMPANIONS.values()
    for companion in companions
), "Companion layers must be declared in LAYERS"


class PopupConfig:
    """Contextual popups: (label, feature property) rows per layer."""

    HOVER_FIELDS: dict[str, list[tuple[str, str]]] = {
        "locvillasola": [("Localidad", "NOMGEO"), ("Ámbito", "AMBITO")],
        "lrvillasola": [("Localidad", "NOMGEO")],
        "perimetrales": [("Nucleo", "NOM_NUC"), ("Municipio", "MUNICIPIO"), ("Tipo", "tipo")],
    }

    # Click-based popups also switch the cursor to a pointer on hover
    CLICK_FIELDS: dict[str, list[tuple[str, str]]] = {
        "comind": [
            ("Entidad", "NOM_ENT"),
            ("Municipio", "NOM_MUN"),
            ("Localidad", "NOM_LOC"),
            ("Comunidad", "NOM_COM"),
        ],
        "LocalidadesSedeINPI": [
            ("Entidad", "NOM_ENT"),
            ("Municipio", "NOM_MUN"),
            ("Localidad", "NOM_LOC"),
            ("Pueblo", "Pueblo"),
        ],
    }


assert not set(PopupConfig.HOVER_FIELDS) & set(PopupConfig.CLICK_FIELDS)

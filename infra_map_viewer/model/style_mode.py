"""Style mode resolution.

Two independent toggles (satellite, terrain) select one of three style
resources. Satellite ignores the terrain toggle for style selection: terrain
relief is layered on top of the satellite imagery instead.

    satellite  terrain   -> mode
    False      False     -> BASE_2D
    False      True      -> OUTDOOR_3D
    True       *         -> SATELLITE

Terrain visual parameters are a separate lookup so satellite terrain can stay
gentler than outdoor terrain.
"""

from dataclasses import dataclass
from enum import Enum

from infra_map_viewer.constants import StyleConfig, TerrainConfig


class StyleMode(str, Enum):
    """Named base map style."""

    BASE_2D = "base_2d"
    OUTDOOR_3D = "outdoor_3d"
    SATELLITE = "satellite"


@dataclass(frozen=True)
class TerrainParams:
    """Target 3D effect: terrain exaggeration, camera pitch and sky sun intensity."""

    exaggeration: float
    pitch: float
    sun_intensity: float


FLAT_TERRAIN = TerrainParams(exaggeration=0.0, pitch=0.0, sun_intensity=0.0)

_STYLE_URLS: dict[StyleMode, str] = {
    StyleMode.BASE_2D: StyleConfig.BASE_2D_URL,
    StyleMode.OUTDOOR_3D: StyleConfig.OUTDOOR_3D_URL,
    StyleMode.SATELLITE: StyleConfig.SATELLITE_URL,
}
assert set(_STYLE_URLS) == set(StyleMode)


def resolve_style_mode(satellite_on: bool, terrain_on: bool) -> StyleMode:
    """Map the two view toggles to the style that should be loaded."""
    if satellite_on:
        return StyleMode.SATELLITE
    if terrain_on:
        return StyleMode.OUTDOOR_3D
    return StyleMode.BASE_2D


def terrain_params(mode: StyleMode, terrain_on: bool) -> TerrainParams:
    """Terrain effect parameters for a mode.

    Returns FLAT_TERRAIN when terrain is off.
    """
    if not terrain_on:
        return FLAT_TERRAIN
    if mode == StyleMode.SATELLITE:
        return TerrainParams(
            exaggeration=TerrainConfig.SATELLITE_EXAGGERATION,
            pitch=TerrainConfig.SATELLITE_PITCH,
            sun_intensity=TerrainConfig.SATELLITE_SUN_INTENSITY,
        )
    return TerrainParams(
        exaggeration=TerrainConfig.OUTDOOR_EXAGGERATION,
        pitch=TerrainConfig.OUTDOOR_PITCH,
        sun_intensity=TerrainConfig.OUTDOOR_SUN_INTENSITY,
    )


def style_url(mode: StyleMode) -> str:
    """Style resource URL for a mode."""
    return _STYLE_URLS[mode]

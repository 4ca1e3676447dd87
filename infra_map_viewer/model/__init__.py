"""Data model for the map viewer.

- CameraState: Immutable viewport pose (capture/restore)
- StyleMode / TerrainParams: Style resolution from the satellite and terrain toggles
- MeasurementPoint, RouteEntity, LineEntity: Measurement results and their id counter
"""

from infra_map_viewer.model.camera_state import CameraState
from infra_map_viewer.model.measurement import (
    EntityIdCounter,
    EntityKind,
    EntityStore,
    LineEntity,
    MeasurementEntity,
    MeasurementPoint,
    PointRole,
    RouteEntity,
    build_line_entity,
    build_route_entity,
    format_distance_km,
    format_duration,
)
from infra_map_viewer.model.style_mode import (
    FLAT_TERRAIN,
    StyleMode,
    TerrainParams,
    resolve_style_mode,
    style_url,
    terrain_params,
)

__all__ = [
    "CameraState",
    "StyleMode",
    "TerrainParams",
    "FLAT_TERRAIN",
    "resolve_style_mode",
    "terrain_params",
    "style_url",
    "MeasurementPoint",
    "PointRole",
    "EntityKind",
    "RouteEntity",
    "LineEntity",
    "MeasurementEntity",
    "EntityIdCounter",
    "EntityStore",
    "build_line_entity",
    "build_route_entity",
    "format_distance_km",
    "format_duration",
]

"""Renderer draw calls for measurement markers and persisted entities.

Transient markers exist only while a gesture is in progress. Each is a point
source with a pulsing companion layer underneath the solid marker:

    route: start-point-current, end-point-current (+ "-pulse")
    line:  start-point-line-current, end-point-line-current (+ "-pulse")

Persisted entities are drawn as one path layer plus start/end point layers,
keyed by entity id. Drawing an entity is idempotent, so the full entity list can
be replayed after a style swap.

Every call null-checks the renderer handle: the view may be torn down while
callbacks are still pending.
"""

import logging
from collections.abc import Callable
from typing import Any

from infra_map_viewer.constants import MeasurementConfig
from infra_map_viewer.model.measurement import (
    EntityKind,
    LineEntity,
    MeasurementEntity,
    MeasurementPoint,
    PointRole,
    RouteEntity,
)
from infra_map_viewer.render.renderer import Renderer

logger = logging.getLogger(__name__)

RendererGetter = Callable[[], Renderer | None]


def transient_source_id(kind: EntityKind, role: str) -> str:
    prefix = "line-" if kind == EntityKind.LINE else ""
    return f"{role}-point-{prefix}current"


TRANSIENT_SOURCE_IDS = [
    transient_source_id(kind, role) for kind in (EntityKind.ROUTE, EntityKind.LINE) for role in ("start", "end")
]
TRANSIENT_PULSE_LAYER_IDS = [f"{source_id}-pulse" for source_id in TRANSIENT_SOURCE_IDS]


def entity_layer_ids(entity: MeasurementEntity) -> dict[str, str]:
    """Source/layer ids of an entity: path, start and end."""
    if isinstance(entity, RouteEntity):
        return {
            "path": f"route-layer-{entity.id}",
            "path_source": f"route-source-{entity.id}",
            "start": f"start-point-{entity.id}",
            "end": f"end-point-{entity.id}",
        }
    return {
        "path": f"line-layer-{entity.id}",
        "path_source": f"line-source-{entity.id}",
        "start": f"start-line-point-{entity.id}",
        "end": f"end-line-point-{entity.id}",
    }


def _point_feature(coordinate: tuple[float, float]) -> dict[str, Any]:
    return MeasurementPoint(coordinate=coordinate, role=PointRole.START).as_geojson()


def _endpoint_paint(color: str) -> dict[str, Any]:
    return {
        "circle-radius": MeasurementConfig.ENDPOINT_RADIUS,
        "circle-color": color,
        "circle-stroke-width": 2,
        "circle-stroke-color": MeasurementConfig.MARKER_STROKE_COLOR,
    }


class MeasurementLayers:
    """Draws measurement visuals on whatever renderer is currently mounted."""

    def __init__(self, get_renderer: RendererGetter) -> None:
        self._get_renderer = get_renderer

    def draw_transient_marker(self, kind: EntityKind, point: MeasurementPoint) -> None:
        """Add (or move) the pulsing start/end marker of an in-progress gesture."""
        renderer = self._get_renderer()
        if renderer is None:
            return
        source_id = transient_source_id(kind, point.role.value)
        feature = point.as_geojson()
        if renderer.get_source(source_id) is not None:
            renderer.set_source_data(source_id, feature)
            return
        color = MeasurementConfig.LINE_COLOR if kind == EntityKind.LINE else MeasurementConfig.ROUTE_MARKER_COLOR
        renderer.add_source(source_id, {"type": "geojson", "data": feature})
        renderer.add_layer(
            {
                "id": f"{source_id}-pulse",
                "type": "circle",
                "source": source_id,
                "paint": {
                    "circle-radius": MeasurementConfig.TRANSIENT_PULSE_RADIUS,
                    "circle-color": color,
                    "circle-opacity": 0.8,
                },
            }
        )
        renderer.add_layer({"id": source_id, "type": "circle", "source": source_id, "paint": _endpoint_paint(color)})

    def clear_transient_markers(self) -> None:
        renderer = self._get_renderer()
        if renderer is None:
            return
        for source_id in TRANSIENT_SOURCE_IDS:
            for layer_id in (f"{source_id}-pulse", source_id):
                if renderer.get_layer(layer_id) is not None:
                    renderer.remove_layer(layer_id)
            if renderer.get_source(source_id) is not None:
                renderer.remove_source(source_id)

    def draw_entity(self, entity: MeasurementEntity) -> None:
        """Draw a persisted route or line. No-op if it is already drawn."""
        renderer = self._get_renderer()
        if renderer is None:
            return
        ids = entity_layer_ids(entity)
        if renderer.get_source(ids["path_source"]) is not None:
            return

        if isinstance(entity, LineEntity):
            color = MeasurementConfig.LINE_COLOR
            path_paint: dict[str, Any] = {
                "line-color": color,
                "line-width": MeasurementConfig.LINE_WIDTH,
                "line-opacity": MeasurementConfig.LINE_OPACITY,
                "line-dasharray": MeasurementConfig.LINE_DASH,
            }
        else:
            color = MeasurementConfig.ROUTE_COLOR
            path_paint = {
                "line-color": color,
                "line-width": MeasurementConfig.ROUTE_WIDTH,
                "line-opacity": MeasurementConfig.LINE_OPACITY,
            }

        renderer.add_source(
            ids["path_source"],
            {"type": "geojson", "data": {"type": "Feature", "geometry": entity.path_geometry, "properties": {}}},
        )
        renderer.add_layer(
            {
                "id": ids["path"],
                "type": "line",
                "source": ids["path_source"],
                "layout": {"line-join": "round", "line-cap": "round"},
                "paint": path_paint,
            }
        )
        for key, coordinate in (("start", entity.start), ("end", entity.end)):
            renderer.add_source(ids[key], {"type": "geojson", "data": _point_feature(coordinate)})
            renderer.add_layer({"id": ids[key], "type": "circle", "source": ids[key], "paint": _endpoint_paint(color)})
        logger.debug(f"[MEASURE] Drew {entity.kind.value} {entity.id}")

    def remove_entity(self, entity: MeasurementEntity) -> None:
        renderer = self._get_renderer()
        if renderer is None:
            return
        ids = entity_layer_ids(entity)
        pairs = ((ids["path"], ids["path_source"]), (ids["start"], ids["start"]), (ids["end"], ids["end"]))
        for layer_id, source_id in pairs:
            if renderer.get_layer(layer_id) is not None:
                renderer.remove_layer(layer_id)
            if renderer.get_source(source_id) is not None:
                renderer.remove_source(source_id)

    def clear_all(self, entities: list[MeasurementEntity]) -> None:
        """Remove every persisted entity and any transient marker."""
        for entity in entities:
            self.remove_entity(entity)
        self.clear_transient_markers()

"""Measurement data: points, persisted route/line entities and label formatting.

Route and line entities draw their ids from one shared, monotonically
increasing counter that is never reset within a session, so ids are unique
across both kinds even after the entities are cleared.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from shapely.geometry import LineString, Point, mapping

from infra_map_viewer.constants import MeasurementConfig
from infra_map_viewer.core.geo_calculator import GeoCalculator

LonLat = tuple[float, float]


class PointRole(str, Enum):
    START = "start"
    END = "end"


class EntityKind(str, Enum):
    ROUTE = "route"
    LINE = "line"


@dataclass(frozen=True)
class MeasurementPoint:
    """A clicked measurement point."""

    coordinate: LonLat
    role: PointRole

    def as_geojson(self) -> dict[str, Any]:
        return {"type": "Feature", "geometry": mapping(Point(self.coordinate)), "properties": {}}


@dataclass(frozen=True)
class RouteEntity:
    """Routed distance between two points, produced by the routing service."""

    id: int
    start: LonLat
    end: LonLat
    path_geometry: dict[str, Any]
    distance_km: str
    duration_label: str

    kind = EntityKind.ROUTE

    @property
    def detail(self) -> str:
        return self.duration_label


@dataclass(frozen=True)
class LineEntity:
    """Straight-line (great-circle) distance between two points."""

    id: int
    start: LonLat
    end: LonLat
    distance_km: str
    label: str = MeasurementConfig.LINE_LABEL

    kind = EntityKind.LINE

    @property
    def path_geometry(self) -> dict[str, Any]:
        return mapping(LineString([self.start, self.end]))

    @property
    def detail(self) -> str:
        return self.label


MeasurementEntity = RouteEntity | LineEntity


@dataclass
class EntityIdCounter:
    """Session-wide id source shared by route and line entities."""

    next_value: int = 0

    def next_id(self) -> int:
        value = self.next_value
        self.next_value += 1
        return value


@dataclass
class EntityStore:
    """Persisted measurement entities in creation order."""

    routes: list[RouteEntity] = field(default_factory=list)
    lines: list[LineEntity] = field(default_factory=list)

    def all(self) -> list[MeasurementEntity]:
        return sorted([*self.routes, *self.lines], key=lambda entity: entity.id)

    def clear(self) -> None:
        self.routes = []
        self.lines = []

    def __len__(self) -> int:
        return len(self.routes) + len(self.lines)


def format_distance_km(distance_km: float) -> str:
    """Distance with two decimals, e.g. 111.19."""
    return f"{distance_km:.2f}"


def format_duration(total_seconds: float) -> str:
    """Human duration label from whole hours and whole minutes.

    Minutes are the whole minutes of the sub-hour remainder. Hours are shown
    when > 0 (pluralized). Minutes are shown when > 0 or when there are no
    hours, so at least one unit is always present.

    Examples:
        3661 -> "1 hora 1 min"
        59 -> "0 min"
        7200 -> "2 horas"
    """
    hours = int(total_seconds // 3600)
    minutes = math.floor((total_seconds % 3600) / 60)
    parts: list[str] = []
    if hours > 0:
        unit = MeasurementConfig.HOUR_SINGULAR if hours == 1 else MeasurementConfig.HOUR_PLURAL
        parts.append(f"{hours} {unit}")
    if minutes > 0 or not parts:
        parts.append(f"{minutes} {MeasurementConfig.MINUTES_UNIT}")
    return " ".join(parts)


def build_line_entity(entity_id: int, start: LonLat, end: LonLat) -> LineEntity:
    """Create a straight-line entity using the haversine distance."""
    distance = GeoCalculator.haversine_distance_km(lon1=start[0], lat1=start[1], lon2=end[0], lat2=end[1])
    return LineEntity(id=entity_id, start=start, end=end, distance_km=format_distance_km(distance))


def build_route_entity(
    entity_id: int,
    start: LonLat,
    end: LonLat,
    distance_m: float,
    duration_s: float,
    geometry: dict[str, Any],
) -> RouteEntity:
    """Create a route entity from a routing result (meters, seconds, GeoJSON)."""
    return RouteEntity(
        id=entity_id,
        start=start,
        end=end,
        path_geometry=geometry,
        distance_km=format_distance_km(distance_m / 1000),
        duration_label=format_duration(duration_s),
    )

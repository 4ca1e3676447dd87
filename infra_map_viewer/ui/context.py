"""Context classes for the map view.

Pure data holders for the mutable state the map view owns. The measurement
state machine uses MapViewContext as its model; the controllers and the
Streamlit shell read from it.

Sub-contexts:
    MeasurementContext: In-progress points, persisted entities, id counter, pending route
    ViewModeContext: Satellite/3D toggles and the style currently loaded
    PopupContext: Contextual info popup shown by the interaction handlers
    UIMessagesContext: User-facing alerts
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field

from infra_map_viewer.constants import LayerConfig
from infra_map_viewer.model.measurement import EntityIdCounter, EntityStore, MeasurementPoint
from infra_map_viewer.model.style_mode import StyleMode

LonLat = tuple[float, float]


class BaseContext(ABC):
    """All contexts can be reset to their initial state."""

    @abstractmethod
    def clear(self) -> None:
        """Reset context to initial state."""
        ...


@dataclass(frozen=True)
class PendingRoute:
    """A routing lookup waiting to be executed or answered.

    token is the measurement generation at request time; a response is only
    applied if the generation has not moved on since.
    """

    token: int
    origin: LonLat
    destination: LonLat


@dataclass
class MeasurementContext(BaseContext):
    """Measurement gesture and result state.

    The id counter and the generation survive clear(): ids are never reused
    within a session, and stale routing responses must stay stale.
    """

    points: list[MeasurementPoint] = field(default_factory=list)
    entities: EntityStore = field(default_factory=EntityStore)
    ids: EntityIdCounter = field(default_factory=EntityIdCounter)
    generation: int = 0
    pending: PendingRoute | None = None

    def clear(self) -> None:
        self.points = []
        self.entities.clear()
        self.pending = None
        self.generation += 1

    def reset_points(self) -> None:
        self.points = []
        self.pending = None

    def point_coordinates(self) -> list[LonLat]:
        return [point.coordinate for point in self.points]


@dataclass
class ViewModeContext(BaseContext):
    """Satellite and 3D toggles plus the style mode currently requested."""

    satellite: bool = False
    terrain_3d: bool = False
    loaded_mode: StyleMode = StyleMode.BASE_2D

    def clear(self) -> None:
        self.satellite = False
        self.terrain_3d = False
        self.loaded_mode = StyleMode.BASE_2D


@dataclass
class PopupContext(BaseContext):
    """Contextual popup at a map position."""

    lon: float | None = None
    lat: float | None = None
    html: str = ""
    layer_id: str | None = None

    @property
    def visible(self) -> bool:
        return self.lon is not None and bool(self.html)

    def show(self, lon: float, lat: float, html: str, layer_id: str) -> None:
        self.lon = lon
        self.lat = lat
        self.html = html
        self.layer_id = layer_id

    def clear(self) -> None:
        self.lon = None
        self.lat = None
        self.html = ""
        self.layer_id = None


@dataclass
class UIMessagesContext(BaseContext):
    """User-facing alerts."""

    error: str = ""

    def clear(self) -> None:
        self.error = ""


@dataclass
class MapViewContext:
    """Shared context/model for the map view.

    Note: The 'state' field is managed by python-statemachine when this
    object is passed as the model. It stores the current state value.
    """

    state: str | None = None

    measurement: MeasurementContext = field(default_factory=MeasurementContext)
    mode: ViewModeContext = field(default_factory=ViewModeContext)
    popup: PopupContext = field(default_factory=PopupContext)
    messages: UIMessagesContext = field(default_factory=UIMessagesContext)

    # Owned by the surrounding UI; only read and reflected here
    layer_visibility: Mapping[str, bool] = field(default_factory=lambda: dict(LayerConfig.DEFAULT_VISIBILITY))

    # Bearing shown by the compass needle (smoothed towards the camera bearing)
    display_bearing: float = 0.0

    def __repr__(self) -> str:
        return (
            f"MapViewContext(state={self.state}, "
            f"points={len(self.measurement.points)}, "
            f"entities={len(self.measurement.entities)}, "
            f"satellite={self.mode.satellite}, 3d={self.mode.terrain_3d})"
        )

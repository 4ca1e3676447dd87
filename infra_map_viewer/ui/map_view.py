"""MapView - orchestration of the primary map, the overview and the measurement tools.

MapView owns explicit handles to the primary and overview renderers
(mount/destroy lifecycle, every use null-checked), the frame scheduler and
all controllers working on the renderers:

    StyleModeController: satellite/3D style transitions
    TerrainEffectAnimator: terrain exaggeration, sky and camera easing
    MinimapSynchronizer: overview follows the primary viewport
    InteractionBinder: domain layer popups
    MeasurementStateMachine + MeasurementLayers: route and line tools

Front-end code calls the toggle_*, handle_map_click, process_pending_route,
set_layer_visibility and reset_north operations, drives animation frames
with tick(), and reads everything it displays from ui_signals().
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from infra_map_viewer.constants import MeasurementConfig, TerrainConfig
from infra_map_viewer.core.frame_scheduler import FrameScheduler
from infra_map_viewer.core.routing_service import RouteResult, RoutingError
from infra_map_viewer.model.measurement import EntityKind, MeasurementEntity
from infra_map_viewer.render.renderer import Renderer
from infra_map_viewer.ui.animations import CompassNeedle, start_community_pulse, start_compass, start_marker_pulse
from infra_map_viewer.ui.context import MapViewContext, PendingRoute
from infra_map_viewer.ui.domain_layers import register_domain_layers
from infra_map_viewer.ui.interaction_binder import InteractionBinder
from infra_map_viewer.ui.layer_visibility import LayerVisibilitySynchronizer
from infra_map_viewer.ui.measurement_layers import MeasurementLayers
from infra_map_viewer.ui.minimap import MinimapSynchronizer
from infra_map_viewer.ui.state_machine import MeasurementStateMachine, TransitionLogListener
from infra_map_viewer.ui.style_controller import StyleModeController
from infra_map_viewer.ui.terrain_effects import TerrainEffectAnimator

logger = logging.getLogger(__name__)


class RoutingService(Protocol):
    def route(self, origin: tuple[float, float], destination: tuple[float, float]) -> RouteResult: ...


@dataclass(frozen=True)
class EntityLabel:
    """Overlay label of a persisted entity, placed at its end point on screen."""

    entity_id: int
    kind: EntityKind
    distance_km: str
    detail: str
    screen_position: tuple[float, float]


@dataclass(frozen=True)
class ViewSignals:
    """Everything the front end displays, as of the last frame."""

    display_bearing: float
    satellite: bool
    terrain_3d: bool
    measuring_route: bool
    measuring_line: bool
    labels: list[EntityLabel] = field(default_factory=list)
    popup_html: str = ""
    popup_position: tuple[float, float] | None = None
    alert: str = ""

    @property
    def measuring(self) -> bool:
        return self.measuring_route or self.measuring_line


class MapView:
    """Owner of the map renderers and every controller acting on them.

    Example:
        view = MapView()
        view.mount(primary=DeckRenderer(...), overview=DeckRenderer(...))
        view.toggle_line_measurement()
        view.handle_map_click(lon=-96.7, lat=16.7)
        view.tick(timestamp_ms=16.0)
        signals = view.ui_signals()
    """

    def __init__(self, context: MapViewContext | None = None, scheduler: FrameScheduler | None = None) -> None:
        self.sm = MeasurementStateMachine(context=context)
        self.sm.add_listener(TransitionLogListener())
        self.context: MapViewContext = self.sm.context
        self.scheduler = scheduler or FrameScheduler()

        self._primary: Renderer | None = None
        self._overview: Renderer | None = None

        self.measurement_layers = MeasurementLayers(self.get_primary)
        self.visibility = LayerVisibilitySynchronizer()
        self.terrain = TerrainEffectAnimator(self.scheduler, self.get_primary)
        self.style = StyleModeController(
            get_renderer=self.get_primary,
            terrain=self.terrain,
            view_mode=self.context.mode,
            reattach=self._reattach_after_style_swap,
        )
        self.minimap = MinimapSynchronizer(self.get_primary, self.get_overview)
        self.binder = InteractionBinder(self.context.popup, is_measuring=lambda: self.sm.is_measuring)
        self.compass = CompassNeedle(self.get_primary, display_bearing=self.context.display_bearing)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def get_primary(self) -> Renderer | None:
        return self._primary

    def get_overview(self) -> Renderer | None:
        return self._overview

    @property
    def is_mounted(self) -> bool:
        return self._primary is not None

    def mount(self, primary: Renderer, overview: Renderer | None = None) -> None:
        """Take ownership of the renderers and bring the view up."""
        if self.is_mounted:
            logger.info("[VIEW] Remounting: destroying previous renderers")
            self.destroy()
        self._primary = primary
        self._overview = overview

        register_domain_layers(primary)
        self.visibility.apply(primary, self.context.layer_visibility)
        self.binder.bind(primary)
        primary.on("click", self._on_map_click)

        start_marker_pulse(self.scheduler, self.get_primary)
        start_community_pulse(self.scheduler, self.get_primary)
        start_compass(self.scheduler, self.compass)

        self.minimap.setup_overview()
        self.minimap.attach()
        self.minimap.sync()
        logger.info("[VIEW] Mounted")

    def destroy(self) -> None:
        """Cancel every animation, detach handlers, reset view modes and release both renderers."""
        self.scheduler.cancel_all()
        self.minimap.detach()
        self.style.reset()
        primary, overview = self._primary, self._overview
        self._primary = None
        self._overview = None
        if primary is not None:
            self.binder.unbind(primary)
            primary.off("click", self._on_map_click)
            primary.remove()
        if overview is not None:
            overview.remove()
        logger.info("[VIEW] Destroyed")

    # =========================================================================
    # View modes
    # =========================================================================

    def toggle_satellite(self) -> None:
        self.context.mode.satellite = not self.context.mode.satellite
        self.style.set_mode(self.context.mode.satellite, self.context.mode.terrain_3d)

    def toggle_3d(self) -> None:
        self.context.mode.terrain_3d = not self.context.mode.terrain_3d
        self.style.set_mode(self.context.mode.satellite, self.context.mode.terrain_3d)

    def reset_north(self) -> None:
        """Ease bearing back to north. Pitch is kept in 3D, flattened otherwise."""
        pitch = None if self.context.mode.terrain_3d else 0.0
        self.terrain.ease_camera(duration_ms=TerrainConfig.RESET_NORTH_MS, bearing=0.0, pitch=pitch)

    def set_layer_visibility(self, visibility: Mapping[str, bool]) -> None:
        """Reflect the externally owned toggle mapping (kept by reference, never mutated)."""
        self.context.layer_visibility = visibility
        self.visibility.apply(self._primary, visibility)

    def _reattach_after_style_swap(self) -> None:
        """Rebuild everything a style swap discarded, in drawing order."""
        primary = self._primary
        if primary is None:
            return
        register_domain_layers(primary)
        self.visibility.apply(primary, self.context.layer_visibility)
        for entity in self.context.measurement.entities.all():
            self.measurement_layers.draw_entity(entity)
        kind = self._active_kind()
        if kind is not None:
            for point in self.context.measurement.points:
                self.measurement_layers.draw_transient_marker(kind, point)
        self.binder.bind(primary)
        start_marker_pulse(self.scheduler, self.get_primary)
        start_community_pulse(self.scheduler, self.get_primary)
        self._update_cursor()

    # =========================================================================
    # Measurement
    # =========================================================================

    def toggle_route_measurement(self) -> None:
        self._toggle_measurement("toggle_route")

    def toggle_line_measurement(self) -> None:
        self._toggle_measurement("toggle_line")

    def _toggle_measurement(self, event: str) -> None:
        # Both tools' results are cleared on any toggle
        drawn = self.context.measurement.entities.all()
        self.sm.send(event)
        self.measurement_layers.clear_all(drawn)
        self.context.popup.clear()
        self._update_cursor()

    def _active_kind(self) -> EntityKind | None:
        if self.sm.is_route_active:
            return EntityKind.ROUTE
        if self.sm.is_line_active:
            return EntityKind.LINE
        return None

    def _update_cursor(self) -> None:
        if self._primary is not None:
            self._primary.set_cursor(MeasurementConfig.CROSSHAIR_CURSOR if self.sm.is_measuring else "")

    def _on_map_click(self, lon: float, lat: float, **_: Any) -> None:
        self.handle_map_click(lon=lon, lat=lat)

    def handle_map_click(self, lon: float, lat: float) -> bool:
        """Feed a map click to the active measurement tool.

        Returns:
            True if the click placed a point, False if it was ignored (no tool
            active, or a route lookup is still pending).
        """
        kind = self._active_kind()
        if kind is None or not self.sm.accepts_clicks():
            return False
        lines_before = len(self.context.measurement.entities.lines)
        if not self.sm.try_transition("add_point", coordinate=(lon, lat)):
            return False

        measurement = self.context.measurement
        if kind == EntityKind.LINE and len(measurement.entities.lines) > lines_before:
            self.measurement_layers.clear_transient_markers()
            self.measurement_layers.draw_entity(measurement.entities.lines[-1])
        else:
            self.measurement_layers.draw_transient_marker(kind, measurement.points[-1])
        return True

    @property
    def pending_route(self) -> PendingRoute | None:
        return self.context.measurement.pending if self.sm.is_route_pending else None

    def process_pending_route(self, routing_service: RoutingService) -> bool:
        """Run the deferred routing lookup, if one is waiting.

        Returns:
            True if a lookup was performed (successful or not).
        """
        pending = self.pending_route
        if pending is None:
            return False
        try:
            result = routing_service.route(pending.origin, pending.destination)
        except RoutingError as e:
            self.complete_route(pending.token, error=str(e))
            return True
        self.complete_route(pending.token, result=result)
        return True

    def complete_route(self, token: int, result: RouteResult | None = None, error: str | None = None) -> bool:
        """Apply a routing response if it still belongs to the current gesture.

        Responses for a lookup the user has since abandoned (tool toggled off
        or toggled again) are discarded.

        Returns:
            True if the response was applied.
        """
        pending = self.pending_route
        if pending is None or pending.token != token:
            logger.info(f"[ROUTE] Discarding stale routing response (token {token})")
            return False
        if result is not None:
            self.sm.send("resolve_route", result=result)
            self.measurement_layers.clear_transient_markers()
            self.measurement_layers.draw_entity(self.context.measurement.entities.routes[-1])
        else:
            self.sm.send("fail_route", reason=error or "no route")
            self.measurement_layers.clear_transient_markers()
        return True

    # =========================================================================
    # Frames and signals
    # =========================================================================

    def tick(self, timestamp_ms: float) -> None:
        """Advance every running animation by one frame."""
        self.scheduler.tick(timestamp_ms)
        self.context.display_bearing = self.compass.display_bearing

    def dismiss_alert(self) -> None:
        self.context.messages.clear()

    def _entity_label(self, renderer: Renderer, entity: MeasurementEntity) -> EntityLabel:
        return EntityLabel(
            entity_id=entity.id,
            kind=entity.kind,
            distance_km=entity.distance_km,
            detail=entity.detail,
            screen_position=renderer.project(*entity.end),
        )

    def ui_signals(self) -> ViewSignals:
        primary = self._primary
        labels = []
        if primary is not None:
            labels = [self._entity_label(primary, entity) for entity in self.context.measurement.entities.all()]
        popup = self.context.popup
        return ViewSignals(
            display_bearing=self.context.display_bearing,
            satellite=self.context.mode.satellite,
            terrain_3d=self.context.mode.terrain_3d,
            measuring_route=self.sm.is_route_active,
            measuring_line=self.sm.is_line_active,
            labels=labels,
            popup_html=popup.html if popup.visible else "",
            popup_position=(popup.lon, popup.lat) if popup.visible else None,
            alert=self.context.messages.error,
        )

"""State machine for the measurement tools.

Uses python-statemachine for the route and straight-line measurement tools with:
- One state per (tool, gesture progress) pair
- Guarded event handling via try_transition()
- Transition actions that keep MeasurementContext consistent

Architecture Overview
---------------------
The machine only mutates the shared MapViewContext. Drawing markers and
entities on the renderer is done by the caller (MapView) after the event
has been accepted, so the machine stays testable without any renderer.

Routing follows a deferred-action pattern: the second route click moves the
machine to ROUTE_PENDING and records a PendingRoute. The lookup is executed
later (MapView.process_pending_route) and answered with resolve_route or
fail_route. Every tool toggle bumps the measurement generation, so a response
carrying an older token is discarded by the caller.

States:
    IDLE: No measurement tool active
    ROUTE_READY: Route tool active, no point yet
    ROUTE_COLLECTING: Route start placed, waiting for the end point
    ROUTE_PENDING: Both route points placed, waiting for the routing service
    LINE_READY: Line tool active, no point yet
    LINE_COLLECTING: Line start placed, waiting for the end point

Transitions:
    IDLE -> ROUTE_READY / LINE_READY: toggle_route / toggle_line
    ROUTE_* -> IDLE: toggle_route (tool off)
    LINE_* -> IDLE: toggle_line (tool off)
    ROUTE_* -> LINE_READY, LINE_* -> ROUTE_READY: toggling the other tool
    ROUTE_READY -> ROUTE_COLLECTING -> ROUTE_PENDING: add_point
    ROUTE_PENDING -> ROUTE_READY: resolve_route, fail_route
    LINE_READY -> LINE_COLLECTING -> LINE_READY: add_point (entity created)

Every toggle clears all points and all persisted entities of both tools.
Clicks in IDLE and ROUTE_PENDING are not events of this machine.
"""

from __future__ import annotations

import logging
from typing import Any

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from infra_map_viewer.constants import MeasurementConfig
from infra_map_viewer.core.routing_service import RouteResult
from infra_map_viewer.model.measurement import (
    MeasurementPoint,
    PointRole,
    build_line_entity,
    build_route_entity,
)
from infra_map_viewer.ui.context import MapViewContext, PendingRoute

logger = logging.getLogger(__name__)


class TransitionLogListener:
    """Listener that logs every accepted transition.

    Usage:
        sm = MeasurementStateMachine(context=context)
        sm.add_listener(TransitionLogListener())
    """

    def after_transition(self, event: str, source: State, target: State) -> None:
        logger.info(f"[STATE] {source.name} --({event})--> {target.name}")


class MeasurementStateMachine(StateMachine):
    """State machine for the route and line measurement tools.

    See module docstring for the complete transition table.
    """

    # ==========================================================================
    # State Definitions
    # ==========================================================================

    idle = State("Idle", initial=True)

    route_ready = State("RouteReady")
    route_collecting = State("RouteCollecting")
    route_pending = State("RoutePending")

    line_ready = State("LineReady")
    line_collecting = State("LineCollecting")

    # ==========================================================================
    # Transitions: tool toggles
    # ==========================================================================

    toggle_route = (
        idle.to(route_ready)
        | route_ready.to(idle)
        | route_collecting.to(idle)
        | route_pending.to(idle)
        | line_ready.to(route_ready)
        | line_collecting.to(route_ready)
    )
    toggle_line = (
        idle.to(line_ready)
        | line_ready.to(idle)
        | line_collecting.to(idle)
        | route_ready.to(line_ready)
        | route_collecting.to(line_ready)
        | route_pending.to(line_ready)
    )

    # ==========================================================================
    # Transitions: gesture progress
    # ==========================================================================

    add_point = (
        route_ready.to(route_collecting)
        | route_collecting.to(route_pending, after="request_route")
        | line_ready.to(line_collecting)
        | line_collecting.to(line_ready, after="materialize_line")
    )

    # Routing service answered (or failed) for the pending pair
    resolve_route = route_pending.to(route_ready)
    fail_route = route_pending.to(route_ready)

    # ==========================================================================
    # State Check Properties
    # ==========================================================================

    @property
    def is_idle(self) -> bool:
        return self.idle.is_active

    @property
    def is_route_active(self) -> bool:
        """Route tool selected, whatever the gesture progress."""
        return self.route_ready.is_active or self.route_collecting.is_active or self.route_pending.is_active

    @property
    def is_line_active(self) -> bool:
        """Line tool selected, whatever the gesture progress."""
        return self.line_ready.is_active or self.line_collecting.is_active

    @property
    def is_measuring(self) -> bool:
        return not self.is_idle

    @property
    def is_route_pending(self) -> bool:
        return self.route_pending.is_active

    def accepts_clicks(self) -> bool:
        """Check if a map click would place a measurement point."""
        return self.is_measuring and not self.is_route_pending

    # ==========================================================================
    # Entry Hooks
    # ==========================================================================

    def on_enter_idle(self) -> None:
        """Hook: Entering idle state."""
        self.context.measurement.reset_points()

    # ==========================================================================
    # Transition Actions
    # ==========================================================================

    def before_toggle_route(self) -> None:
        """Any toggle discards points and entities of both tools."""
        self.context.measurement.clear()
        self.context.messages.clear()

    def before_toggle_line(self) -> None:
        self.context.measurement.clear()
        self.context.messages.clear()

    def before_add_point(self, coordinate: tuple[float, float]) -> None:
        """Record the clicked point as start or end of the current gesture."""
        measurement = self.context.measurement
        role = PointRole.START if not measurement.points else PointRole.END
        measurement.points.append(MeasurementPoint(coordinate=(float(coordinate[0]), float(coordinate[1])), role=role))

    def request_route(self) -> None:
        """Record the lookup for the deferred routing step."""
        measurement = self.context.measurement
        origin, destination = measurement.point_coordinates()[: MeasurementConfig.MAX_POINTS]
        measurement.pending = PendingRoute(token=measurement.generation, origin=origin, destination=destination)
        logger.info(f"[ROUTE] Pending lookup {origin} -> {destination} (token {measurement.generation})")

    def materialize_line(self) -> None:
        """Create the straight-line entity from the two collected points."""
        measurement = self.context.measurement
        start, end = measurement.point_coordinates()[: MeasurementConfig.MAX_POINTS]
        entity = build_line_entity(entity_id=measurement.ids.next_id(), start=start, end=end)
        measurement.entities.lines.append(entity)
        measurement.reset_points()
        logger.info(f"[MEASURE] Line {entity.id}: {entity.distance_km} km")

    def before_resolve_route(self, result: RouteResult) -> None:
        measurement = self.context.measurement
        pending = measurement.pending
        assert pending is not None, "route_pending without a pending lookup"
        entity = build_route_entity(
            entity_id=measurement.ids.next_id(),
            start=pending.origin,
            end=pending.destination,
            distance_m=result.distance_m,
            duration_s=result.duration_s,
            geometry=result.geometry,
        )
        measurement.entities.routes.append(entity)
        measurement.reset_points()
        logger.info(f"[ROUTE] Route {entity.id}: {entity.distance_km} km, {entity.duration_label}")

    def before_fail_route(self, reason: str = "") -> None:
        self.context.measurement.reset_points()
        self.context.messages.error = MeasurementConfig.ROUTE_FAILED_MESSAGE
        logger.warning(f"[ROUTE] Routing failed: {reason}")

    # ==========================================================================
    # Initialization
    # ==========================================================================

    def __init__(self, context: MapViewContext | None = None, start_value: str | None = None) -> None:
        """Initialize state machine with model pattern.

        Args:
            context: Shared context/model (creates new if None)
            start_value: Optional initial state value (for restoring state)
        """
        model = context or MapViewContext()
        super().__init__(model=model, start_value=start_value)

    # ==========================================================================
    # Utility Methods
    # ==========================================================================

    @property
    def context(self) -> MapViewContext:
        """Alias for model."""
        return self.model

    def get_state_name(self) -> str:
        return self.current_state.name

    def __repr__(self) -> str:
        return f"MeasurementStateMachine(state={self.get_state_name()}, model={self.context!r})"

    def try_transition(self, event: str, **kwargs: Any) -> bool:
        """Attempt a transition, returning success/failure.

        Args:
            event: Transition event name
            **kwargs: Arguments for transition

        Returns:
            True if transition succeeded, False otherwise.
        """
        try:
            self.send(event, **kwargs)
            return True
        except TransitionNotAllowed:
            logger.warning(f"Transition '{event}' not allowed from {self.get_state_name()}")
            return False

    @staticmethod
    def create(add_log_listener: bool = True) -> tuple["MeasurementStateMachine", MapViewContext]:
        """Factory method to create state machine with context and optional log listener.

        Returns:
            Tuple of (MeasurementStateMachine, MapViewContext)
        """
        context = MapViewContext()
        sm = MeasurementStateMachine(context=context)
        if add_log_listener:
            sm.add_listener(TransitionLogListener())
        return sm, context

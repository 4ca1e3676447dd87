"""Tests for the measurement state machine.

Tests: MeasurementStateMachine transition table, context side effects,
click-sequence properties through MapView
Focus: Which events are accepted in which state, and what each one leaves behind.
"""

from typing import Any

import pytest
from conftest import ROUTE_12KM, StubRoutingService
from hypothesis import given, settings, strategies as st

from infra_map_viewer.constants import MapConfig, MeasurementConfig, StyleConfig
from infra_map_viewer.model.camera_state import CameraState
from infra_map_viewer.model.measurement import PointRole
from infra_map_viewer.render.renderer import DeckRenderer
from infra_map_viewer.ui.map_view import MapView
from infra_map_viewer.ui.state_machine import MeasurementStateMachine

EVENT_KWARGS: dict[str, dict[str, Any]] = {
    "toggle_route": {},
    "toggle_line": {},
    "add_point": {"coordinate": (0.0, 0.0)},
    "resolve_route": {"result": ROUTE_12KM},
    "fail_route": {"reason": "test"},
}

# Event sequences from idle that reach each state
PATHS: dict[str, list[tuple[str, dict[str, Any]]]] = {
    "idle": [],
    "route_ready": [("toggle_route", {})],
    "route_collecting": [("toggle_route", {}), ("add_point", {"coordinate": (0.0, 0.0)})],
    "route_pending": [
        ("toggle_route", {}),
        ("add_point", {"coordinate": (0.0, 0.0)}),
        ("add_point", {"coordinate": (0.0, 1.0)}),
    ],
    "line_ready": [("toggle_line", {})],
    "line_collecting": [("toggle_line", {}), ("add_point", {"coordinate": (0.0, 0.0)})],
}

# (state, event) -> expected target; None means not allowed
TRANSITIONS = {
    "idle": {
        "toggle_route": "route_ready",
        "toggle_line": "line_ready",
        "add_point": None,
        "resolve_route": None,
        "fail_route": None,
    },
    "route_ready": {
        "toggle_route": "idle",
        "toggle_line": "line_ready",
        "add_point": "route_collecting",
        "resolve_route": None,
        "fail_route": None,
    },
    "route_collecting": {
        "toggle_route": "idle",
        "toggle_line": "line_ready",
        "add_point": "route_pending",
        "resolve_route": None,
        "fail_route": None,
    },
    "route_pending": {
        "toggle_route": "idle",
        "toggle_line": "line_ready",
        "add_point": None,
        "resolve_route": "route_ready",
        "fail_route": "route_ready",
    },
    "line_ready": {
        "toggle_route": "route_ready",
        "toggle_line": "idle",
        "add_point": "line_collecting",
        "resolve_route": None,
        "fail_route": None,
    },
    "line_collecting": {
        "toggle_route": "route_ready",
        "toggle_line": "idle",
        "add_point": "line_ready",
        "resolve_route": None,
        "fail_route": None,
    },
}

TRANSITION_CASES = [
    (state, event, target) for state, events in TRANSITIONS.items() for event, target in events.items()
]


def machine_in(state: str) -> MeasurementStateMachine:
    sm, _ = MeasurementStateMachine.create(add_log_listener=False)
    for event, kwargs in PATHS[state]:
        sm.send(event, **kwargs)
    assert sm.current_state.id == state
    return sm


# =============================================================================
# TRANSITION TABLE
# =============================================================================


class TestTransitionTable:
    """Every (state, event) pair: accepted with the expected target, or rejected."""

    @pytest.mark.parametrize("state,event,target", TRANSITION_CASES)
    def test_transition(self, state: str, event: str, target: str | None) -> None:
        sm = machine_in(state)
        accepted = sm.try_transition(event, **EVENT_KWARGS[event])
        if target is None:
            assert not accepted
            assert sm.current_state.id == state
        else:
            assert accepted
            assert sm.current_state.id == target

    def test_initial_state(self) -> None:
        sm, context = MeasurementStateMachine.create(add_log_listener=False)
        assert sm.is_idle
        assert not sm.is_measuring
        assert context.state == "idle"

    @pytest.mark.parametrize(
        "state,route,line,accepts",
        [
            ("idle", False, False, False),
            ("route_ready", True, False, True),
            ("route_collecting", True, False, True),
            ("route_pending", True, False, False),
            ("line_ready", False, True, True),
            ("line_collecting", False, True, True),
        ],
    )
    def test_state_queries(self, state: str, route: bool, line: bool, accepts: bool) -> None:
        sm = machine_in(state)
        assert sm.is_route_active == route
        assert sm.is_line_active == line
        assert sm.accepts_clicks() == accepts

    def test_restore_from_start_value(self) -> None:
        sm = MeasurementStateMachine(start_value="line_ready")
        assert sm.is_line_active


# =============================================================================
# CONTEXT SIDE EFFECTS
# =============================================================================


class TestContextEffects:
    """What each accepted transition leaves in MapViewContext."""

    def test_points_get_start_then_end_role(self) -> None:
        sm = machine_in("route_collecting")
        sm.send("add_point", coordinate=(1.0, 2.0))
        roles = [point.role for point in sm.context.measurement.points]
        assert roles == [PointRole.START, PointRole.END]

    def test_second_route_point_records_pending_lookup(self) -> None:
        sm = machine_in("route_pending")
        pending = sm.context.measurement.pending
        assert pending is not None
        assert pending.origin == (0.0, 0.0)
        assert pending.destination == (0.0, 1.0)
        assert pending.token == sm.context.measurement.generation

    def test_line_completion_creates_entity_and_resets_points(self) -> None:
        sm = machine_in("line_collecting")
        sm.send("add_point", coordinate=(0.0, 1.0))
        measurement = sm.context.measurement
        assert measurement.points == []
        assert [line.distance_km for line in measurement.entities.lines] == ["111.19"]

    def test_resolve_creates_route_entity(self) -> None:
        sm = machine_in("route_pending")
        sm.send("resolve_route", result=ROUTE_12KM)
        measurement = sm.context.measurement
        route = measurement.entities.routes[0]
        assert (route.distance_km, route.duration_label) == ("12.34", "1 hora 1 min")
        assert measurement.points == []
        assert measurement.pending is None

    def test_fail_sets_alert_and_keeps_no_entity(self) -> None:
        sm = machine_in("route_pending")
        sm.send("fail_route", reason="timeout")
        assert sm.context.messages.error == MeasurementConfig.ROUTE_FAILED_MESSAGE
        assert len(sm.context.measurement.entities) == 0
        assert sm.context.measurement.pending is None

    @pytest.mark.parametrize("event", ["toggle_route", "toggle_line"])
    def test_toggle_clears_line_results(self, event: str) -> None:
        sm = machine_in("line_collecting")
        sm.send("add_point", coordinate=(0.0, 1.0))
        sm.send("add_point", coordinate=(0.0, 0.0))
        assert len(sm.context.measurement.entities) == 1

        sm.send(event)

        assert len(sm.context.measurement.entities) == 0
        assert sm.context.measurement.points == []

    @pytest.mark.parametrize("event", ["toggle_route", "toggle_line"])
    def test_toggle_clears_route_results(self, event: str) -> None:
        sm = machine_in("route_pending")
        sm.send("resolve_route", result=ROUTE_12KM)
        sm.send("add_point", coordinate=(0.5, 0.5))
        assert len(sm.context.measurement.entities) == 1

        sm.send(event)

        assert len(sm.context.measurement.entities) == 0
        assert sm.context.measurement.points == []

    def test_ids_continue_after_clear(self) -> None:
        sm = machine_in("line_collecting")
        sm.send("add_point", coordinate=(0.0, 1.0))
        sm.send("toggle_line")
        sm.send("toggle_line")
        sm.send("add_point", coordinate=(0.0, 0.0))
        sm.send("add_point", coordinate=(1.0, 0.0))
        assert [line.id for line in sm.context.measurement.entities.lines] == [1]

    def test_toggle_bumps_generation(self) -> None:
        sm = machine_in("route_pending")
        token = sm.context.measurement.pending.token
        sm.send("toggle_route")
        assert sm.context.measurement.generation > token

    def test_toggle_clears_alert(self) -> None:
        sm = machine_in("route_pending")
        sm.send("fail_route")
        sm.send("toggle_line")
        assert sm.context.messages.error == ""


# =============================================================================
# CLICK SEQUENCES
# =============================================================================

ACTIONS = st.lists(
    st.one_of(
        st.sampled_from(["toggle_route", "toggle_line", "resolve", "fail", "tick"]),
        st.tuples(
            st.just("click"),
            st.floats(min_value=-100.0, max_value=-90.0),
            st.floats(min_value=10.0, max_value=20.0),
        ),
    ),
    max_size=25,
)


def fresh_view() -> MapView:
    camera = CameraState(center=(MapConfig.START_CENTER_LON, MapConfig.START_CENTER_LAT), zoom=MapConfig.START_ZOOM)
    view = MapView()
    view.mount(primary=DeckRenderer(style_url=StyleConfig.BASE_2D_URL, camera=camera))
    return view


class TestClickSequences:
    """Arbitrary interleavings of toggles, clicks and routing answers."""

    @settings(max_examples=60, deadline=None)
    @given(actions=ACTIONS)
    def test_invariants_hold(self, actions: list) -> None:
        view = fresh_view()
        measurement = view.context.measurement
        ok = StubRoutingService(result=ROUTE_12KM)
        down = StubRoutingService(error="down")
        seen_ids: list[int] = []
        timestamp = 0.0

        for action in actions:
            if action == "toggle_route":
                view.toggle_route_measurement()
                assert len(measurement.entities) == 0
            elif action == "toggle_line":
                view.toggle_line_measurement()
                assert len(measurement.entities) == 0
            elif action == "resolve":
                view.process_pending_route(ok)
            elif action == "fail":
                view.process_pending_route(down)
            elif action == "tick":
                timestamp += 16.0
                view.tick(timestamp)
            else:
                _, lon, lat = action
                placed = view.handle_map_click(lon=lon, lat=lat)
                if not view.sm.is_measuring:
                    assert not placed

            assert len(measurement.points) <= MeasurementConfig.MAX_POINTS
            if view.sm.is_idle:
                assert measurement.points == []
            if not view.sm.is_route_pending:
                assert view.pending_route is None
            for entity in measurement.entities.all():
                if entity.id not in seen_ids:
                    seen_ids.append(entity.id)

        # Ids are handed out in increasing order and never reused
        assert seen_ids == sorted(set(seen_ids))

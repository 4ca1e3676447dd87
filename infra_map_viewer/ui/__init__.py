"""Map view orchestration for the infrastructure map viewer.

Core Components:
- map_view.py: MapView (renderer lifecycle, toggles, clicks, frames) + ViewSignals
- state_machine.py: MeasurementStateMachine (6 states)
- context.py: MapViewContext and its sub-contexts
- style_controller.py: Style mode transitions with camera preservation
- terrain_effects.py: Terrain exaggeration ramp, sky and camera easing
- animations.py: Marker pulse, community pulse and compass needle frame loops
- minimap.py: Overview map synchronisation
- interaction_binder.py: Domain layer popups
- layer_visibility.py: Layer toggles reflected onto the renderer
- measurement_layers.py: Transient markers and persisted entity drawing

The Streamlit click capture lives in pydeck_click_handler.py and is imported
by the app directly.
"""

from infra_map_viewer.ui.context import MapViewContext, PendingRoute
from infra_map_viewer.ui.map_view import EntityLabel, MapView, ViewSignals
from infra_map_viewer.ui.state_machine import MeasurementStateMachine, TransitionLogListener

__all__ = [
    "MapView",
    "ViewSignals",
    "EntityLabel",
    "MapViewContext",
    "PendingRoute",
    "MeasurementStateMachine",
    "TransitionLogListener",
]

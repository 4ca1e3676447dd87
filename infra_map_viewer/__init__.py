"""Infrastructure Map Viewer - georeferenced infrastructure layers on an interactive map.

Features 2D / 3D terrain / satellite view modes, an overview minimap and two
measurement tools (routed distance and straight-line distance).

Modules:
    core: Foundation classes (geo calculations, frame scheduler, routing service)
    model: Data structures (CameraState, StyleMode, measurement entities)
    render: Renderer capability and its pydeck implementation
    ui: Map view orchestration (state machine, style transitions, animations)

Example:
    from infra_map_viewer.render import DeckRenderer
    from infra_map_viewer.ui import MapView
"""

"""Infrastructure Map Viewer - interactive map of the Presa Margarita Maza area.

Infrastructure layers over a 2D, 3D terrain or satellite base map, with an
overview minimap and route / straight-line measurement tools.

Run: streamlit run infra_map_viewer/app.py
"""

import logging
import time
import traceback

import streamlit as st

from infra_map_viewer.constants import AppConfig, LayerConfig, MapConfig, MinimapConfig, StyleConfig
from infra_map_viewer.core.routing_service import OSRMRoutingService
from infra_map_viewer.model.camera_state import CameraState
from infra_map_viewer.render.renderer import DeckRenderer
from infra_map_viewer.ui import MapView, ViewSignals
from infra_map_viewer.ui.minimap import overview_zoom
from infra_map_viewer.ui.pydeck_click_handler import DeckClick, render_deck_map
from infra_map_viewer.ui.terrain_effects import CAMERA_EASE_LOOP, EXAGGERATION_LOOP

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Rerun cadence while a camera ease or terrain ramp is running
ANIMATION_FRAME_S = 1 / 30


# =============================================================================
# SESSION STATE
# =============================================================================


def _start_camera() -> CameraState:
    return CameraState(
        center=(MapConfig.START_CENTER_LON, MapConfig.START_CENTER_LAT),
        zoom=MapConfig.START_ZOOM,
        bearing=MapConfig.START_BEARING,
        pitch=MapConfig.START_PITCH,
    )


def init_session_state() -> None:
    """Create and mount the map view once per session."""
    if "view" not in st.session_state:
        camera = _start_camera()
        primary = DeckRenderer(style_url=StyleConfig.BASE_2D_URL, camera=camera)
        overview = DeckRenderer(
            style_url=StyleConfig.MINIMAP_URL,
            camera=CameraState(center=camera.center, zoom=overview_zoom(camera.zoom)),
            width=MinimapConfig.WIDTH,
            height=MinimapConfig.HEIGHT,
        )
        view = MapView()
        view.mount(primary=primary, overview=overview)
        st.session_state.view = view
        st.session_state.primary = primary
        st.session_state.overview = overview

    if "routing_service" not in st.session_state:
        st.session_state.routing_service = OSRMRoutingService()

    if "map_version" not in st.session_state:
        st.session_state.map_version = 0


def reset_view() -> None:
    """Tear the view down and start fresh (error recovery)."""
    view: MapView | None = st.session_state.get("view")
    if view is not None:
        view.destroy()
    for key in ("view", "primary", "overview"):
        st.session_state.pop(key, None)
    st.session_state.map_version = st.session_state.get("map_version", 0) + 1
    logger.info("View reset")


def handle_deferred_actions(view: MapView) -> None:
    """Run work queued by the previous rerun: style readiness and routing lookups."""
    primary: DeckRenderer = st.session_state.primary
    # The deck picks up the new map_style on this render
    if primary.style_pending:
        primary.notify_style_ready()

    if view.pending_route is not None:
        with st.spinner("Calculando ruta..."):
            view.process_pending_route(st.session_state.routing_service)


# =============================================================================
# SIDEBAR
# =============================================================================


def render_sidebar(view: MapView, signals: ViewSignals) -> None:
    with st.sidebar:
        st.header("Capas")
        visibility = {
            layer_id: st.checkbox(label, value=LayerConfig.DEFAULT_VISIBILITY[layer_id], key=f"layer_{layer_id}")
            for layer_id, label in LayerConfig.LABELS.items()
        }
        if visibility != dict(view.context.layer_visibility):
            view.set_layer_visibility(visibility)

        st.header("Vista general")
        overview: DeckRenderer | None = st.session_state.get("overview")
        if overview is not None:
            st.pydeck_chart(overview.to_deck(), height=MinimapConfig.HEIGHT)

        st.caption(f"Rumbo: {signals.display_bearing % 360:.0f}°")


def render_controls(view: MapView, signals: ViewSignals) -> None:
    cols = st.columns(5)
    if cols[0].button("🛰️ Satélite", type="primary" if signals.satellite else "secondary", width="stretch"):
        view.toggle_satellite()
        st.rerun()
    if cols[1].button("⛰️ 3D", type="primary" if signals.terrain_3d else "secondary", width="stretch"):
        view.toggle_3d()
        st.rerun()
    if cols[2].button("🚗 Ruta", type="primary" if signals.measuring_route else "secondary", width="stretch"):
        view.toggle_route_measurement()
        st.rerun()
    if cols[3].button("📏 Línea", type="primary" if signals.measuring_line else "secondary", width="stretch"):
        view.toggle_line_measurement()
        st.rerun()
    if cols[4].button("🧭 Norte", width="stretch"):
        view.reset_north()
        st.rerun()


def render_overlays(view: MapView, signals: ViewSignals) -> None:
    if signals.alert:
        st.error(signals.alert)
        if st.button("Cerrar", key="dismiss_alert"):
            view.dismiss_alert()
            st.rerun()
    if signals.popup_html:
        st.markdown(signals.popup_html, unsafe_allow_html=True)
    for label in signals.labels:
        x, y = label.screen_position
        st.caption(f"#{label.entity_id} {label.distance_km} km · {label.detail} (x={x:.0f}, y={y:.0f})")


# =============================================================================
# MAP
# =============================================================================


def dispatch_click(primary: DeckRenderer, click: DeckClick) -> None:
    """Forward a deck click to the renderer's subscribers (popups, then measurement)."""
    if click.layer_id is not None and click.properties is not None:
        primary.fire("click", layer_id=click.layer_id, lon=click.lon, lat=click.lat, properties=click.properties)
    primary.fire("click", lon=click.lon, lat=click.lat)


def render_map(view: MapView, signals: ViewSignals) -> None:
    primary: DeckRenderer = st.session_state.primary
    # The key changes with the style so deck.gl remounts on mode switches
    map_key = (
        f"main_map_{st.session_state.map_version}_{view.context.mode.loaded_mode.value}"
        f"_{'3d' if signals.terrain_3d else '2d'}"
    )
    click = render_deck_map(deck=primary.to_deck(), key=map_key, height=AppConfig.MAP_HEIGHT)
    st.caption(AppConfig.ATTRIBUTION)
    if click is not None:
        dispatch_click(primary, click)
        st.rerun()


# =============================================================================
# MAIN
# =============================================================================


def main() -> None:
    """Application entry point."""
    st.set_page_config(page_title=AppConfig.TITLE, page_icon=AppConfig.ICON, layout=AppConfig.LAYOUT)
    init_session_state()
    view: MapView = st.session_state.view

    st.title(AppConfig.TITLE)

    try:
        handle_deferred_actions(view)
        view.tick(time.time() * 1000)
        signals = view.ui_signals()

        render_sidebar(view, signals)
        render_controls(view, signals)
        render_overlays(view, signals)
        render_map(view, signals)
    except Exception as e:
        logger.error(f"[RENDER] Map error: {type(e).__name__}: {e}\n{traceback.format_exc()}")
        st.error(f"⚠️ Something went wrong: {type(e).__name__}: {e}")
        reset_view()
        if st.button("🔄 Reset and Continue", type="primary"):
            st.rerun()
        return

    scheduler = view.scheduler
    if scheduler.handle_for(CAMERA_EASE_LOOP) is not None or scheduler.handle_for(EXAGGERATION_LOOP) is not None:
        time.sleep(ANIMATION_FRAME_S)
        st.rerun()


if __name__ == "__main__":
    main()

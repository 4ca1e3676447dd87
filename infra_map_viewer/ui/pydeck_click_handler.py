"""Deck click capture using streamlit-deckgl.

st_deckgl returns the full deck.gl onClick event for ALL clicks, including
clicks on empty map (st.pydeck_chart only reports object selections). The
measurement tools need the empty-map clicks.

Event structure (object fields are spread into the event dict):
- Map click: {coordinate: [lon, lat], eventType: "click"}
- Feature click: {type: "Feature", properties: {...}, layer: <id>?, coordinate: [lon, lat], ...}
"""

import logging
from dataclasses import dataclass
from typing import Any

import pydeck as pdk
import streamlit as st
from streamlit_deckgl import st_deckgl  # type: ignore[import-untyped]

from infra_map_viewer.constants import AppConfig

logger = logging.getLogger(__name__)

_META_KEYS = ("coordinate", "eventType", "layer", "layerId")


@dataclass
class DeckClick:
    """A click reported by the deck component.

    Attributes:
        lon, lat: Clicked map position
        layer_id: Id of the picked layer, when the event names one
        properties: Feature properties of the picked object, if any
    """

    lon: float
    lat: float
    layer_id: str | None = None
    properties: dict[str, Any] | None = None

    @property
    def is_feature_click(self) -> bool:
        return self.properties is not None

    @property
    def click_id(self) -> str:
        """Key for deduplicating the same event across Streamlit reruns."""
        return f"{self.layer_id or ''}_{self.lon:.6f}_{self.lat:.6f}"


def parse_deck_event(event: Any) -> DeckClick | None:
    """Extract the click position and any picked feature from an st_deckgl event."""
    if not isinstance(event, dict):
        return None
    coord = event.get("coordinate")
    if not isinstance(coord, (list, tuple)) or len(coord) < 2 or coord[0] is None or coord[1] is None:
        return None

    properties: dict[str, Any] | None = None
    if isinstance(event.get("properties"), dict):
        properties = dict(event["properties"])
    elif event.get("type") and event.get("type") != "click":
        properties = {k: v for k, v in event.items() if k not in _META_KEYS}

    layer = event.get("layer", event.get("layerId"))
    if isinstance(layer, dict):
        layer = layer.get("id")
    layer_id = layer if isinstance(layer, str) else None

    return DeckClick(lon=float(coord[0]), lat=float(coord[1]), layer_id=layer_id, properties=properties)


def render_deck_map(deck: pdk.Deck, key: str, height: int = AppConfig.MAP_HEIGHT) -> DeckClick | None:
    """Render the deck and return a new click, or None.

    Streamlit reruns replay the component's last value, so a click is only
    reported the first time it is seen.
    """
    last_click_key = f"_deckgl_last_click_{key}"
    if last_click_key not in st.session_state:
        st.session_state[last_click_key] = None

    # events=["click"] is required for click detection
    event = st_deckgl(deck, key=key, height=height, events=["click"])
    click = parse_deck_event(event)
    if click is None:
        return None

    if click.click_id == st.session_state.get(last_click_key):
        return None
    st.session_state[last_click_key] = click.click_id
    logger.debug(f"Click detected: layer={click.layer_id}, coord=({click.lon}, {click.lat})")
    return click

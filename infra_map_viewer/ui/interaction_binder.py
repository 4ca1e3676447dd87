"""Hover and click popups on the domain layers.

Hover layers show a popup on mouseenter and hide it on mouseleave. The
Streamlit front end reports clicks only, so a click on a hover layer shows
its popup too. Click layers show it on click and switch the cursor to a
pointer while hovered. mouseleave only hides the popup its own layer opened.
Every handler checks the measurement tools when it runs, not when it is
bound: while measuring, pointer events belong to the measurement tools.

A style swap drops layer-scoped handlers, so bind() is re-run after every
swap. bind() detaches whatever it attached before, so repeated calls never
stack duplicate handlers.
"""

import html
import logging
from collections.abc import Callable, Mapping
from typing import Any

from infra_map_viewer.constants import MeasurementConfig, PopupConfig
from infra_map_viewer.render.renderer import EventHandler, Renderer
from infra_map_viewer.ui.context import PopupContext

logger = logging.getLogger(__name__)

FieldTable = Mapping[str, list[tuple[str, str]]]


def format_popup_html(fields: list[tuple[str, str]], properties: Mapping[str, Any]) -> str:
    """Render (label, property) rows as '<strong>Label:</strong> value' lines."""
    rows = [f"<strong>{label}:</strong> {html.escape(str(properties.get(key, '')))}" for label, key in fields]
    return "<br/>".join(rows)


class InteractionBinder:
    """Attaches popup handlers to the domain layers of one renderer at a time."""

    def __init__(
        self,
        popup: PopupContext,
        is_measuring: Callable[[], bool],
        hover_fields: FieldTable = PopupConfig.HOVER_FIELDS,
        click_fields: FieldTable = PopupConfig.CLICK_FIELDS,
    ) -> None:
        self._popup = popup
        self._is_measuring = is_measuring
        self._hover_fields = hover_fields
        self._click_fields = click_fields
        self._bindings: list[tuple[Renderer, str, EventHandler, str]] = []

    @property
    def binding_count(self) -> int:
        return len(self._bindings)

    def bind(self, renderer: Renderer | None) -> None:
        """(Re-)attach all popup handlers to renderer."""
        if renderer is None:
            return
        self.unbind(renderer)
        for layer_id, fields in self._hover_fields.items():
            show = self._show_handler(layer_id, fields)
            self._on(renderer, "mouseenter", layer_id, show)
            self._on(renderer, "click", layer_id, show)
            self._on(renderer, "mouseleave", layer_id, self._hide_handler(renderer, layer_id, reset_cursor=False))
        for layer_id, fields in self._click_fields.items():
            self._on(renderer, "click", layer_id, self._show_handler(layer_id, fields))
            self._on(renderer, "mouseenter", layer_id, self._pointer_handler(renderer))
            self._on(renderer, "mouseleave", layer_id, self._hide_handler(renderer, layer_id, reset_cursor=True))
        logger.debug(f"[BIND] {len(self._bindings)} handlers attached")

    def unbind(self, renderer: Renderer | None) -> None:
        """Detach every handler this binder attached to renderer."""
        if renderer is None:
            return
        kept = []
        for bound_renderer, event, handler, layer_id in self._bindings:
            if bound_renderer is renderer:
                renderer.off(event, handler, layer_id=layer_id)
            else:
                kept.append((bound_renderer, event, handler, layer_id))
        self._bindings = kept

    def _on(self, renderer: Renderer, event: str, layer_id: str, handler: EventHandler) -> None:
        renderer.on(event, handler, layer_id=layer_id)
        self._bindings.append((renderer, event, handler, layer_id))

    # =========================================================================
    # Handlers
    # =========================================================================

    def _show_handler(self, layer_id: str, fields: list[tuple[str, str]]) -> EventHandler:
        def show(lon: float, lat: float, properties: Mapping[str, Any] | None = None, **_: Any) -> None:
            if self._is_measuring() or not properties:
                return
            self._popup.show(lon=lon, lat=lat, html=format_popup_html(fields, properties), layer_id=layer_id)

        return show

    def _hide_handler(self, renderer: Renderer, layer_id: str, reset_cursor: bool) -> EventHandler:
        def hide(**_: Any) -> None:
            if self._is_measuring():
                return
            if reset_cursor:
                renderer.set_cursor("")
            if self._popup.layer_id == layer_id:
                self._popup.clear()

        return hide

    def _pointer_handler(self, renderer: Renderer) -> EventHandler:
        def pointer(**_: Any) -> None:
            if not self._is_measuring():
                renderer.set_cursor(MeasurementConfig.POINTER_CURSOR)

        return pointer

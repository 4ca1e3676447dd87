"""Continuous frame animations: marker pulse, community pulse and compass needle.

Each animation is a plain frame callback for the FrameScheduler, started
under a fixed loop name so at most one instance of each kind runs.
"""

import logging
from collections.abc import Callable
from math import sin

from infra_map_viewer.constants import AnimationConfig, LayerConfig
from infra_map_viewer.core.frame_scheduler import AnimationHandle, FrameScheduler
from infra_map_viewer.core.geo_calculator import GeoCalculator
from infra_map_viewer.render.renderer import Renderer, RendererError
from infra_map_viewer.ui.measurement_layers import TRANSIENT_PULSE_LAYER_IDS

logger = logging.getLogger(__name__)

MARKER_PULSE_LOOP = "marker-pulse"
COMMUNITY_PULSE_LOOP = "community-pulse"
COMPASS_LOOP = "compass"

RendererGetter = Callable[[], Renderer | None]


def pulse_radius(timestamp: float) -> float:
    """Oscillating radius: 15 * (|sin(t / 500)| + 0.5), between 7.5 and 22.5."""
    return AnimationConfig.PULSE_BASE_RADIUS * (
        abs(sin(timestamp / AnimationConfig.PULSE_PERIOD_MS)) + AnimationConfig.PULSE_RADIUS_OFFSET
    )


def pulse_opacity(radius: float) -> float:
    return 1 - radius / AnimationConfig.PULSE_OPACITY_RADIUS


def _lerp(bounds: tuple[float, float], progress: float) -> float:
    low, high = bounds
    return low + (high - low) * progress


class MarkerPulseAnimation:
    """Pulses the transient measurement markers' companion layers."""

    def __init__(self, get_renderer: RendererGetter) -> None:
        self._get_renderer = get_renderer

    def __call__(self, timestamp: float) -> None:
        renderer = self._get_renderer()
        if renderer is None:
            return
        radius = pulse_radius(timestamp)
        opacity = pulse_opacity(radius)
        for layer_id in TRANSIENT_PULSE_LAYER_IDS:
            if renderer.get_layer(layer_id) is None:
                continue
            try:
                renderer.set_paint_property(layer_id, "circle-radius", radius)
                renderer.set_paint_property(layer_id, "circle-opacity", opacity)
            except RendererError as e:
                logger.debug(f"[PULSE] {layer_id} not ready: {e}")


class CommunityPulseAnimation:
    """Breathing community markers.

    The main layer and its halo follow a slow sin(t / 1200) phase; the pulse
    companion uses the fast marker pulse, dimmed.
    """

    def __init__(self, get_renderer: RendererGetter) -> None:
        self._get_renderer = get_renderer

    def __call__(self, timestamp: float) -> None:
        renderer = self._get_renderer()
        if renderer is None:
            return
        progress = (sin(timestamp / AnimationConfig.COMMUNITY_PERIOD_MS) + 1) / 2
        radius = pulse_radius(timestamp)
        updates = {
            LayerConfig.COMMUNITY: {"circle-radius": _lerp(AnimationConfig.COMMUNITY_RADIUS, progress)},
            LayerConfig.COMMUNITY_HALO: {
                "circle-radius": _lerp(AnimationConfig.COMMUNITY_HALO_RADIUS, progress),
                "circle-opacity": _lerp(AnimationConfig.COMMUNITY_HALO_OPACITY, progress),
            },
            LayerConfig.COMMUNITY_PULSE: {
                "circle-radius": radius,
                "circle-opacity": pulse_opacity(radius) * AnimationConfig.COMMUNITY_PULSE_OPACITY_FACTOR,
            },
        }
        for layer_id, paint in updates.items():
            if renderer.get_layer(layer_id) is None:
                continue
            try:
                for name, value in paint.items():
                    renderer.set_paint_property(layer_id, name, value)
            except RendererError as e:
                logger.debug(f"[PULSE] {layer_id} not ready: {e}")


class CompassNeedle:
    """Displayed compass bearing, smoothed towards the camera bearing.

    Each frame moves the displayed bearing 15% of the signed shortest
    difference, so the needle never spins the long way round at 0°/360°.
    """

    def __init__(self, get_renderer: RendererGetter, display_bearing: float = 0.0) -> None:
        self._get_renderer = get_renderer
        self.display_bearing = display_bearing

    def step(self, target_bearing: float) -> float:
        delta = GeoCalculator.shortest_bearing_delta(self.display_bearing, target_bearing)
        self.display_bearing += delta * AnimationConfig.COMPASS_SMOOTHING
        return self.display_bearing

    def __call__(self, timestamp: float) -> None:
        renderer = self._get_renderer()
        if renderer is None:
            return
        self.step(renderer.get_camera().bearing)


def start_marker_pulse(scheduler: FrameScheduler, get_renderer: RendererGetter) -> AnimationHandle:
    return scheduler.start(MarkerPulseAnimation(get_renderer), name=MARKER_PULSE_LOOP)


def start_community_pulse(scheduler: FrameScheduler, get_renderer: RendererGetter) -> AnimationHandle:
    return scheduler.start(CommunityPulseAnimation(get_renderer), name=COMMUNITY_PULSE_LOOP)


def start_compass(scheduler: FrameScheduler, needle: CompassNeedle) -> AnimationHandle:
    return scheduler.start(needle, name=COMPASS_LOOP)

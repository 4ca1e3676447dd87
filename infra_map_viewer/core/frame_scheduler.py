"""Repeating-frame scheduler for continuous map animations.

Replaces self-rescheduling per-frame closures with an explicit service:
callers start a loop and receive an opaque AnimationHandle, and the host drives
frames by calling tick(timestamp_ms) at its own cadence (~60/s in a browser,
once per rerun in Streamlit, explicitly in tests).

Loops started during a tick run from the next tick on. Loops canceled during
a tick (including self-cancellation) are not called again.

Named loops enforce "at most one instance of each kind": starting a loop with
a name that is already running cancels the previous handle first.
"""

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

FrameCallback = Callable[[float], None]


@dataclass(frozen=True)
class AnimationHandle:
    """Opaque cancelable token for a running frame loop."""

    handle_id: int
    name: str | None = None


class FrameScheduler:
    """Drives independent cancelable frame loops.

    Example:
        scheduler = FrameScheduler()
        handle = scheduler.start(lambda t: print(t), name="pulse")
        scheduler.tick(16.0)
        scheduler.cancel(handle)
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._loops: dict[AnimationHandle, FrameCallback] = {}
        self._named: dict[str, AnimationHandle] = {}
        self.last_timestamp: float | None = None

    def start(self, update: FrameCallback, name: str | None = None) -> AnimationHandle:
        """Start a repeating loop calling update(timestamp_ms) every frame.

        Args:
            update: Frame callback receiving the frame timestamp in milliseconds.
            name: Optional loop kind. A running loop of the same kind is canceled first.

        Returns:
            Handle to pass to cancel().
        """
        if name is not None and name in self._named:
            self.cancel(self._named[name])
        handle = AnimationHandle(handle_id=next(self._ids), name=name)
        self._loops[handle] = update
        if name is not None:
            self._named[name] = handle
        logger.debug(f"[FRAME] Started loop {handle.handle_id} ({name})")
        return handle

    def cancel(self, handle: AnimationHandle | None) -> None:
        """Cancel a loop. Unknown, already canceled or None handles are ignored."""
        if handle is None:
            return
        if self._loops.pop(handle, None) is not None:
            logger.debug(f"[FRAME] Canceled loop {handle.handle_id} ({handle.name})")
        if handle.name is not None and self._named.get(handle.name) == handle:
            del self._named[handle.name]

    def cancel_all(self) -> None:
        """Cancel every running loop (view teardown)."""
        count = len(self._loops)
        self._loops.clear()
        self._named.clear()
        if count:
            logger.info(f"[FRAME] Canceled {count} running loops")

    def is_active(self, handle: AnimationHandle | None) -> bool:
        return handle is not None and handle in self._loops

    def handle_for(self, name: str) -> AnimationHandle | None:
        """Return the running handle of a named loop, if any."""
        return self._named.get(name)

    @property
    def active_count(self) -> int:
        return len(self._loops)

    def tick(self, timestamp_ms: float) -> None:
        """Run one frame of every loop that was running when the tick started."""
        self.last_timestamp = timestamp_ms
        for handle, update in list(self._loops.items()):
            if handle not in self._loops:
                continue
            update(timestamp_ms)

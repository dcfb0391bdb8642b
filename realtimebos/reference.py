"""Ownership and per-tick refresh of the reference (background) frame."""
from __future__ import annotations

import logging
from typing import Callable, Optional

import numpy as np

from .config import ReferenceMode, clamp_weight
from .effects import EffectLibrary

logger = logging.getLogger(__name__)

ReferenceListener = Callable[[Optional[np.ndarray]], None]


class ReferenceFrameManager:
    """
    Holds the single reference frame and decides how each tick changes it.

    Updates are split into :meth:`stage`, which computes the new contents
    without touching the held frame, and :meth:`commit`, which installs them.
    :meth:`update` does both. Every commit publishes the frame to the
    registered listeners (the difference engine binds it that way).
    """

    def __init__(self, effects: EffectLibrary) -> None:
        self.effects = effects
        self._reference: np.ndarray | None = None
        self._listeners: list[ReferenceListener] = []
        self._handlers = {
            ReferenceMode.STATIC: self._stage_static,
            ReferenceMode.PREVIOUS_FRAME: self._stage_previous_frame,
            ReferenceMode.TEMPORAL_SMOOTHING: self._stage_temporal_smoothing,
        }

    @property
    def reference(self) -> np.ndarray | None:
        return self._reference

    @property
    def exists(self) -> bool:
        return self._reference is not None

    def matches(self, frame: np.ndarray) -> bool:
        return self._reference is not None and self._reference.shape == frame.shape

    def subscribe(self, listener: ReferenceListener) -> None:
        self._listeners.append(listener)
        listener(self._reference)

    def reset(self) -> None:
        self._reference = None
        self._publish()

    def stage(
        self,
        current: np.ndarray,
        mode: ReferenceMode,
        trigger: bool = False,
        weight: float = 0.0,
        out: np.ndarray | None = None,
    ) -> np.ndarray | None:
        """Return the frame the reference should become, or None to leave it."""
        if not self.matches(current):
            # first use, or the input changed size: bootstrap from this frame
            return current
        return self._handlers[mode](current, trigger, clamp_weight(weight), out)

    def commit(self, staged: np.ndarray | None) -> bool:
        if staged is None:
            self._publish()
            return False
        if self._reference is None or self._reference.shape != staged.shape:
            if self._reference is not None:
                logger.debug("Reallocating reference %s -> %s", self._reference.shape, staged.shape)
            else:
                logger.debug("Bootstrapping reference frame %s", staged.shape)
            self._reference = np.array(staged, dtype=np.float32, copy=True)
        elif staged is not self._reference:
            np.copyto(self._reference, staged)
        self._publish()
        return True

    def update(
        self,
        current: np.ndarray | None,
        mode: ReferenceMode,
        trigger: bool = False,
        weight: float = 0.0,
    ) -> bool:
        """Refresh the reference from ``current``; returns True when it changed."""
        assert current is not None, "reference update requires a frame"
        if current is None:
            return False
        return self.commit(self.stage(current, mode, trigger, weight))

    def _stage_static(self, current, trigger, weight, out):
        # only an explicit capture moves a static reference
        return current if trigger else None

    def _stage_previous_frame(self, current, trigger, weight, out):
        return current

    def _stage_temporal_smoothing(self, current, trigger, weight, out):
        return self.effects.blend(current, self._reference, weight, out=out)

    def _publish(self) -> None:
        for listener in self._listeners:
            listener(self._reference)

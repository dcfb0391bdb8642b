"""Temporal smoothing of the differential stream."""
from __future__ import annotations

import logging

import numpy as np

from .effects import EffectLibrary

logger = logging.getLogger(__name__)


class OutputAccumulator:
    """Owns the buffered output frame that averaging blends into."""

    def __init__(self, effects: EffectLibrary) -> None:
        self.effects = effects
        self._buffered: np.ndarray | None = None

    @property
    def buffered(self) -> np.ndarray | None:
        return self._buffered

    def reset(self) -> None:
        self._buffered = None

    def stage(
        self,
        differential: np.ndarray,
        average: bool,
        weight: float,
        out: np.ndarray | None = None,
    ) -> np.ndarray:
        """Compute the frame to present without touching the buffered output."""
        if not average:
            return differential
        target = self._buffered
        if target is None or target.shape != differential.shape:
            target = np.zeros(differential.shape, dtype=np.float32)
        return self.effects.blend(differential, target, weight, out=out)

    def commit(self, presented: np.ndarray) -> np.ndarray:
        if self._buffered is None or self._buffered.shape != presented.shape:
            if self._buffered is not None:
                logger.debug("Reallocating output buffer %s -> %s", self._buffered.shape, presented.shape)
            self._buffered = np.zeros(presented.shape, dtype=np.float32)
        np.copyto(self._buffered, presented)
        return self._buffered

    def accumulate(self, differential: np.ndarray, average: bool, weight: float) -> np.ndarray:
        """Blend (or copy) ``differential`` into the buffered output and return it."""
        return self.commit(self.stage(differential, average, weight))

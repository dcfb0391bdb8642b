"""Single-frame differential image between the input and the reference."""
from __future__ import annotations

import numpy as np

from .buffers import BufferPool
from .config import CalculationMode, PipelineConfig
from .effects import EffectLibrary, coarse_size


class DifferenceEngine:
    """
    Computes the differential for one frame with the configured algorithm.

    The reference is not owned here; it is bound by the reference manager
    through :meth:`bind_reference` whenever it changes.
    """

    def __init__(self, effects: EffectLibrary, pool: BufferPool | None = None) -> None:
        self.effects = effects
        self.pool = pool if pool is not None else BufferPool()
        self._reference: np.ndarray | None = None
        self._handlers = {
            CalculationMode.PIXEL_DELTA: self._pixel_delta,
            CalculationMode.MACRO_BLOCK_SEARCH: self._macro_block_search,
        }

    def bind_reference(self, reference: np.ndarray | None) -> None:
        self._reference = reference

    @property
    def has_reference(self) -> bool:
        return self._reference is not None

    def compute(
        self,
        frame: np.ndarray,
        config: PipelineConfig,
        out: np.ndarray | None = None,
    ) -> np.ndarray | None:
        """Return the differential image, same shape as ``frame``."""
        assert self._reference is not None, "difference requested before a reference exists"
        if self._reference is None:
            return None
        if out is None:
            out = np.empty(frame.shape, dtype=np.float32)
        return self._handlers[config.calculation_mode](frame, config, out)

    def _pixel_delta(self, frame, config, out):
        # signed delta first, then the window pass suppresses the noise floor
        with self.pool.temporary(frame.shape) as worker:
            self.effects.windowed_delta_pass1(frame, self._reference, out=worker)
            self.effects.windowed_delta_pass2(
                worker, out=out, threshold=config.delta_threshold, gain=config.delta_gain
            )
        return out

    def _macro_block_search(self, frame, config, out):
        H, W = frame.shape[:2]
        ch, cw = coarse_size(H, W, config.block_size)
        with self.pool.temporary((ch, cw, 3)) as data:
            self.effects.motion_search_pass1(
                frame, self._reference, out=data, block=config.block_size, radius=config.search_radius
            )
            self.effects.motion_search_pass2(frame, data, self._reference, out=out, block=config.block_size)
        return out

"""
Image effects used by the pipeline.

Each effect reads one or two float32 (H, W, 3) buffers plus scalar parameters
and writes a single output buffer. ``out`` may be supplied by the caller (for
example a pooled temporary); when omitted a new array is returned. Outputs may
alias inputs.
"""
from __future__ import annotations

from typing import Protocol

import numpy as np

from .constants import (
    DEFAULT_DELTA_GAIN,
    DEFAULT_DELTA_THRESHOLD,
    DEFAULT_SEARCH_RADIUS,
    LUMA_WEIGHTS,
    MACROBLOCK_SIZE,
    MOTION_COST,
    MOTION_DX,
    MOTION_DY,
)


class EffectError(RuntimeError):
    """Raised when an effect cannot run on the buffers it was given."""


class EffectLibrary(Protocol):
    def greyscale(self, src: np.ndarray, out: np.ndarray | None = None) -> np.ndarray: ...

    def denoise(self, src: np.ndarray, out: np.ndarray | None = None) -> np.ndarray: ...

    def windowed_delta_pass1(
        self, src: np.ndarray, reference: np.ndarray, out: np.ndarray | None = None
    ) -> np.ndarray: ...

    def windowed_delta_pass2(
        self,
        delta: np.ndarray,
        out: np.ndarray | None = None,
        threshold: float = DEFAULT_DELTA_THRESHOLD,
        gain: float = DEFAULT_DELTA_GAIN,
    ) -> np.ndarray: ...

    def blend(
        self, incoming: np.ndarray, target: np.ndarray, weight: float, out: np.ndarray | None = None
    ) -> np.ndarray: ...

    def motion_search_pass1(
        self,
        src: np.ndarray,
        reference: np.ndarray,
        out: np.ndarray | None = None,
        block: int = MACROBLOCK_SIZE,
        radius: int = DEFAULT_SEARCH_RADIUS,
    ) -> np.ndarray: ...

    def motion_search_pass2(
        self,
        src: np.ndarray,
        coarse: np.ndarray,
        reference: np.ndarray,
        out: np.ndarray | None = None,
        block: int = MACROBLOCK_SIZE,
    ) -> np.ndarray: ...


def coarse_size(height: int, width: int, block: int = MACROBLOCK_SIZE) -> tuple[int, int]:
    """Dimensions of the motion field for a frame; never smaller than 1x1."""
    return max(1, height // block), max(1, width // block)


def _check_frame(arr: np.ndarray, name: str) -> None:
    if arr.ndim != 3 or arr.shape[2] != 3:
        raise EffectError(f"{name} must have shape (H, W, 3), got {arr.shape}")


def _check_same_shape(a: np.ndarray, b: np.ndarray, what: str) -> None:
    if a.shape != b.shape:
        raise EffectError(f"{what}: shape mismatch {a.shape} vs {b.shape}")


def _output(out: np.ndarray | None, shape: tuple[int, ...]) -> np.ndarray:
    if out is None:
        return np.empty(shape, dtype=np.float32)
    if out.shape != shape:
        raise EffectError(f"Output buffer has shape {out.shape}, expected {shape}")
    return out


def _block_index_maps(H: int, W: int, block: int) -> tuple[np.ndarray, np.ndarray, int, int]:
    """Per-row and per-column block indices; trailing pixels fold into the last block."""
    ch, cw = coarse_size(H, W, block)
    rows = np.minimum(np.arange(H) // block, ch - 1)
    cols = np.minimum(np.arange(W) // block, cw - 1)
    return rows, cols, ch, cw


def _sample_shifted(reference: np.ndarray, dy, dx) -> np.ndarray:
    """reference[y + dy, x + dx] with clamping at the borders; dy/dx scalar or per-pixel."""
    H, W = reference.shape[:2]
    ys = np.clip(np.arange(H)[:, None] + dy, 0, H - 1)
    xs = np.clip(np.arange(W)[None, :] + dx, 0, W - 1)
    ys, xs = np.broadcast_arrays(ys, xs)
    return reference[ys, xs]


def _search_offsets(radius: int) -> list[tuple[int, int]]:
    offsets = [(dy, dx) for dy in range(-radius, radius + 1) for dx in range(-radius, radius + 1)]
    # zero offset first so ties keep the unshifted match
    offsets.sort(key=lambda o: (abs(o[0]) + abs(o[1]), o))
    return offsets


class NumpyEffects:
    """CPU implementation of the effect library."""

    def greyscale(self, src, out=None):
        _check_frame(src, "greyscale input")
        out = _output(out, src.shape)
        r, g, b = LUMA_WEIGHTS
        luma = r * src[:, :, 0] + g * src[:, :, 1] + b * src[:, :, 2]
        out[...] = luma[:, :, None]
        return out

    def denoise(self, src, out=None):
        """3x3 box filter with edge replication."""
        _check_frame(src, "denoise input")
        out = _output(out, src.shape)
        H, W = src.shape[:2]
        padded = np.pad(src, ((1, 1), (1, 1), (0, 0)), mode="edge")
        acc = np.zeros(src.shape, dtype=np.float32)
        for dy in range(3):
            for dx in range(3):
                acc += padded[dy : dy + H, dx : dx + W]
        out[...] = acc / 9.0
        return out

    def windowed_delta_pass1(self, src, reference, out=None):
        _check_frame(src, "delta input")
        _check_same_shape(src, reference, "windowed delta")
        out = _output(out, src.shape)
        np.subtract(src, reference, out=out)
        return out

    def windowed_delta_pass2(
        self,
        delta,
        out=None,
        threshold: float = DEFAULT_DELTA_THRESHOLD,
        gain: float = DEFAULT_DELTA_GAIN,
    ):
        """Zero near-zero deltas, scale the rest into the visible range."""
        _check_frame(delta, "delta")
        out = _output(out, delta.shape)
        quiet = np.abs(delta) < threshold
        np.multiply(delta, np.float32(gain), out=out)
        out[quiet] = 0.0
        return out

    def blend(self, incoming, target, weight: float, out=None):
        """Exponential moving average: target * (1 - w) + incoming * w."""
        _check_same_shape(incoming, target, "blend")
        out = _output(out, target.shape)
        w = min(1.0, max(0.0, float(weight)))
        out[...] = target * np.float32(1.0 - w) + incoming * np.float32(w)
        return out

    def motion_search_pass1(
        self,
        src,
        reference,
        out=None,
        block: int = MACROBLOCK_SIZE,
        radius: int = DEFAULT_SEARCH_RADIUS,
    ):
        """
        Block-match ``src`` against ``reference``.

        For every block the integer offset within ``radius`` with the lowest
        mean absolute difference is stored as (dy, dx, cost) in the coarse
        output.
        """
        _check_frame(src, "motion search input")
        _check_same_shape(src, reference, "motion search")
        H, W = src.shape[:2]
        rows, cols, ch, cw = _block_index_maps(H, W, block)
        out = _output(out, (ch, cw, 3))
        n_blocks = ch * cw
        tile_idx = (rows[:, None] * cw + cols[None, :]).reshape(-1)
        counts = np.bincount(tile_idx, minlength=n_blocks).astype(np.float64)

        best_cost = np.full((n_blocks,), np.inf, dtype=np.float64)
        best_dy = np.zeros((n_blocks,), dtype=np.float64)
        best_dx = np.zeros((n_blocks,), dtype=np.float64)
        for dy, dx in _search_offsets(radius):
            shifted = _sample_shifted(reference, dy, dx)
            err = np.abs(src - shifted).mean(axis=2).reshape(-1)
            cost = np.bincount(tile_idx, weights=err, minlength=n_blocks) / counts
            better = cost < best_cost
            best_cost[better] = cost[better]
            best_dy[better] = dy
            best_dx[better] = dx

        out[:, :, MOTION_DY] = best_dy.reshape(ch, cw)
        out[:, :, MOTION_DX] = best_dx.reshape(ch, cw)
        out[:, :, MOTION_COST] = best_cost.reshape(ch, cw)
        return out

    def motion_search_pass2(self, src, coarse, reference, out=None, block: int = MACROBLOCK_SIZE):
        """Difference of ``src`` against the reference displaced by the motion field."""
        _check_frame(src, "motion search input")
        _check_same_shape(src, reference, "motion compensation")
        H, W = src.shape[:2]
        rows, cols, ch, cw = _block_index_maps(H, W, block)
        if coarse.shape != (ch, cw, 3):
            raise EffectError(f"Motion field has shape {coarse.shape}, expected {(ch, cw, 3)}")
        field = coarse[rows[:, None], cols[None, :]]
        dy = field[:, :, MOTION_DY].astype(np.int64)
        dx = field[:, :, MOTION_DX].astype(np.int64)
        out = _output(out, src.shape)
        np.subtract(src, _sample_shifted(reference, dy, dx), out=out)
        return out

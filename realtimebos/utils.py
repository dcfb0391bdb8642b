"""Frame conversion helpers between capture, pipeline and display formats."""
from __future__ import annotations

import numpy as np


def _ensure_rgb(frame: np.ndarray) -> np.ndarray:
    arr = np.asarray(frame)
    if arr.ndim == 2:
        # Grayscale -> replicate to RGB
        arr = np.stack([arr, arr, arr], axis=-1)
    if arr.ndim == 3:
        if arr.shape[2] == 1:
            arr = np.repeat(arr, 3, axis=2)
        if arr.shape[2] == 4:
            arr = arr[..., :3]
        if arr.shape[2] == 3:
            return arr
    raise ValueError(f"Unsupported frame shape for RGB conversion: {arr.shape}")


def to_float(frame: np.ndarray, out: np.ndarray | None = None) -> np.ndarray:
    """
    Copy a capture frame into a float32 (H, W, 3) buffer.

    Integer frames are scaled to [0, 1] by their dtype's maximum; float
    frames are copied as they are.
    """
    arr = _ensure_rgb(frame)
    if out is None:
        out = np.empty(arr.shape, dtype=np.float32)
    if np.issubdtype(arr.dtype, np.integer):
        scale = float(np.iinfo(arr.dtype).max)
        np.divide(arr, scale, out=out, casting="unsafe")
    else:
        out[...] = arr
    return out


def to_display(frame: np.ndarray) -> np.ndarray:
    """
    Map a presented buffer to uint8 RGB for writing or display.

    Differentials are signed, so the magnitude is shown.
    """
    arr = _ensure_rgb(frame)
    if arr.dtype == np.uint8:
        return arr
    if np.issubdtype(arr.dtype, np.integer):
        return np.clip(arr, 0, 255).astype(np.uint8)
    mag = np.clip(np.abs(arr.astype(np.float32)), 0.0, 1.0)
    return np.rint(mag * 255.0).astype(np.uint8)


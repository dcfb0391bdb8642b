"""Pooled transient image buffers acquired for the duration of one tick."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

import numpy as np

logger = logging.getLogger(__name__)


def frame_shape(height: int, width: int) -> tuple[int, int, int]:
    return (int(height), int(width), 3)


class BufferPool:
    """
    Free lists of float32 buffers keyed by shape.

    Buffers handed out by :meth:`temporary` go back to the pool when the
    ``with`` block exits, whichever way it exits. Contents are not cleared.
    """

    def __init__(self) -> None:
        self._free: dict[tuple[int, ...], list[np.ndarray]] = {}
        self._in_use = 0

    @property
    def in_use(self) -> int:
        return self._in_use

    def acquire(self, shape: tuple[int, ...]) -> np.ndarray:
        shape = tuple(int(s) for s in shape)
        free = self._free.get(shape)
        if free:
            buf = free.pop()
        else:
            logger.debug("Allocating transient buffer %s", shape)
            buf = np.empty(shape, dtype=np.float32)
        self._in_use += 1
        return buf

    def release(self, buf: np.ndarray) -> None:
        self._free.setdefault(buf.shape, []).append(buf)
        self._in_use -= 1

    @contextmanager
    def temporary(self, shape: tuple[int, ...]) -> Iterator[np.ndarray]:
        buf = self.acquire(shape)
        try:
            yield buf
        finally:
            self.release(buf)

    def clear(self) -> None:
        self._free.clear()

"""
Capture sources feeding the pipeline.

A source exposes the frame currently available and whether that frame is new
since the last tick. The host advances sources; the pipeline only reads them.
"""
from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Iterable, Iterator, Protocol

import imageio.v2 as imageio
import numpy as np

from .config import CaptureSource, PipelineConfig

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    def current_frame(self) -> np.ndarray | None: ...

    def has_new_frame(self) -> bool: ...


class LiveStreamSource:
    """
    A device stream. Each :meth:`advance` grabs at most one frame, and the
    new-frame flag reports whether that grab produced one.
    """

    def __init__(self, frames: Iterable[np.ndarray], reader=None) -> None:
        self._frames: Iterator[np.ndarray] = iter(frames)
        self._reader = reader
        self._frame: np.ndarray | None = None
        self._updated = False
        self.exhausted = False

    @classmethod
    def open_device(cls, index: int = 0) -> "LiveStreamSource":
        reader = imageio.get_reader(f"<video{index}>")
        logger.info("Using capture device %d", index)
        return cls(reader, reader=reader)

    def advance(self) -> bool:
        if self.exhausted:
            self._updated = False
            return False
        try:
            self._frame = next(self._frames)
            self._updated = True
        except StopIteration:
            self.exhausted = True
            self._updated = False
        return self._updated

    def current_frame(self) -> np.ndarray | None:
        return self._frame

    def has_new_frame(self) -> bool:
        return self._updated

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()


class MediaStreamSource:
    """
    A seekable media file.

    ``frame`` is the playback position (-1 before the first frame). The
    new-frame flag compares the position against the last one observed, so
    :meth:`has_new_frame` is meant to be read once per tick.
    """

    def __init__(self, reader, playing: bool = True) -> None:
        self._reader = reader
        self.playing = playing
        self.frame = -1
        self._observed = -1
        self._data: np.ndarray | None = None
        self.ended = False
        try:
            length = reader.get_length()
        except (AttributeError, RuntimeError):
            length = math.inf
        self.length = math.inf if length is None else length

    @classmethod
    def open(cls, path: str | Path, playing: bool = True) -> "MediaStreamSource":
        return cls(imageio.get_reader(str(path)), playing=playing)

    def play(self) -> None:
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def toggle_pause(self) -> None:
        self.playing = not self.playing

    def seek(self, index: int) -> bool:
        if index < 0 or index >= self.length:
            return False
        try:
            self._data = self._reader.get_data(index)
        except IndexError:
            self.ended = True
            return False
        self.frame = index
        self.ended = False
        return True

    def advance(self) -> bool:
        """Step playback by one frame while playing; False at the end or when paused."""
        if not self.playing or self.ended:
            return False
        if not self.seek(self.frame + 1):
            self.ended = True
            return False
        return True

    def current_frame(self) -> np.ndarray | None:
        return self._data

    def has_new_frame(self) -> bool:
        if self.frame != self._observed:
            self._observed = self.frame
            return True
        return False

    @property
    def observed_frame(self) -> int:
        return self._observed

    def close(self) -> None:
        self._reader.close()


def open_source(config: PipelineConfig, path: str | Path | None = None, device: int = 0):
    if config.capture_source is CaptureSource.WEBCAM:
        return LiveStreamSource.open_device(device)
    if path is None:
        raise ValueError("A media path is required for the video capture source")
    return MediaStreamSource.open(path)

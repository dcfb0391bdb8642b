"""Lossless per-tick export of differential frames."""
from __future__ import annotations

import logging
from pathlib import Path

import imageio.v2 as imageio
import numpy as np

from .utils import to_display

logger = logging.getLogger(__name__)


class PngExportSink:
    """Writes each frame handed to it as ``<index>.png`` under ``out_dir``."""

    def __init__(self, out_dir: str | Path, start_index: int = 0) -> None:
        self.out_dir = Path(out_dir)
        self.out_dir.mkdir(parents=True, exist_ok=True)
        self.next_index = int(start_index)

    def path_for(self, index: int) -> Path:
        return self.out_dir / f"{index}.png"

    def write(self, frame: np.ndarray) -> int:
        index = self.next_index
        path = self.path_for(index)
        imageio.imwrite(path, to_display(frame))
        logger.debug("Exported frame %d to %s", index, path)
        self.next_index += 1
        return index

"""
Per-tick orchestration of the schlieren pipeline.

``FramePipeline.tick`` is called once per rendered frame by a host loop. It
only does work when the source reports a new frame; otherwise it re-presents
the last output. A tick either completes and commits all persistent state,
or is dropped without changing any of it.
"""
from __future__ import annotations

import logging
from contextlib import ExitStack
from dataclasses import dataclass

import numpy as np

from .accumulator import OutputAccumulator
from .buffers import BufferPool, frame_shape
from .config import PipelineConfig, ReferenceMode, TickCommand
from .difference import DifferenceEngine
from .effects import EffectError, EffectLibrary, NumpyEffects
from .export import PngExportSink
from .reference import ReferenceFrameManager
from .sources import FrameSource
from .utils import _ensure_rgb, to_float

logger = logging.getLogger(__name__)


@dataclass
class TickResult:
    output: np.ndarray | None
    processed: bool = False
    reference_updated: bool = False
    capture_consumed: bool = False
    exported_index: int | None = None


def _store(dst: np.ndarray | None, src: np.ndarray) -> np.ndarray:
    if dst is None or dst.shape != src.shape:
        return np.array(src, dtype=np.float32, copy=True)
    np.copyto(dst, src)
    return dst


class FramePipeline:
    def __init__(
        self,
        effects: EffectLibrary | None = None,
        export_sink: PngExportSink | None = None,
    ) -> None:
        self.effects = effects if effects is not None else NumpyEffects()
        self.pool = BufferPool()
        self.references = ReferenceFrameManager(self.effects)
        self.difference = DifferenceEngine(self.effects, self.pool)
        self.references.subscribe(self.difference.bind_reference)
        self.accumulator = OutputAccumulator(self.effects)
        self.export_sink = export_sink
        self._buffered_input: np.ndarray | None = None
        self._presented: np.ndarray | None = None
        self._capture_pending = False

    @property
    def reference(self) -> np.ndarray | None:
        return self.references.reference

    @property
    def buffered_input(self) -> np.ndarray | None:
        return self._buffered_input

    @property
    def buffered_output(self) -> np.ndarray | None:
        return self.accumulator.buffered

    @property
    def presented(self) -> np.ndarray | None:
        return self._presented

    @property
    def capture_pending(self) -> bool:
        return self._capture_pending

    def reset(self) -> None:
        self.references.reset()
        self.accumulator.reset()
        self.pool.clear()
        self._buffered_input = None
        self._presented = None
        self._capture_pending = False

    def tick(
        self,
        source: FrameSource,
        config: PipelineConfig,
        command: TickCommand | None = None,
    ) -> TickResult:
        if command is not None and command.capture_reference:
            # held until a tick actually processes a frame
            self._capture_pending = True

        if not config.processing_enabled:
            return TickResult(output=source.current_frame())

        if not source.has_new_frame():
            return self._represent()

        capture = source.current_frame()
        if capture is None:
            logger.debug("Source flagged a new frame but has no texture; skipping tick")
            return self._represent()

        try:
            return self._process(_ensure_rgb(capture), config)
        except EffectError as exc:
            logger.warning("Dropping tick after effect failure: %s", exc)
            return self._represent()

    def _represent(self) -> TickResult:
        return TickResult(output=self._presented)

    def _preprocess(self, capture, config, stack: ExitStack) -> np.ndarray:
        shape = frame_shape(*capture.shape[:2])
        frame_input = stack.enter_context(self.pool.temporary(shape))
        to_float(capture, out=frame_input)
        if config.greyscale:
            self.effects.greyscale(frame_input, out=frame_input)
        if config.denoise:
            worker = stack.enter_context(self.pool.temporary(shape))
            self.effects.denoise(frame_input, out=worker)
            np.copyto(frame_input, worker)
        return frame_input

    def _process(self, capture: np.ndarray, config: PipelineConfig) -> TickResult:
        with ExitStack() as stack:
            frame_input = self._preprocess(capture, config, stack)
            if not self.references.matches(frame_input):
                return self._bootstrap(frame_input)

            shape = frame_input.shape
            single = stack.enter_context(self.pool.temporary(shape))
            self.difference.compute(frame_input, config, out=single)
            blended = stack.enter_context(self.pool.temporary(shape))
            presented = self.accumulator.stage(
                single, config.average_output, config.output_weight, out=blended
            )

            # the reference refresh uses this tick's input, after the difference
            capture_now = self._capture_pending
            refresh = capture_now or config.reference_mode is not ReferenceMode.STATIC
            staged_reference = None
            if refresh:
                ref_worker = stack.enter_context(self.pool.temporary(shape))
                staged_reference = self.references.stage(
                    frame_input,
                    config.reference_mode,
                    trigger=capture_now,
                    weight=config.reference_weight,
                    out=ref_worker,
                )

            self._buffered_input = _store(self._buffered_input, frame_input)
            self._presented = _store(self._presented, self.accumulator.commit(presented))
            updated = self.references.commit(staged_reference) if refresh else False
            if capture_now:
                self._capture_pending = False
                logger.debug("Reference captured on request")

            exported = None
            if config.export_enabled and self.export_sink is not None:
                exported = self.export_sink.write(single)

            return TickResult(
                output=self._presented,
                processed=True,
                reference_updated=updated,
                capture_consumed=capture_now,
                exported_index=exported,
            )

    def _bootstrap(self, frame_input: np.ndarray) -> TickResult:
        """No usable reference yet: show the input and adopt it as the reference."""
        capture_now = self._capture_pending
        self._buffered_input = _store(self._buffered_input, frame_input)
        self._presented = _store(self._presented, frame_input)
        self.references.commit(frame_input)
        self._capture_pending = False
        return TickResult(
            output=self._presented,
            processed=True,
            reference_updated=True,
            capture_consumed=capture_now,
        )

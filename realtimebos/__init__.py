"""Real-time background-oriented schlieren: reference-frame differencing of live video."""
from .config import (
    CalculationMode,
    CaptureSource,
    PipelineConfig,
    ReferenceMode,
    TickCommand,
    load_config,
    save_config,
)
from .effects import EffectError, NumpyEffects
from .export import PngExportSink
from .pipeline import FramePipeline, TickResult
from .sources import LiveStreamSource, MediaStreamSource, open_source
from .version import __version__, get_build_meta, get_version_string

__all__ = [
    "CalculationMode",
    "CaptureSource",
    "PipelineConfig",
    "ReferenceMode",
    "TickCommand",
    "load_config",
    "save_config",
    "EffectError",
    "NumpyEffects",
    "PngExportSink",
    "FramePipeline",
    "TickResult",
    "LiveStreamSource",
    "MediaStreamSource",
    "open_source",
    "get_version_string",
    "get_build_meta",
    "__version__",
]

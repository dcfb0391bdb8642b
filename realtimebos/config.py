"""Pipeline configuration: processing modes, immutable per-tick settings, JSON files."""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from .constants import (
    DEFAULT_DELTA_GAIN,
    DEFAULT_DELTA_THRESHOLD,
    DEFAULT_OUTPUT_WEIGHT,
    DEFAULT_REFERENCE_WEIGHT,
    DEFAULT_SEARCH_RADIUS,
    MACROBLOCK_SIZE,
)


class CaptureSource(Enum):
    WEBCAM = "webcam"
    VIDEO = "video"


class CalculationMode(Enum):
    PIXEL_DELTA = "pixel_delta"
    MACRO_BLOCK_SEARCH = "macro_block_search"


class ReferenceMode(Enum):
    STATIC = "static"
    PREVIOUS_FRAME = "previous_frame"
    TEMPORAL_SMOOTHING = "temporal_smoothing"


def clamp_weight(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


def _parse_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip().lower().replace("-", "_")
    for member in enum_cls:
        if text in (member.value, member.name.lower()):
            return member
    choices = ", ".join(m.value for m in enum_cls)
    raise ValueError(f"Unknown {enum_cls.__name__} {value!r}; choose from {choices}")


@dataclass(frozen=True)
class PipelineConfig:
    """
    Settings read by one tick of the pipeline.

    Instances are immutable so a tick never observes a half-applied change;
    hosts build a new value (``config.replace(...)``) between ticks.
    """

    capture_source: CaptureSource = CaptureSource.VIDEO
    calculation_mode: CalculationMode = CalculationMode.PIXEL_DELTA
    reference_mode: ReferenceMode = ReferenceMode.STATIC
    greyscale: bool = False
    denoise: bool = False
    average_output: bool = True
    reference_weight: float = DEFAULT_REFERENCE_WEIGHT
    output_weight: float = DEFAULT_OUTPUT_WEIGHT
    processing_enabled: bool = True
    export_enabled: bool = False
    delta_threshold: float = DEFAULT_DELTA_THRESHOLD
    delta_gain: float = DEFAULT_DELTA_GAIN
    block_size: int = MACROBLOCK_SIZE
    search_radius: int = DEFAULT_SEARCH_RADIUS

    def __post_init__(self) -> None:
        object.__setattr__(self, "capture_source", _parse_enum(CaptureSource, self.capture_source))
        object.__setattr__(self, "calculation_mode", _parse_enum(CalculationMode, self.calculation_mode))
        object.__setattr__(self, "reference_mode", _parse_enum(ReferenceMode, self.reference_mode))
        object.__setattr__(self, "reference_weight", clamp_weight(self.reference_weight))
        object.__setattr__(self, "output_weight", clamp_weight(self.output_weight))
        if int(self.block_size) < 1:
            raise ValueError("block_size must be >= 1")
        if int(self.search_radius) < 0:
            raise ValueError("search_radius must be >= 0")
        if float(self.delta_threshold) < 0.0:
            raise ValueError("delta_threshold must be >= 0")

    def replace(self, **changes: Any) -> "PipelineConfig":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, Enum):
                data[key] = value.value
        return data

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PipelineConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**dict(data))


@dataclass(frozen=True)
class TickCommand:
    """One-shot requests from the host for a single tick."""

    capture_reference: bool = False


def load_config(path: str | Path) -> PipelineConfig:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a JSON object")
    return PipelineConfig.from_mapping(data)


def save_config(config: PipelineConfig, path: str | Path) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)

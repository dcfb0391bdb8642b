"""Command-line entrypoints for realtimebos."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Collection, Iterator

import imageio.v2 as imageio

from .config import (
    CalculationMode,
    CaptureSource,
    PipelineConfig,
    ReferenceMode,
    TickCommand,
    load_config,
    save_config,
)
from .export import PngExportSink
from .pipeline import FramePipeline, TickResult
from .sources import open_source
from .utils import to_display
from .version import get_version_string

logger = logging.getLogger(__name__)


def drive(
    source,
    pipeline: FramePipeline,
    config: PipelineConfig,
    capture_at: Collection[int] = (),
    max_frames: int | None = None,
) -> Iterator[TickResult]:
    """
    Host loop: advance the source, then tick the pipeline once.

    Ticks listed in ``capture_at`` carry a capture-reference command.
    """
    ticks = 0
    while max_frames is None or ticks < max_frames:
        if not source.advance():
            break
        command = TickCommand(capture_reference=ticks in capture_at)
        yield pipeline.tick(source, config, command)
        ticks += 1


def process_video(
    input_path: str | None,
    output_path: str,
    config: PipelineConfig | None = None,
    capture_at: Collection[int] = (),
    export_dir: str | None = None,
    max_frames: int | None = None,
    fps: int = 30,
    device: int = 0,
) -> int:
    """Run the pipeline over a capture source and write the presented frames as a video."""
    config = config or PipelineConfig()
    sink = None
    if export_dir is not None:
        sink = PngExportSink(export_dir)
        config = config.replace(export_enabled=True)
    source = open_source(config, input_path, device=device)
    pipeline = FramePipeline(export_sink=sink)
    writer = imageio.get_writer(output_path, fps=fps)
    written = 0
    try:
        for result in drive(source, pipeline, config, capture_at=set(capture_at), max_frames=max_frames):
            if result.output is None:
                continue
            writer.append_data(to_display(result.output))
            written += 1
    finally:
        writer.close()
        source.close()
    src_label = input_path if config.capture_source is CaptureSource.VIDEO else f"<video{device}>"
    print(
        f"Processed {src_label} -> {output_path}. Frames={written}, "
        f"Mode={config.calculation_mode.value}, Reference={config.reference_mode.value}"
    )
    return written


def _add_run_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("input", nargs="?", default=None, help="Input video path (omit with --device)")
    p.add_argument("output", help="Output video path")
    p.add_argument("--config", type=Path, default=None, help="JSON configuration file")
    p.add_argument("--save-config", type=Path, default=None, help="Write the effective configuration")
    p.add_argument("--device", type=int, default=None, help="Capture from a live device instead of a file")
    p.add_argument("--calc-mode", choices=[m.value for m in CalculationMode], default=None)
    p.add_argument("--reference-mode", choices=[m.value for m in ReferenceMode], default=None)
    p.add_argument("--greyscale", action="store_true", default=None, help="Convert input to greyscale")
    p.add_argument("--denoise", action="store_true", default=None, help="Box-filter the input")
    p.add_argument(
        "--no-average", dest="average_output", action="store_false", default=None, help="Present raw differentials"
    )
    p.add_argument("--bypass", dest="processing_enabled", action="store_false", default=None, help="Pass frames through")
    p.add_argument("--reference-weight", type=float, default=None, help="Reference smoothing weight [0, 1]")
    p.add_argument("--output-weight", type=float, default=None, help="Output smoothing weight [0, 1]")
    p.add_argument("--threshold", dest="delta_threshold", type=float, default=None, help="Delta window threshold")
    p.add_argument("--gain", dest="delta_gain", type=float, default=None, help="Delta window gain")
    p.add_argument("--capture-at", type=int, nargs="*", default=[], help="Ticks that recapture the reference")
    p.add_argument("--export-dir", type=str, default=None, help="Write each differential as PNG here")
    p.add_argument("--max-frames", type=int, default=None, help="Limit number of ticks")
    p.add_argument("--fps", type=int, default=30, help="Output frames per second")


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    config = load_config(args.config) if args.config else PipelineConfig()
    overrides = {}
    if args.calc_mode is not None:
        overrides["calculation_mode"] = args.calc_mode
    if args.reference_mode is not None:
        overrides["reference_mode"] = args.reference_mode
    for key in (
        "greyscale",
        "denoise",
        "average_output",
        "processing_enabled",
        "reference_weight",
        "output_weight",
        "delta_threshold",
        "delta_gain",
    ):
        value = getattr(args, key)
        if value is not None:
            overrides[key] = value
    if args.device is not None:
        overrides["capture_source"] = CaptureSource.WEBCAM
    return config.replace(**overrides) if overrides else config


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Real-time BOS differencing of a video or device")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    _add_run_arguments(parser)
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)
    _run(parser, args)


def _run(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    config = config_from_args(args)
    logger.debug("Effective configuration: %s", config.to_dict())
    if config.capture_source is CaptureSource.VIDEO:
        if args.input is None:
            parser.error("input is required unless --device is given")
        if not Path(args.input).exists():
            raise SystemExit(f"Input not found: {args.input}")
    if args.save_config is not None:
        save_config(config, args.save_config)
    process_video(
        args.input,
        args.output,
        config,
        capture_at=args.capture_at,
        export_dir=args.export_dir,
        max_frames=args.max_frames,
        fps=args.fps,
        device=args.device or 0,
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Real-time background-oriented schlieren")
    parser.add_argument("--version", action="version", version=get_version_string())
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="cmd")

    p_run = sub.add_parser("run", help="Process a video (or device) into a BOS video")
    _add_run_arguments(p_run)

    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if args.cmd == "run":
        _run(p_run, args)
    else:
        parser.error("Unknown command")


if __name__ == "__main__":
    main()

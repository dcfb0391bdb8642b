"""Run BOS differencing over a video file with a reference recapture schedule."""
from __future__ import annotations

import argparse

from realtimebos import CalculationMode, PipelineConfig, ReferenceMode
from realtimebos.cli import process_video


def main():
    parser = argparse.ArgumentParser(description="Background-oriented schlieren over a video file")
    parser.add_argument("input", help="Input video path")
    parser.add_argument("output", help="Output video path")
    parser.add_argument("--macroblock", action="store_true", help="Use macroblock search instead of pixel delta")
    parser.add_argument("--smooth-reference", action="store_true", help="Let the reference drift with the scene")
    parser.add_argument("--recapture-every", type=int, default=0, help="Recapture the reference every N frames")
    parser.add_argument("--max-frames", type=int, default=None, help="Limit number of frames processed")
    args = parser.parse_args()

    config = PipelineConfig(
        calculation_mode=CalculationMode.MACRO_BLOCK_SEARCH if args.macroblock else CalculationMode.PIXEL_DELTA,
        reference_mode=ReferenceMode.TEMPORAL_SMOOTHING if args.smooth_reference else ReferenceMode.STATIC,
        greyscale=True,
        denoise=True,
    )
    capture_at = range(0, args.max_frames or 100000, args.recapture_every) if args.recapture_every > 0 else ()
    process_video(args.input, args.output, config, capture_at=set(capture_at), max_frames=args.max_frames)


if __name__ == "__main__":
    main()

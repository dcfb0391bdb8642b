"""Per-tick timing and memory profile of the pipeline over a clip."""
from __future__ import annotations

import argparse
import json
import subprocess
import sys
import time
import tracemalloc
from pathlib import Path
from typing import Optional

import numpy as np
import psutil

from .config import PipelineConfig, load_config
from .pipeline import FramePipeline
from .sources import MediaStreamSource


def current_rss_mb() -> float:
    proc = psutil.Process()
    return proc.memory_info().rss / (1024 * 1024)


def time_ticks(
    input_path: Path, config: PipelineConfig, max_frames: int | None = None
) -> tuple[list[float], list[float]]:
    """Return per-tick wall time (seconds) and mean absolute presented signal."""
    source = MediaStreamSource.open(input_path)
    pipeline = FramePipeline()
    times: list[float] = []
    signal: list[float] = []
    try:
        while max_frames is None or len(times) < max_frames:
            if not source.advance():
                break
            t0 = time.perf_counter()
            result = pipeline.tick(source, config)
            times.append(time.perf_counter() - t0)
            signal.append(float(np.mean(np.abs(result.output))) if result.output is not None else 0.0)
    finally:
        source.close()
    return times, signal


def run_profile(
    input_path: Path, out_dir: Path, config: PipelineConfig | None = None, max_frames: int | None = None
) -> dict:
    config = config or PipelineConfig()
    out_dir.mkdir(parents=True, exist_ok=True)
    result: dict = {"config": config.to_dict()}

    tracemalloc.start()
    rss_start = current_rss_mb()
    times, _ = time_ticks(input_path, config, max_frames=max_frames)
    _, peak_size = tracemalloc.get_traced_memory()
    tracemalloc.stop()

    arr = np.asarray(times, dtype=np.float64) if times else np.zeros((1,), dtype=np.float64)
    result["ticks"] = len(times)
    result["tick_mean_ms"] = float(arr.mean() * 1000.0)
    result["tick_p95_ms"] = float(np.percentile(arr, 95) * 1000.0)
    result["tick_max_ms"] = float(arr.max() * 1000.0)
    result["rss_start_mb"] = rss_start
    result["rss_end_mb"] = current_rss_mb()
    result["tracemalloc_peak_bytes"] = peak_size

    git = subprocess.run(["git", "rev-parse", "HEAD"], capture_output=True, text=True)
    result["env"] = {
        "python": sys.version,
        "platform": sys.platform,
        "git": git.stdout.strip() if git.returncode == 0 else "",
    }

    with open(out_dir / "profile.json", "w", encoding="utf-8") as f:
        json.dump(result, f, indent=2)
    return result


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Profile realtimebos per-tick cost")
    parser.add_argument("--input", type=Path, required=True, help="Input video")
    parser.add_argument("--out", type=Path, required=True, help="Output directory for profile")
    parser.add_argument("--config", type=Path, default=None, help="JSON configuration file")
    parser.add_argument("--max-frames", type=int, default=None)
    args = parser.parse_args(argv)

    config = load_config(args.config) if args.config else None
    res = run_profile(args.input, args.out, config, max_frames=args.max_frames)
    print(json.dumps(res, indent=2))


if __name__ == "__main__":
    main()

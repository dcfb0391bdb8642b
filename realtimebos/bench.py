from __future__ import annotations

import argparse
import json
import subprocess
import sys
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import List, Optional

import matplotlib.pyplot as plt
import numpy as np

from .config import CalculationMode, PipelineConfig, ReferenceMode
from .profile import time_ticks


@dataclass
class BenchResult:
    calculation_mode: str
    reference_mode: str
    clip: str
    ticks: int
    tick_mean_ms: float
    tick_p95_ms: float
    ticks_per_sec: float
    mean_signal: float


def bench_clip(clip: Path, config: PipelineConfig, max_frames: int | None) -> tuple[BenchResult, list[float]]:
    times, signal = time_ticks(clip, config, max_frames=max_frames)
    arr = np.asarray(times, dtype=np.float64) if times else np.zeros((1,), dtype=np.float64)
    total = float(arr.sum())
    res = BenchResult(
        calculation_mode=config.calculation_mode.value,
        reference_mode=config.reference_mode.value,
        clip=clip.name,
        ticks=len(times),
        tick_mean_ms=float(arr.mean() * 1000.0),
        tick_p95_ms=float(np.percentile(arr, 95) * 1000.0),
        ticks_per_sec=len(times) / total if total > 0 else 0.0,
        mean_signal=float(np.mean(signal)) if signal else 0.0,
    )
    return res, signal


def collect_env() -> dict:
    data = {
        "python": sys.version,
        "platform": sys.platform,
    }
    git = subprocess.run(["git", "rev-parse", "HEAD"], capture_output=True, text=True)
    if git.returncode == 0:
        data["git_commit"] = git.stdout.strip()
    return data


def write_results(
    out_dir: Path, results: list[BenchResult], signals: dict[str, list[float]], env: dict
) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    with open(out_dir / "results.json", "w", encoding="utf-8") as f:
        json.dump({"env": env, "results": [asdict(r) for r in results]}, f, indent=2)

    lines = []
    lines.append("# realtimebos Benchmark Report\n")
    lines.append(f"Env: {env}\n")
    lines.append("| calc mode | reference | clip | ticks | mean (ms) | p95 (ms) | ticks/s | mean signal |")
    lines.append("|---|---|---|---|---|---|---|---|")
    for r in results:
        lines.append(
            f"| {r.calculation_mode} | {r.reference_mode} | {r.clip} | {r.ticks} | "
            f"{r.tick_mean_ms:.2f} | {r.tick_p95_ms:.2f} | {r.ticks_per_sec:.1f} | {r.mean_signal:.4f} |"
        )
    (out_dir / "report.md").write_text("\n".join(lines), encoding="utf-8")

    plots = out_dir / "plots"
    plots.mkdir(parents=True, exist_ok=True)
    if not results:
        return

    plt.figure()
    labels = [f"{r.calculation_mode}-{r.reference_mode}-{r.clip}" for r in results]
    x = np.arange(len(labels))
    width = 0.35
    plt.bar(x - width / 2, [r.tick_mean_ms for r in results], width, label="mean ms")
    plt.bar(x + width / 2, [r.tick_p95_ms for r in results], width, label="p95 ms")
    plt.xticks(x, labels, rotation=45, ha="right")
    plt.ylabel("Tick time (ms)")
    plt.legend()
    plt.tight_layout()
    plt.savefig(plots / "tick_time.png")
    plt.close()

    plt.figure()
    for label, values in signals.items():
        plt.plot(np.arange(len(values)), values, label=label)
    plt.xlabel("Tick")
    plt.ylabel("Mean |output|")
    plt.legend()
    plt.tight_layout()
    plt.savefig(plots / "signal.png")
    plt.close()


def find_clips(path: Path) -> list[Path]:
    return sorted([p for p in path.glob("*.mp4") if p.is_file()])


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Benchmark realtimebos calculation and reference modes")
    parser.add_argument("--clips", type=Path, required=True, help="Directory containing .mp4 clips")
    parser.add_argument("--out", type=Path, required=True, help="Output directory for results")
    parser.add_argument(
        "--calc-modes",
        type=str,
        default=",".join(m.value for m in CalculationMode),
        help="Comma separated calculation modes",
    )
    parser.add_argument(
        "--reference-modes", type=str, default=ReferenceMode.STATIC.value, help="Comma separated reference modes"
    )
    parser.add_argument("--max-frames", type=int, default=None, help="Limit ticks per clip")
    args = parser.parse_args(argv)

    clips = find_clips(args.clips)
    if not clips:
        raise SystemExit(f"No .mp4 clips found in {args.clips}")

    calc_modes = [c.strip() for c in args.calc_modes.split(",") if c.strip()]
    ref_modes = [r.strip() for r in args.reference_modes.split(",") if r.strip()]

    results: list[BenchResult] = []
    signals: dict[str, list[float]] = {}
    for clip in clips:
        for calc in calc_modes:
            for ref in ref_modes:
                config = PipelineConfig(calculation_mode=calc, reference_mode=ref)
                res, signal = bench_clip(clip, config, args.max_frames)
                results.append(res)
                signals[f"{res.calculation_mode}-{res.reference_mode}-{clip.stem}"] = signal

    write_results(args.out, results, signals, collect_env())
    print(f"Wrote results to {args.out}")


if __name__ == "__main__":
    main()

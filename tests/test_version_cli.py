from __future__ import annotations

import subprocess
import sys
from pathlib import Path

from realtimebos import __version__


def test_cli_version_outputs_version():
    repo_root = Path(__file__).resolve().parents[1]
    proc = subprocess.run(
        [sys.executable, "-m", "realtimebos", "--version"],
        cwd=repo_root,
        capture_output=True,
        text=True,
        check=True,
    )
    out = (proc.stdout or "").strip()
    assert out.startswith(__version__), f"unexpected version output: {out}"

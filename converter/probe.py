"""
converter.probe
~~~~~~~~~~~~~~~
Thin wrapper around the ffprobe CLI. Only the container duration is read:
it is what turns ffmpeg's ``out_time=`` lines into a real percentage.
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path

from converter.paths import find_executable

logger = logging.getLogger(__name__)


# ── Public API ────────────────────────────────────────────────────────────────

def get_duration(file: Path) -> float:
    """
    Duration of *file* in seconds.
    Returns 0.0 if ffprobe is missing or the duration cannot be determined;
    callers fall back to estimated progress in that case.
    """
    ffprobe = find_executable("ffprobe")
    if ffprobe is None:
        return 0.0

    try:
        data = _run_ffprobe(ffprobe, file)
    except (OSError, RuntimeError, ValueError, subprocess.SubprocessError) as exc:
        logger.debug(f"ffprobe could not read '{file.name}': {exc}")
        return 0.0

    try:
        return float(data.get("format", {}).get("duration", 0.0))
    except (TypeError, ValueError):
        return 0.0


# ── Internal helpers ──────────────────────────────────────────────────────────

def _run_ffprobe(ffprobe: Path, file: Path) -> dict:
    """Execute ffprobe and return parsed JSON output."""
    cmd = [
        str(ffprobe),
        "-v", "quiet",            # suppress banner
        "-print_format", "json",  # machine-readable output
        "-show_format",           # duration, bitrate, etc.
        str(file),
    ]

    result = subprocess.run(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        timeout=30,
    )

    if result.returncode != 0:
        raise RuntimeError(
            f"ffprobe failed on {file.name}:\n{result.stderr.strip()}"
        )

    return json.loads(result.stdout)

"""
converter.paths
~~~~~~~~~~~~~~~
Single source of truth for filesystem paths used across the app, and for
finding the external tools we shell out to.
Import these instead of hard-coding strings anywhere else.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

# Project root = the directory that contains main.py
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Binaries dropped here take precedence over anything on PATH
BIN_DIR = PROJECT_ROOT / "bin"

# Searched after PATH, in order. The first one doubles as the documented
# fallback returned by resolve_executable() when nothing is found.
FALLBACK_PREFIXES: tuple[Path, ...] = (
    Path("/opt/homebrew/bin"),
    Path("/usr/local/bin"),
    Path("/usr/bin"),
)

DEFAULT_OUTPUT_DIR = Path.home() / "Downloads" / "Converted"
DEFAULT_STAGING_DIR = Path(tempfile.gettempdir()) / "LocalFileConverter"

# Every tool some strategy may invoke, for the startup report
KNOWN_TOOLS: tuple[str, ...] = (
    "ffmpeg", "ffprobe", "magick", "sips", "pandoc",
    "zip", "unzip", "7z", "tar", "unrar", "yt-dlp",
)


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def find_executable(name: str) -> Path | None:
    """
    Locate *name*: bundled BIN_DIR first, then PATH, then FALLBACK_PREFIXES.
    Returns None when the tool is not installed anywhere we look.
    """
    bundled = BIN_DIR / name
    if _is_executable(bundled):
        return bundled

    found = shutil.which(name)
    if found:
        return Path(found)

    for prefix in FALLBACK_PREFIXES:
        candidate = prefix / name
        if _is_executable(candidate):
            return candidate
    return None


def resolve_executable(name: str) -> str:
    """
    Path to hand to Popen for *name*.

    Falls back to the first install prefix when the tool cannot be found, so
    the runner reports ToolNotFound at spawn time instead of here.
    """
    found = find_executable(name)
    if found is not None:
        return str(found)
    return str(FALLBACK_PREFIXES[0] / name)


def is_tool_available(name: str) -> bool:
    return find_executable(name) is not None


def missing_tools(names: tuple[str, ...] = KNOWN_TOOLS) -> list[str]:
    """
    Return the subset of *names* that cannot be found.
    Empty list means all good.

    Call this at startup to tell the user what to install.
    """
    return [name for name in names if not is_tool_available(name)]

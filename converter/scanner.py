"""
converter.scanner
~~~~~~~~~~~~~~~~~
Pure functions for turning a folder into a list of convertible inputs.
No Qt and no subprocess, so they unit-test in isolation.
"""

from __future__ import annotations

from pathlib import Path

from converter.models import Category, strip_format


# ── Public API ────────────────────────────────────────────────────────────────

def find_convertible_files(
    folder: Path,
    category: Category | None = None,
    recursive: bool = False,
) -> list[Path]:
    """
    Return files inside *folder* whose extension maps to a Category.

    Args:
        folder:    folder to scan
        category:  only keep files of this category (None = any)
        recursive: descend into sub-folders

    Returns:
        Sorted list of Paths; empty if *folder* is not a directory.
    """
    if not folder.is_dir():
        return []

    candidates = folder.rglob("*") if recursive else folder.iterdir()
    found = []
    for path in candidates:
        if not path.is_file() or path.name.startswith("."):
            continue
        detected = Category.detect(path)
        if detected is None:
            continue
        if category is not None and detected != category:
            continue
        found.append(path)
    return sorted(found)


def find_pending_files(
    inputs: list[Path],
    output_folder: Path,
    target_format: str,
) -> list[Path]:
    """
    Return the *inputs* that do NOT yet have a converted counterpart.

    Matching follows the output naming rule:
        input/clip001.mov  →  output/clip001_converted.mp4   is considered DONE
        input/clip002.mov  →  (missing)                      is considered PENDING
    """
    done = _collect_converted_names(output_folder, target_format)
    return [f for f in inputs if strip_format(f) not in done]


# ── Internal helpers ──────────────────────────────────────────────────────────

def _collect_converted_names(folder: Path, target_format: str) -> frozenset[str]:
    """
    Input basenames for which *folder* already holds ``<name>_converted.<fmt>``.
    Returns an empty frozenset if the folder doesn't exist yet.
    """
    if not folder.is_dir():
        return frozenset()

    suffix = f"_converted.{target_format.lower()}"
    return frozenset(
        f.name[: -len(suffix)] for f in folder.iterdir()
        if f.is_file() and f.name.lower().endswith(suffix)
    )

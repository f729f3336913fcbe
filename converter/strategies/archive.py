"""
converter.strategies.archive
~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Re-packs an archive in two steps:

  1. extract  the source archive into a fresh staging directory
  2. create   the target archive from that directory's contents

The create step runs with the staging directory as its working directory and
archives ``.`` (or ``*`` for 7z). Run it anywhere else and the tool happily
archives the wrong tree, or nothing at all, and still exits 0.

The staging directory is returned in ``plan.staged`` so the worker deletes it
once the job is over, whatever the outcome.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from converter.errors import UnsupportedFormat
from converter.models import Category, Command, ConversionPlan, source_format
from converter.output import OutputPathResolver
from converter.paths import resolve_executable
from converter.strategies.base import FormatStrategy

logger = logging.getLogger(__name__)


class ArchiveStrategy(FormatStrategy):

    category = Category.ARCHIVE
    primary_tool = "tar"

    def __init__(self, resolver: OutputPathResolver, staging_dir: Path):
        super().__init__(resolver)
        self._staging_dir = staging_dir

    def build_plan(self, source: Path, target_format: str, options=None) -> ConversionPlan:
        fmt = self._check_target(target_format)
        source = source.absolute()
        output = self.output_path(source, fmt)

        self._staging_dir.mkdir(parents=True, exist_ok=True)
        extract_dir = Path(tempfile.mkdtemp(prefix="extract_", dir=self._staging_dir))
        try:
            commands = [
                self.build_extract_command(source, extract_dir),
                self.build_create_command(extract_dir, fmt, output),
            ]
        except Exception:
            shutil.rmtree(extract_dir, ignore_errors=True)
            raise

        logger.debug(f"Archive plan for '{source.name}': extract into '{extract_dir}'")
        return ConversionPlan(commands, output, staged=[extract_dir])

    # ── Steps ─────────────────────────────────────────────────────────────────

    def build_extract_command(self, archive: Path, dest: Path) -> Command:
        fmt = source_format(archive)
        if fmt == "zip":
            return _command("unzip", "-q", "-o", str(archive), "-d", str(dest))
        if fmt == "7z":
            return _command("7z", "x", str(archive), f"-o{dest}", "-y")
        if fmt == "tar":
            return _command("tar", "-xf", str(archive), "-C", str(dest))
        if fmt in ("tar.gz", "gz"):
            return _command("tar", "-xzf", str(archive), "-C", str(dest))
        if fmt == "bz2":
            return _command("tar", "-xjf", str(archive), "-C", str(dest))
        if fmt == "rar":
            return _command("unrar", "x", "-o+", str(archive), f"{dest}/")
        raise UnsupportedFormat(f"cannot extract '.{fmt}' archives")

    def build_create_command(self, source_dir: Path, target_format: str, output: Path) -> Command:
        if target_format == "zip":
            args = ("-r", "-q", str(output), ".")
            tool = "zip"
        elif target_format == "7z":
            # 7z expands the wildcard itself; no shell involved
            args = ("a", "-y", str(output), "*")
            tool = "7z"
        elif target_format == "tar":
            args = ("-cf", str(output), ".")
            tool = "tar"
        elif target_format == "tar.gz":
            args = ("-czf", str(output), ".")
            tool = "tar"
        else:
            raise UnsupportedFormat(f"cannot create '{target_format}' archives")
        return Command(tool, resolve_executable(tool), args, cwd=source_dir)


def _command(tool: str, *args: str) -> Command:
    return Command(tool, resolve_executable(tool), args)

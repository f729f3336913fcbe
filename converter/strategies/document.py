"""
converter.strategies.document
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
pandoc for every document target. Flags are added only where pandoc cannot
infer what it needs from the output extension.

There is no second tool to fall back on: without pandoc installed, running
the command raises ``ToolNotFound("pandoc")``.
"""

from __future__ import annotations

from pathlib import Path

from converter.models import Category, Command
from converter.paths import resolve_executable
from converter.presets import PANDOC_FORMAT_ARGS
from converter.strategies.base import CommandStrategy


class DocumentStrategy(CommandStrategy):

    category = Category.DOCUMENT
    primary_tool = "pandoc"

    def build_command(self, source: Path, target_format: str, options=None) -> Command:
        fmt = self._check_target(target_format)
        output = self.output_path(source, fmt)

        args = [
            str(source),
            "-o", str(output),
            *PANDOC_FORMAT_ARGS.get(fmt, []),
        ]
        return Command(self.primary_tool, resolve_executable(self.primary_tool), tuple(args))

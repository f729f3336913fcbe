"""
converter.strategies.audio
~~~~~~~~~~~~~~~~~~~~~~~~~~
ffmpeg with a fixed codec / bitrate / sample-rate per target format.
"""

from __future__ import annotations

from pathlib import Path

from converter.models import Category, Command
from converter.paths import resolve_executable
from converter.presets import AUDIO_CODEC_DEFAULTS
from converter.strategies.base import CommandStrategy


class AudioStrategy(CommandStrategy):

    category = Category.AUDIO
    primary_tool = "ffmpeg"

    def build_command(self, source: Path, target_format: str, options=None) -> Command:
        fmt = self._check_target(target_format)
        output = self.output_path(source, fmt)

        args = [
            "-i", str(source),
            "-vn",                          # drop cover art / video streams
            "-nostats",
            "-progress", "pipe:1",
            *AUDIO_CODEC_DEFAULTS[fmt],
            "-y",
            str(output),
        ]
        return Command(
            self.primary_tool,
            resolve_executable(self.primary_tool),
            tuple(args),
            progress_format="ffmpeg",
        )

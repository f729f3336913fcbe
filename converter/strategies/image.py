"""
converter.strategies.image
~~~~~~~~~~~~~~~~~~~~~~~~~~
ImageMagick when it is installed, otherwise macOS ``sips``.

sips can only change format, resize and rotate; asking it for anything else
raises UnsupportedFormat rather than silently dropping the request.
"""

from __future__ import annotations

import logging
from pathlib import Path

from converter.errors import UnsupportedFormat
from converter.models import (
    Category, Command, ImageOptions, Resize,
    ResizeDimensions, ResizeMaxDimension, ResizePercentage,
)
from converter.paths import resolve_executable
from converter.presets import (
    BACKGROUND_REMOVAL_ARGS, IMAGE_DEFAULT_QUALITY, IMAGE_PRESET_ARGS, SIPS_FORMATS,
)
from converter.strategies.base import CommandStrategy

logger = logging.getLogger(__name__)


class ImageStrategy(CommandStrategy):

    category = Category.IMAGE
    primary_tool = "magick"
    fallback_tool = "sips"
    options_type = ImageOptions

    def build_command(
        self,
        source: Path,
        target_format: str,
        options: ImageOptions | None = None,
    ) -> Command:
        fmt = self._check_target(target_format)
        output = self.output_path(source, fmt)

        if self.is_primary_tool_available():
            args = [str(source), *build_magick_args(options, fmt), str(output)]
            return Command(self.primary_tool, resolve_executable(self.primary_tool), tuple(args))

        logger.info(f"ImageMagick not found, using {self.fallback_tool} for '{source.name}'")
        args = build_sips_args(source, output, fmt, options)
        return Command(self.fallback_tool, resolve_executable(self.fallback_tool), tuple(args))


# ── ImageMagick ───────────────────────────────────────────────────────────────

def build_magick_args(options: ImageOptions | None, target_format: str) -> list[str]:
    """
    Operators placed between input and output, e.g.::

        ['-resize', '1920x1920>', '-quality', '85', '-strip']
    """
    if options is None:
        return default_quality_args(target_format)

    args: list[str] = []
    if options.preset is not None:
        args += IMAGE_PRESET_ARGS[options.preset]
    if options.resize is not None:
        args += ["-resize", _magick_geometry(options.resize)]
    if options.crop is not None:
        crop = options.crop
        args += ["-crop", f"{crop.width}x{crop.height}+{crop.x}+{crop.y}", "+repage"]
    if options.rotation is not None:
        args += ["-rotate", str(options.rotation.value)]
    if options.remove_background:
        args += BACKGROUND_REMOVAL_ARGS

    if options.quality is not None:
        args += ["-quality", str(options.quality)]
    elif options.preset is None:
        args += default_quality_args(target_format)
    return args


def default_quality_args(target_format: str) -> list[str]:
    quality = IMAGE_DEFAULT_QUALITY.get(target_format.lower())
    return ["-quality", str(quality)] if quality is not None else []


def _magick_geometry(resize: Resize) -> str:
    # '>' only shrinks and keeps aspect; '!' forces the exact box
    if isinstance(resize, ResizeDimensions):
        flag = ">" if resize.maintain_aspect_ratio else "!"
        return f"{resize.width}x{resize.height}{flag}"
    if isinstance(resize, ResizePercentage):
        return f"{resize.percent}%"
    if isinstance(resize, ResizeMaxDimension):
        flag = ">" if resize.maintain_aspect_ratio else "!"
        return f"{resize.size}x{resize.size}{flag}"
    raise TypeError(f"Unknown resize mode: {resize!r}")


# ── sips ──────────────────────────────────────────────────────────────────────

def build_sips_args(
    source: Path,
    output: Path,
    target_format: str,
    options: ImageOptions | None,
) -> list[str]:
    sips_format = SIPS_FORMATS.get(target_format)
    if sips_format is None:
        raise UnsupportedFormat(f"sips cannot write '{target_format}', install ImageMagick")

    args = ["-s", "format", sips_format]
    if options is not None:
        unsupported = [
            name for name, value in (
                ("crop", options.crop),
                ("background removal", options.remove_background),
                ("preset", options.preset),
            ) if value
        ]
        if unsupported:
            raise UnsupportedFormat(f"sips cannot apply {', '.join(unsupported)}, install ImageMagick")

        if options.resize is not None:
            args += _sips_resize(options.resize)
        if options.rotation is not None:
            args += ["-r", str(options.rotation.value)]
        if options.quality is not None and sips_format == "jpeg":
            args += ["-s", "formatOptions", str(options.quality)]

    return [*args, str(source), "--out", str(output)]


def _sips_resize(resize: Resize) -> list[str]:
    if isinstance(resize, ResizeDimensions):
        if resize.maintain_aspect_ratio:
            return ["-Z", str(max(resize.width, resize.height))]
        return ["-z", str(resize.height), str(resize.width)]
    if isinstance(resize, ResizeMaxDimension):
        return ["-Z", str(resize.size)]
    raise UnsupportedFormat("sips cannot resize by percentage, install ImageMagick")

"""
converter.strategies.video
~~~~~~~~~~~~~~~~~~~~~~~~~~
Builds ffmpeg commands for video targets.

The command structure is:
    ffmpeg
      [-ss <start>]          ← trim start, seeks before decoding
      -i <input>
      [-t <length>]          ← trim length
      -nostats               ← suppress human-readable stats on stderr
      -progress pipe:1       ← machine-readable key=value progress on stdout
      <codec args>           ← container defaults, then compression / preset
      [-vf <filter chain>]   ← preset, resize and gif filters
      -y                     ← overwrite output without prompting
      <output>

Example (mp4, no options):
    ['/usr/bin/ffmpeg', '-i', '/clips/a.mov', '-nostats', '-progress', 'pipe:1',
     '-c:v', 'libx264', '-preset', 'medium', '-crf', '23',
     '-c:a', 'aac', '-b:a', '128k', '-y', '/out/a_converted.mp4']
"""

from __future__ import annotations

from pathlib import Path

from converter.models import (
    Category, Command, Compression, Resize, VideoOptions, VideoPreset,
    ResizeDimensions, ResizeMaxDimension, ResizePercentage,
)
from converter.paths import resolve_executable
from converter.presets import (
    COMPRESSION_LEVELS, CONTAINER_CODEC_FAMILY, GIF_FPS, GIF_WIDTH,
    VIDEO_CONTAINER_DEFAULTS, VIDEO_PRESETS, VIDEO_QUALITY_FLAG,
)
from converter.strategies.base import CommandStrategy

_PALETTE_CHAIN = "split[s0][s1];[s0]palettegen[p];[s1][p]paletteuse"


class VideoStrategy(CommandStrategy):

    category = Category.VIDEO
    primary_tool = "ffmpeg"
    options_type = VideoOptions

    def build_command(
        self,
        source: Path,
        target_format: str,
        options: VideoOptions | None = None,
    ) -> Command:
        fmt = self._check_target(target_format)
        output = self.output_path(source, fmt)
        opts = options or VideoOptions()

        args: list[str] = []
        trim = opts.trim
        if trim is not None and trim.start:
            args += ["-ss", _seconds(trim.start)]
        args += ["-i", str(source)]
        if trim is not None and trim.length is not None:
            args += ["-t", _seconds(trim.length)]

        args += ["-nostats", "-progress", "pipe:1"]
        args += build_codec_args(fmt, opts)

        chain = build_filter_chain(fmt, opts)
        if chain:
            args += ["-vf", chain]

        args += ["-y", str(output)]
        return Command(
            self.primary_tool,
            resolve_executable(self.primary_tool),
            tuple(args),
            progress_format="ffmpeg",
        )

    def effective_duration(self, probed_seconds: float, options: VideoOptions | None) -> float:
        if options is None or options.trim is None or probed_seconds <= 0:
            return probed_seconds
        start = options.trim.start or 0.0
        end = options.trim.end if options.trim.end is not None else probed_seconds
        return max(min(end, probed_seconds) - start, 0.0)


# ── Codec arguments ───────────────────────────────────────────────────────────

def build_codec_args(target_format: str, options: VideoOptions) -> list[str]:
    args = list(VIDEO_CONTAINER_DEFAULTS[target_format])
    preset = VIDEO_PRESETS.get(options.preset, {})

    # GIF carries no bitrate or quality flags at all
    if target_format == "gif":
        return args + ["-an"]

    family = CONTAINER_CODEC_FAMILY[target_format]
    quality_flag = VIDEO_QUALITY_FLAG[target_format]

    compression = options.compression or preset.get("compression")
    if compression is Compression.CUSTOM:
        _drop_flag(args, quality_flag)
        _set_flag(args, "-b:v", f"{options.custom_bitrate_kbps}k")
    elif compression is not None:
        _set_flag(args, quality_flag, COMPRESSION_LEVELS[family][compression])

    if "audio_bitrate" in preset:
        _set_flag(args, "-b:a", preset["audio_bitrate"])
    args += preset.get("extra", [])
    return args


def _set_flag(args: list[str], flag: str, value: str) -> None:
    if flag in args:
        args[args.index(flag) + 1] = value
    else:
        args += [flag, value]


def _drop_flag(args: list[str], flag: str) -> None:
    if flag in args:
        i = args.index(flag)
        del args[i:i + 2]


# ── Filters ───────────────────────────────────────────────────────────────────

def build_filter_chain(target_format: str, options: VideoOptions) -> str:
    """Comma-joined -vf value, or "" when no filter is needed."""
    preset = VIDEO_PRESETS.get(options.preset, {})
    filters: list[str] = list(preset.get("filters", []))

    if "max_width" in preset:
        filters.append(f"scale='min({preset['max_width']},iw)':-2")
    if options.resize is not None:
        filters.append(_scale_filter(options.resize))

    gif_like = target_format == "gif" or options.preset is VideoPreset.GIF_OPTIMIZED
    if gif_like:
        filters.append(f"fps={preset.get('fps', GIF_FPS)}")
        if options.resize is None:
            filters.append(f"scale={preset.get('width', GIF_WIDTH)}:-1:flags=lanczos")

    chain = ",".join(filters)
    if target_format == "gif" and options.preset is VideoPreset.GIF_OPTIMIZED:
        chain = f"{chain},{_PALETTE_CHAIN}"
    return chain


def _scale_filter(resize: Resize) -> str:
    if isinstance(resize, ResizeDimensions):
        if resize.maintain_aspect_ratio:
            return (f"scale={resize.width}:{resize.height}"
                    f":force_original_aspect_ratio=decrease:force_divisible_by=2")
        return f"scale={resize.width}:{resize.height}"
    if isinstance(resize, ResizePercentage):
        # keep dimensions even, most encoders insist
        p = resize.percent
        return f"scale=trunc(iw*{p}/200)*2:trunc(ih*{p}/200)*2"
    if isinstance(resize, ResizeMaxDimension):
        n = resize.size
        if not resize.maintain_aspect_ratio:
            return f"scale={n}:{n}"
        return f"scale='if(gt(iw,ih),min({n},iw),-2)':'if(gt(iw,ih),-2,min({n},ih))'"
    raise TypeError(f"Unknown resize mode: {resize!r}")


def _seconds(value: float) -> str:
    return f"{value:.3f}".rstrip("0").rstrip(".")

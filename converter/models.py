"""
converter.models
~~~~~~~~~~~~~~~~
Pure dataclasses and enums: no Qt, no I/O.
These travel freely between the orchestrator, the workers and the CLI.
"""

from __future__ import annotations

import shlex
import uuid
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Union


# ── Categories ────────────────────────────────────────────────────────────────

_SUPPORTED_FORMATS: dict[str, tuple[str, ...]] = {
    "image":    ("jpg", "png", "heic", "tiff", "gif", "bmp", "webp", "pdf"),
    "video":    ("mp4", "mov", "avi", "mkv", "webm", "gif"),
    "audio":    ("mp3", "wav", "flac", "aac", "ogg", "m4a"),
    "document": ("pdf", "epub", "mobi", "docx", "txt", "html"),
    "archive":  ("zip", "7z", "tar", "tar.gz"),
}

# Input extensions we recognise, per category. Checked in this order, so an
# ambiguous extension (gif, pdf) lands in the first category that lists it.
_INPUT_EXTENSIONS: dict[str, frozenset[str]] = {
    "image": frozenset({
        "jpg", "jpeg", "png", "heic", "heif", "tiff", "tif", "gif", "bmp",
        "webp", "svg", "raw", "cr2", "nef", "arw",
    }),
    "video": frozenset({
        "mp4", "mov", "avi", "mkv", "webm", "m4v", "flv", "wmv", "hevc",
    }),
    "audio": frozenset({
        "mp3", "wav", "flac", "aac", "ogg", "m4a", "alac", "wma", "opus",
    }),
    "document": frozenset({
        "pdf", "epub", "mobi", "docx", "doc", "odt", "txt", "rtf", "html", "md",
    }),
    "archive": frozenset({
        "zip", "7z", "rar", "tar", "gz", "tgz", "bz2", "tar.gz",
    }),
}


class Category(Enum):
    IMAGE    = "image"
    VIDEO    = "video"
    AUDIO    = "audio"
    DOCUMENT = "document"
    ARCHIVE  = "archive"

    @property
    def supported_formats(self) -> tuple[str, ...]:
        """Target formats a job of this category may ask for."""
        return _SUPPORTED_FORMATS[self.value]

    def supports(self, target_format: str) -> bool:
        return target_format.lower() in self.supported_formats

    @classmethod
    def detect(cls, path: Path | str) -> Category | None:
        """Return the category for *path* based on its extension, or None."""
        ext = source_format(path)
        for category in cls:
            if ext in _INPUT_EXTENSIONS[category.value]:
                return category
        return None


def source_format(path: Path | str) -> str:
    """
    Lower-case format of *path* as derived from its name.

    ``.tar.gz`` and ``.tgz`` both read as ``"tar.gz"`` so they compare equal to
    the archive target format of the same name.
    """
    name = Path(path).name.lower()
    if name.endswith(".tar.gz") or name.endswith(".tgz"):
        return "tar.gz"
    return Path(name).suffix.lstrip(".")


def strip_format(path: Path | str) -> str:
    """Basename of *path* without its (possibly double) extension."""
    name = Path(path).name
    lowered = name.lower()
    if lowered.endswith(".tar.gz"):
        return name[: -len(".tar.gz")]
    return Path(name).stem


# ── Job status ────────────────────────────────────────────────────────────────

class JobStatus(Enum):
    PENDING   = auto()  # accepted, waiting for submit_all() / retry()
    RUNNING   = auto()  # a worker owns it
    COMPLETED = auto()  # output is set
    FAILED    = auto()  # error holds the reason; retryable


# ── Processing options ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ResizeDimensions:
    width: int
    height: int
    maintain_aspect_ratio: bool = True


@dataclass(frozen=True)
class ResizePercentage:
    percent: int               # 50 = half size
    maintain_aspect_ratio: bool = True


@dataclass(frozen=True)
class ResizeMaxDimension:
    size: int                  # largest side ends up at most this many pixels
    maintain_aspect_ratio: bool = True


Resize = Union[ResizeDimensions, ResizePercentage, ResizeMaxDimension]


@dataclass(frozen=True)
class CropRect:
    x: int
    y: int
    width: int
    height: int


class Rotation(Enum):
    DEG_90  = 90
    DEG_180 = 180
    DEG_270 = 270


class ImagePreset(Enum):
    WEB_OPTIMIZED = "web_optimized"
    HIGH_QUALITY  = "high_quality"
    SMALL_FILE    = "small_file"
    SOCIAL_SQUARE = "social_square"
    PRINT_CMYK    = "print_cmyk"


@dataclass(frozen=True)
class ImageOptions:
    resize: Resize | None = None
    quality: int | None = None
    crop: CropRect | None = None
    rotation: Rotation | None = None
    remove_background: bool = False
    preset: ImagePreset | None = None


@dataclass(frozen=True)
class TrimRange:
    """Seconds into the source. Either side may be left open."""
    start: float | None = None
    end: float | None = None

    def __post_init__(self):
        if self.start is not None and self.start < 0:
            raise ValueError("trim start must not be negative")
        if self.start is not None and self.end is not None and self.end <= self.start:
            raise ValueError("trim end must be after trim start")

    @property
    def length(self) -> float | None:
        if self.end is None:
            return None
        return self.end - (self.start or 0.0)


class Compression(Enum):
    LOW    = "low"
    MEDIUM = "medium"
    HIGH   = "high"
    CUSTOM = "custom"          # uses VideoOptions.custom_bitrate_kbps


class VideoPreset(Enum):
    WEB               = "web"
    HIGH_QUALITY      = "high_quality"
    SMALL_FILE        = "small_file"
    SOCIAL_SQUARE_PAD = "social_square_pad"
    GIF_OPTIMIZED     = "gif_optimized"


@dataclass(frozen=True)
class VideoOptions:
    resize: Resize | None = None
    trim: TrimRange | None = None
    compression: Compression | None = None
    custom_bitrate_kbps: int | None = None
    preset: VideoPreset | None = None

    def __post_init__(self):
        if self.compression is Compression.CUSTOM and not self.custom_bitrate_kbps:
            raise ValueError("custom compression needs custom_bitrate_kbps")


ProcessingOptions = Union[ImageOptions, VideoOptions]


# ── Commands ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Command:
    """
    One external tool invocation, as plain data.

    ``progress_format`` tells the runner how to read progress off stdout:
    ``"ffmpeg"`` for ``-progress pipe:1`` output (needs ``duration_seconds``),
    ``"yt-dlp"`` for ``[download] 42.0%`` lines, ``None`` to estimate.
    """
    tool: str                              # logical name, e.g. "ffmpeg"
    executable: str                        # resolved path handed to Popen
    args: tuple[str, ...]
    cwd: Path | None = None
    progress_format: str | None = None
    duration_seconds: float = 0.0

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.args]

    def as_string(self) -> str:
        """Shell-quoted version of the command for logging."""
        text = shlex.join(self.argv)
        if self.cwd is not None:
            text = f"(cd {shlex.quote(str(self.cwd))} && {text})"
        return text


@dataclass
class ConversionPlan:
    """Commands to run in order, where the result lands, and what to clean up."""
    commands: list[Command]
    output: Path
    staged: list[Path] = field(default_factory=list)


# ── Remote metadata ───────────────────────────────────────────────────────────

@dataclass
class RemoteVideoInfo:
    title: str
    duration_seconds: float
    uploader: str = "Unknown"
    thumbnail_url: str | None = None

    @property
    def duration_formatted(self) -> str:
        total = int(self.duration_seconds)
        return f"{total // 60}:{total % 60:02d}"


# ── Conversion job ────────────────────────────────────────────────────────────

def _new_job_id() -> str:
    return uuid.uuid4().hex


@dataclass
class ConversionJob:
    """
    One requested file- or URL-to-format conversion.

    ``source`` is a local path string or an http(s) URL. For remote jobs the
    worker replaces it with the downloaded file; ``origin_url`` keeps the URL so
    a retry can fetch again once the staged download has been deleted.
    """
    source: str
    category: Category
    target_format: str
    options: ProcessingOptions | None = None
    origin_url: str | None = None
    metadata: dict[str, object] = field(default_factory=dict)
    id: str = field(default_factory=_new_job_id)

    # Runtime state, owned by the orchestrator
    status: JobStatus = field(default=JobStatus.PENDING, compare=False)
    progress: float = field(default=0.0, compare=False)
    error: str = field(default="", compare=False)
    output: Path | None = field(default=None, compare=False)

    @property
    def is_remote(self) -> bool:
        return self.source.startswith(("http://", "https://"))

    @property
    def name(self) -> str:
        if self.is_remote:
            return str(self.metadata.get("title") or self.source)
        return Path(self.source).name

# converter/presets.py

from converter.models import Compression, ImagePreset, VideoPreset

# ── Images (ImageMagick) ──────────────────────────────────────────────────────

IMAGE_PRESET_ARGS: dict[ImagePreset, list[str]] = {
    ImagePreset.WEB_OPTIMIZED: [
        "-resize", "1920x1920>",        # max 1920px, keep aspect
        "-quality", "85",
        "-strip",                       # drop metadata
    ],
    ImagePreset.HIGH_QUALITY: [
        "-quality", "95",
        "-sharpen", "0x1",
    ],
    ImagePreset.SMALL_FILE: [
        "-resize", "800x800>",
        "-quality", "75",
        "-strip",
    ],
    ImagePreset.SOCIAL_SQUARE: [
        "-resize", "1080x1080^",        # fill, then centre-crop to square
        "-gravity", "center",
        "-crop", "1080x1080+0+0",
        "-quality", "90",
        "-strip",
    ],
    ImagePreset.PRINT_CMYK: [
        "-density", "300",
        "-quality", "100",
        "-colorspace", "CMYK",
    ],
}

IMAGE_DEFAULT_QUALITY: dict[str, int] = {
    "jpg":  90,
    "jpeg": 90,
    "png":  95,
    "webp": 85,
}

BACKGROUND_REMOVAL_ARGS = [
    "-fuzz", "10%",
    "-transparent", "white",
    "-background", "transparent",
]

# sips speaks its own format names and knows fewer of them
SIPS_FORMATS: dict[str, str] = {
    "jpg":  "jpeg",
    "png":  "png",
    "tiff": "tiff",
    "gif":  "gif",
    "bmp":  "bmp",
}

# ── Video (ffmpeg) ────────────────────────────────────────────────────────────

VIDEO_CONTAINER_DEFAULTS: dict[str, list[str]] = {
    "mp4":  ["-c:v", "libx264", "-preset", "medium", "-crf", "23", "-c:a", "aac", "-b:a", "128k"],
    "webm": ["-c:v", "libvpx-vp9", "-crf", "30", "-b:v", "0", "-c:a", "libopus"],
    "mov":  ["-c:v", "libx264", "-preset", "medium", "-c:a", "aac"],
    "avi":  ["-c:v", "mpeg4", "-q:v", "5", "-c:a", "mp3"],
    "mkv":  ["-c:v", "libx264", "-c:a", "aac"],
    "gif":  ["-c:v", "gif"],
}

# Which quality knob each container's default video codec uses
VIDEO_QUALITY_FLAG: dict[str, str] = {
    "mp4":  "-crf",
    "mov":  "-crf",
    "mkv":  "-crf",
    "webm": "-crf",
    "avi":  "-q:v",
}

# Higher compression → smaller file. Scales differ per codec.
COMPRESSION_LEVELS: dict[str, dict[Compression, str]] = {
    "x264":  {Compression.LOW: "18", Compression.MEDIUM: "23", Compression.HIGH: "28"},
    "vp9":   {Compression.LOW: "24", Compression.MEDIUM: "31", Compression.HIGH: "40"},
    "mpeg4": {Compression.LOW: "3",  Compression.MEDIUM: "5",  Compression.HIGH: "8"},
}

CONTAINER_CODEC_FAMILY: dict[str, str] = {
    "mp4":  "x264",
    "mov":  "x264",
    "mkv":  "x264",
    "webm": "vp9",
    "avi":  "mpeg4",
}

GIF_FPS = 10
GIF_WIDTH = 480

VIDEO_PRESETS: dict[VideoPreset, dict] = {
    VideoPreset.WEB: {
        "compression": Compression.MEDIUM,
        "max_width": 1280,
        "extra": ["-movflags", "+faststart"],
    },
    VideoPreset.HIGH_QUALITY: {
        "compression": Compression.LOW,
        "extra": ["-preset", "slow"],
    },
    VideoPreset.SMALL_FILE: {
        "compression": Compression.HIGH,
        "max_width": 854,
        "audio_bitrate": "96k",
    },
    VideoPreset.SOCIAL_SQUARE_PAD: {
        "filters": [
            "scale=1080:1080:force_original_aspect_ratio=decrease",
            "pad=1080:1080:(ow-iw)/2:(oh-ih)/2",
        ],
    },
    VideoPreset.GIF_OPTIMIZED: {
        "fps": 15,
        "width": 480,
        "extra": ["-an"],
    },
}

# ── Audio (ffmpeg) ────────────────────────────────────────────────────────────

AUDIO_CODEC_DEFAULTS: dict[str, list[str]] = {
    "mp3":  ["-c:a", "libmp3lame", "-b:a", "192k"],
    "wav":  ["-c:a", "pcm_s16le", "-ar", "44100"],
    "flac": ["-c:a", "flac", "-compression_level", "5"],
    "aac":  ["-c:a", "aac", "-b:a", "192k"],
    "m4a":  ["-c:a", "aac", "-b:a", "192k"],
    "ogg":  ["-c:a", "libvorbis", "-q:a", "5"],
}

# ── Documents (pandoc) ────────────────────────────────────────────────────────

PANDOC_FORMAT_ARGS: dict[str, list[str]] = {
    "pdf":  ["--pdf-engine=xelatex"],
    "txt":  ["-t", "plain"],
    "html": ["--standalone"],
}

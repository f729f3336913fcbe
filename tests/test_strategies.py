from pathlib import Path

import pytest

from converter.errors import ToolNotFound, UnsupportedFormat
from converter.models import (
    Category,
    Compression,
    CropRect,
    ImageOptions,
    ImagePreset,
    ResizeDimensions,
    ResizeMaxDimension,
    ResizePercentage,
    Rotation,
    TrimRange,
    VideoOptions,
    VideoPreset,
)
from converter.output import OutputPathResolver
from converter.runner import ProcessRunner
from converter.strategies import build_strategies
from converter.strategies.audio import AudioStrategy
from converter.strategies.base import CommandStrategy, FormatStrategy
from converter.strategies.document import DocumentStrategy
from converter.strategies.image import ImageStrategy, build_magick_args, build_sips_args
from converter.strategies.video import VideoStrategy


@pytest.fixture
def resolver(tmp_path):
    return OutputPathResolver(tmp_path / "out")


@pytest.fixture
def magick(monkeypatch):
    monkeypatch.setattr(ImageStrategy, "is_primary_tool_available", lambda self: True)


@pytest.fixture
def no_magick(monkeypatch):
    monkeypatch.setattr(ImageStrategy, "is_primary_tool_available", lambda self: False)


def test_registry_covers_every_category(resolver, tmp_path):
    strategies = build_strategies(resolver, tmp_path / "staging")
    assert set(strategies) == set(Category)
    for category, strategy in strategies.items():
        assert strategy.category == category
        assert strategy.supported_formats == category.supported_formats


def test_base_strategies_are_abstract(resolver):
    with pytest.raises(TypeError):
        FormatStrategy(resolver)
    with pytest.raises(TypeError):
        CommandStrategy(resolver)


@pytest.mark.parametrize("strategy_cls", [ImageStrategy, VideoStrategy, AudioStrategy, DocumentStrategy])
def test_single_command_plan_wraps_build_command(strategy_cls, resolver, magick):
    strategy = strategy_cls(resolver)
    source = Path("/in/a.x")
    target = strategy.supported_formats[0]

    plan = strategy.build_plan(source, target)

    assert plan.commands == [strategy.build_command(source, target)]
    assert plan.output == strategy.output_path(source, target)
    assert plan.staged == []


@pytest.mark.parametrize("strategy_cls, target", [
    (ImageStrategy, "mp3"),
    (VideoStrategy, "jpg"),
    (AudioStrategy, "mp4"),
    (DocumentStrategy, "zip"),
])
def test_target_outside_table_is_rejected(strategy_cls, target, resolver, magick):
    with pytest.raises(UnsupportedFormat):
        strategy_cls(resolver).build_command(Path("/in/a.x"), target)


# ── Image ─────────────────────────────────────────────────────────────────────

def test_heic_to_jpg_uses_default_quality(resolver, magick):
    plan = ImageStrategy(resolver).build_plan(Path("/in/photo.heic"), "jpg")

    command, = plan.commands
    assert command.tool == "magick"
    assert command.args == ("/in/photo.heic", "-quality", "90", str(plan.output))
    assert plan.output.name == "photo_converted.jpg"
    assert plan.staged == []


def test_formats_without_quality_default_get_no_flag():
    assert build_magick_args(None, "tiff") == []


def test_magick_operator_order():
    options = ImageOptions(
        resize=ResizeDimensions(800, 600),
        crop=CropRect(10, 20, 300, 200),
        rotation=Rotation.DEG_90,
        remove_background=True,
        quality=70,
    )
    assert build_magick_args(options, "png") == [
        "-resize", "800x600>",
        "-crop", "300x200+10+20", "+repage",
        "-rotate", "90",
        "-fuzz", "10%", "-transparent", "white", "-background", "transparent",
        "-quality", "70",
    ]


@pytest.mark.parametrize("resize, geometry", [
    (ResizeDimensions(640, 480, maintain_aspect_ratio=False), "640x480!"),
    (ResizePercentage(50), "50%"),
    (ResizeMaxDimension(1024), "1024x1024>"),
])
def test_magick_resize_geometry(resize, geometry):
    assert build_magick_args(ImageOptions(resize=resize), "jpg")[:2] == ["-resize", geometry]


def test_preset_supplies_its_own_quality():
    args = build_magick_args(ImageOptions(preset=ImagePreset.WEB_OPTIMIZED), "jpg")
    assert args == ["-resize", "1920x1920>", "-quality", "85", "-strip"]


def test_falls_back_to_sips(resolver, no_magick):
    options = ImageOptions(resize=ResizeMaxDimension(500), rotation=Rotation.DEG_180, quality=60)
    command = ImageStrategy(resolver).build_command(Path("/in/a.heic"), "jpg", options)

    assert command.tool == "sips"
    assert list(command.args) == [
        "-s", "format", "jpeg",
        "-Z", "500",
        "-r", "180",
        "-s", "formatOptions", "60",
        "/in/a.heic", "--out", str(resolver.resolve("/in/a.heic", "jpg")),
    ]


def test_sips_refuses_what_it_cannot_do(tmp_path):
    out = tmp_path / "a.jpg"
    with pytest.raises(UnsupportedFormat, match="webp"):
        build_sips_args(Path("a.png"), out, "webp", None)
    with pytest.raises(UnsupportedFormat, match="crop"):
        build_sips_args(Path("a.png"), out, "jpg", ImageOptions(crop=CropRect(0, 0, 1, 1)))
    with pytest.raises(UnsupportedFormat, match="percentage"):
        build_sips_args(Path("a.png"), out, "jpg", ImageOptions(resize=ResizePercentage(50)))


def test_sips_exact_resize(tmp_path):
    args = build_sips_args(
        Path("a.png"), tmp_path / "o.png", "png",
        ImageOptions(resize=ResizeDimensions(300, 200, maintain_aspect_ratio=False)),
    )
    assert args[3:6] == ["-z", "200", "300"]


# ── Video ─────────────────────────────────────────────────────────────────────

def test_mp4_defaults(resolver):
    command = VideoStrategy(resolver).build_command(Path("/in/a.mov"), "mp4")
    out = str(resolver.resolve("/in/a.mov", "mp4"))

    assert command.progress_format == "ffmpeg"
    assert command.args == (
        "-i", "/in/a.mov", "-nostats", "-progress", "pipe:1",
        "-c:v", "libx264", "-preset", "medium", "-crf", "23",
        "-c:a", "aac", "-b:a", "128k",
        "-y", out,
    )


def test_gif_optimized_has_filter_chain_and_no_bitrate(resolver):
    options = VideoOptions(preset=VideoPreset.GIF_OPTIMIZED)
    args = list(VideoStrategy(resolver).build_command(Path("/in/video.mp4"), "gif", options).args)

    chain = args[args.index("-vf") + 1]
    assert chain.startswith("fps=15,scale=480:-1:flags=lanczos")
    assert "palettegen" in chain
    for flag in ("-b:v", "-b:a", "-crf", "-q:v"):
        assert flag not in args


def test_plain_gif_target_gets_default_fps_and_width(resolver):
    args = list(VideoStrategy(resolver).build_command(Path("/in/video.mp4"), "gif").args)
    assert args[args.index("-vf") + 1] == "fps=10,scale=480:-1:flags=lanczos"
    assert "-an" in args


def test_trim_seeks_before_input_and_limits_length(resolver):
    options = VideoOptions(trim=TrimRange(5, 20.5))
    args = list(VideoStrategy(resolver).build_command(Path("/in/a.mp4"), "mkv", options).args)
    assert args[:6] == ["-ss", "5", "-i", "/in/a.mp4", "-t", "15.5"]


def test_compression_levels_per_codec(resolver):
    strategy = VideoStrategy(resolver)
    mp4 = list(strategy.build_command(Path("/in/a.mov"), "mp4", VideoOptions(compression=Compression.HIGH)).args)
    webm = list(strategy.build_command(Path("/in/a.mov"), "webm", VideoOptions(compression=Compression.LOW)).args)
    avi = list(strategy.build_command(Path("/in/a.mov"), "avi", VideoOptions(compression=Compression.MEDIUM)).args)

    assert mp4[mp4.index("-crf") + 1] == "28"
    assert webm[webm.index("-crf") + 1] == "24"
    assert avi[avi.index("-q:v") + 1] == "5"


def test_custom_bitrate_replaces_quality_flag(resolver):
    options = VideoOptions(compression=Compression.CUSTOM, custom_bitrate_kbps=2500)
    args = list(VideoStrategy(resolver).build_command(Path("/in/a.mov"), "mp4", options).args)
    assert "-crf" not in args
    assert args[args.index("-b:v") + 1] == "2500k"


def test_web_preset(resolver):
    args = list(VideoStrategy(resolver).build_command(
        Path("/in/a.mov"), "mp4", VideoOptions(preset=VideoPreset.WEB)).args)
    assert args[args.index("-vf") + 1] == "scale='min(1280,iw)':-2"
    assert "+faststart" in args


def test_effective_duration_accounts_for_trim(resolver):
    strategy = VideoStrategy(resolver)
    assert strategy.effective_duration(60.0, None) == 60.0
    assert strategy.effective_duration(60.0, VideoOptions(trim=TrimRange(10, 25))) == 15.0
    assert strategy.effective_duration(60.0, VideoOptions(trim=TrimRange(start=50))) == 10.0
    assert strategy.effective_duration(0.0, VideoOptions(trim=TrimRange(10, 25))) == 0.0


# ── Audio / Document ──────────────────────────────────────────────────────────

def test_audio_drops_video_and_uses_codec_defaults(resolver):
    command = AudioStrategy(resolver).build_command(Path("/in/a.flac"), "wav")
    args = list(command.args)
    assert "-vn" in args
    assert args[args.index("-c:a") + 1] == "pcm_s16le"
    assert args[args.index("-ar") + 1] == "44100"
    assert args[-1].endswith("a_converted.wav")


def test_audio_rejects_options(resolver):
    assert not AudioStrategy(resolver).accepts_options(VideoOptions())
    assert AudioStrategy(resolver).accepts_options(None)


@pytest.mark.parametrize("target, extra", [
    ("pdf", ["--pdf-engine=xelatex"]),
    ("txt", ["-t", "plain"]),
    ("html", ["--standalone"]),
    ("epub", []),
])
def test_pandoc_flags(resolver, target, extra):
    command = DocumentStrategy(resolver).build_command(Path("/in/notes.md"), target)
    out = str(resolver.resolve("/in/notes.md", target))
    assert command.tool == "pandoc"
    assert list(command.args) == ["/in/notes.md", "-o", out, *extra]


def test_missing_pandoc_is_reported_by_name(resolver, tmp_path, monkeypatch):
    monkeypatch.setattr(
        "converter.strategies.document.resolve_executable",
        lambda name: str(tmp_path / "nowhere" / name),
    )
    command = DocumentStrategy(resolver).build_command(Path("/in/notes.md"), "pdf")

    with pytest.raises(ToolNotFound, match="pandoc not found"):
        ProcessRunner(poll_interval=0.01).run(command)

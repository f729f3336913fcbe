"""
converter.remote
~~~~~~~~~~~~~~~~
Pulls a video off a supported site with yt-dlp so it can be converted like
any local file.

Downloads land in their own directory under the staging root; the caller
owns that directory once download() returns and must delete it when the job
is over.
"""

from __future__ import annotations

import json
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Callable
from urllib.parse import urlparse

from converter.config import ConverterConfig
from converter.errors import ConversionFailed, UnsupportedURL
from converter.models import Command, RemoteVideoInfo
from converter.paths import resolve_executable
from converter.runner import ProcessRunner, ProgressCallback

logger = logging.getLogger(__name__)

SUPPORTED_DOMAINS: tuple[str, ...] = (
    "youtube.com", "youtu.be", "m.youtube.com",
    "instagram.com", "instagr.am",
    "tiktok.com", "vm.tiktok.com",
    "twitter.com", "x.com", "t.co",
    "facebook.com", "fb.watch",
    "vimeo.com",
    "dailymotion.com",
    "twitch.tv",
)

VIDEO_EXTENSIONS = frozenset({"mp4", "webm", "mkv", "avi", "mov"})

OUTPUT_TEMPLATE = "%(title)s.%(ext)s"


def is_supported_url(url: str) -> bool:
    """True if *url* is http(s) and its host is, or is under, a supported domain."""
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https"):
        return False

    host = (parsed.hostname or "").lower()
    if not host:
        return False
    return any(host == domain or host.endswith("." + domain) for domain in SUPPORTED_DOMAINS)


class RemoteFetcher:

    tool = "yt-dlp"

    def __init__(
        self,
        config: ConverterConfig,
        runner_factory: Callable[[], ProcessRunner] | None = None,
    ):
        self._config = config
        self._runner_factory = runner_factory or (lambda: ProcessRunner.from_config(config))

    def is_supported_url(self, url: str) -> bool:
        return is_supported_url(url)

    # ── Metadata ──────────────────────────────────────────────────────────────

    def fetch_metadata(self, url: str, runner: ProcessRunner | None = None) -> RemoteVideoInfo:
        if not is_supported_url(url):
            raise UnsupportedURL(url)

        command = self._command(url, "--dump-json", "--no-playlist")
        output = (runner or self._runner_factory()).run(command)

        try:
            info = json.loads(output)
        except ValueError as exc:
            raise ConversionFailed("Failed to parse video info", tool=self.tool) from exc
        if not isinstance(info, dict):
            raise ConversionFailed("Failed to parse video info", tool=self.tool)

        return RemoteVideoInfo(
            title=str(info.get("title") or "Unknown"),
            duration_seconds=float(info.get("duration") or 0.0),
            uploader=str(info.get("uploader") or "Unknown"),
            thumbnail_url=info.get("thumbnail"),
        )

    # ── Download ──────────────────────────────────────────────────────────────

    def download(
        self,
        url: str,
        on_progress: ProgressCallback | None = None,
        runner: ProcessRunner | None = None,
    ) -> Path:
        """
        Download *url* into a fresh staging directory and return the video file.

        Pass the job's own *runner* so that cancelling the job also stops the
        download.
        """
        if not is_supported_url(url):
            raise UnsupportedURL(url)

        staging_root = self._config.staging_dir
        staging_root.mkdir(parents=True, exist_ok=True)
        download_dir = Path(tempfile.mkdtemp(prefix="download_", dir=staging_root))

        command = self._command(
            url,
            "-o", str(download_dir / OUTPUT_TEMPLATE),
            "--no-playlist",
            "--newline",
            "--format", f"best[height<={self._config.max_download_height}]",
            progress_format="yt-dlp",
        )

        try:
            (runner or self._runner_factory()).run(command, on_progress)
            video = find_video_file(download_dir)
            if video is None:
                raise ConversionFailed("No video file found after download", tool=self.tool)
        except BaseException:
            shutil.rmtree(download_dir, ignore_errors=True)
            raise

        logger.info(f"Downloaded '{url}' → '{video.name}'")
        return video

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _command(self, url: str, *args: str, progress_format: str | None = None) -> Command:
        return Command(
            self.tool,
            resolve_executable(self.tool),
            (url, *args),
            progress_format=progress_format,
        )


def find_video_file(directory: Path) -> Path | None:
    """First file in *directory*, by name, that looks like a video."""
    for path in sorted(directory.iterdir()):
        if path.is_file() and path.suffix.lower().lstrip(".") in VIDEO_EXTENSIONS:
            return path
    return None

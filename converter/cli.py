"""
converter.cli
~~~~~~~~~~~~~
Headless front end: queue files, folders and video URLs, convert them all,
print one line per job.

    local-file-converter photo.heic clips/ --to mp4 --jobs 2
    local-file-converter https://youtu.be/abc123 --to gif --preset gif_optimized
    local-file-converter --check-tools
    local-file-converter --show-config -j 4

Exit status is 1 if any input was rejected or any job failed.
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
from pathlib import Path

from PySide6.QtCore import QCoreApplication, QTimer

from converter.config import CONFIG_FILE, config_to_dict, load_config
from converter.errors import ConversionError
from converter.logging_setup import setup_logging
from converter.models import (
    Category,
    Compression,
    ConversionJob,
    ImageOptions,
    ImagePreset,
    JobStatus,
    ProcessingOptions,
    ResizeMaxDimension,
    ResizePercentage,
    Rotation,
    TrimRange,
    VideoOptions,
    VideoPreset,
)
from converter.orchestrator import JobOrchestrator
from converter.paths import KNOWN_TOOLS, find_executable, missing_tools
from converter.scanner import find_convertible_files, find_pending_files

logger = logging.getLogger(__name__)


# ── Arguments ─────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="local-file-converter",
        description="Convert media, documents and archives with the tools already on this machine.",
    )
    parser.add_argument("inputs", nargs="*", help="Files, folders or video URLs to convert.")
    parser.add_argument("--to", dest="target_format", help="Target format (default depends on the input).")
    parser.add_argument("-o", "--output-dir", type=Path, help="Where converted files are written.")
    parser.add_argument("-j", "--jobs", type=int, help="Conversions to run at once (0 = no limit).")
    parser.add_argument("--config", type=Path, default=None, help=f"Config file (default: {CONFIG_FILE}).")
    parser.add_argument("-r", "--recursive", action="store_true", help="Descend into sub-folders.")
    parser.add_argument("--skip-existing", action="store_true",
                        help="Skip folder inputs that already have a converted file in the output folder.")

    group = parser.add_argument_group("processing options")
    group.add_argument("--preset", help="Image or video preset name, e.g. web_optimized, gif_optimized.")
    group.add_argument("--quality", type=int, help="Image quality, 1-100.")
    group.add_argument("--rotate", type=int, choices=[r.value for r in Rotation], help="Rotate images.")
    group.add_argument("--max-dimension", type=int, help="Longest side in pixels.")
    group.add_argument("--scale", type=int, metavar="PERCENT", help="Resize by percentage.")
    group.add_argument("--remove-background", action="store_true", help="Make a plain background transparent.")
    group.add_argument("--trim", metavar="START:END", help="Keep only this window of a video, in seconds.")
    group.add_argument("--compression", choices=[c.value for c in Compression], help="Video compression level.")
    group.add_argument("--bitrate", type=int, metavar="KBPS", help="Video bitrate for --compression custom.")

    parser.add_argument("--check-tools", action="store_true", help="Report which external tools were found.")
    parser.add_argument("--show-config", action="store_true", help="Print the effective settings as JSON and exit.")
    parser.add_argument("--log-dir", type=Path, help="Also write a debug log file here.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug output on the console.")
    return parser


def parse_trim(value: str) -> TrimRange:
    """``"5:20"`` → TrimRange(5, 20); either side may be empty."""
    start_text, sep, end_text = value.partition(":")
    if not sep:
        raise ValueError(f"trim must look like START:END, got '{value}'")
    start = float(start_text) if start_text.strip() else None
    end = float(end_text) if end_text.strip() else None
    return TrimRange(start, end)


def build_options(args: argparse.Namespace, category: Category) -> ProcessingOptions | None:
    """Options for a job of *category* from the command line, or None if none apply."""
    resize = None
    if args.max_dimension:
        resize = ResizeMaxDimension(args.max_dimension)
    elif args.scale:
        resize = ResizePercentage(args.scale)

    if category == Category.IMAGE:
        if not (resize or args.preset or args.quality or args.rotate or args.remove_background):
            return None
        return ImageOptions(
            resize=resize,
            quality=args.quality,
            rotation=Rotation(args.rotate) if args.rotate else None,
            remove_background=args.remove_background,
            preset=ImagePreset(args.preset) if args.preset else None,
        )

    if category == Category.VIDEO:
        if not (resize or args.preset or args.trim or args.compression):
            return None
        return VideoOptions(
            resize=resize,
            trim=parse_trim(args.trim) if args.trim else None,
            compression=Compression(args.compression) if args.compression else None,
            custom_bitrate_kbps=args.bitrate,
            preset=VideoPreset(args.preset) if args.preset else None,
        )

    return None


# ── Input collection ──────────────────────────────────────────────────────────

def _expand_inputs(args: argparse.Namespace, orchestrator: JobOrchestrator) -> list[str]:
    expanded: list[str] = []
    for item in args.inputs:
        path = Path(item).expanduser()
        if path.is_dir():
            files = find_convertible_files(path, recursive=args.recursive)
            if args.skip_existing and args.target_format:
                files = find_pending_files(files, orchestrator.resolver.directory, args.target_format)
            logger.info(f"Found {len(files)} convertible file(s) in '{path}'")
            expanded.extend(str(f) for f in files)
        else:
            expanded.append(item)
    return expanded


def _add_inputs(args: argparse.Namespace, orchestrator: JobOrchestrator) -> int:
    """Create one job per input. Returns how many inputs were rejected."""
    rejected = 0
    for item in _expand_inputs(args, orchestrator):
        try:
            if item.startswith(("http://", "https://")):
                options = build_options(args, Category.VIDEO)
                orchestrator.add_url(item, args.target_format or "mp4", options, fetch_info=False)
            else:
                category = Category.detect(item)
                options = build_options(args, category) if category else None
                orchestrator.add_file(item, args.target_format, options)
        except (ConversionError, ValueError) as exc:
            rejected += 1
            print(f"✗ {item}: {exc}", file=sys.stderr)
    return rejected


# ── Reporting ─────────────────────────────────────────────────────────────────

def _print_result(_job_id: str, job: ConversionJob) -> None:
    if job.status == JobStatus.COMPLETED:
        print(f"✓ {job.name} → {job.output}")
    else:
        print(f"✗ {job.name}: {job.error}", file=sys.stderr)


def check_tools() -> int:
    for tool in KNOWN_TOOLS:
        print(f"  {tool:<8} {find_executable(tool) or 'missing'}")
    return 1 if missing_tools() else 0


# ── Entry point ───────────────────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose, log_dir=args.log_dir)

    if args.check_tools:
        return check_tools()

    config = load_config(args.config)
    if args.output_dir is not None:
        config.output_dir = args.output_dir.expanduser()
    if args.jobs is not None:
        if args.jobs < 0:
            parser.error("--jobs must be 0 or positive")
        config.max_parallel = args.jobs

    if args.show_config:
        print(json.dumps(config_to_dict(config), indent=2))
        return 0
    if not args.inputs:
        parser.error("nothing to convert")

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    orchestrator = JobOrchestrator(config)

    rejected = _add_inputs(args, orchestrator)
    if not orchestrator.get_jobs():
        return 1 if rejected else 0

    orchestrator.job_finished.connect(_print_result)
    orchestrator.all_finished.connect(app.quit)

    # Ctrl-C cancels every job; the loop then exits through all_finished.
    # The timer only hands control back to Python so the handler can run.
    def _on_interrupt(_signum, _frame):
        logger.info("Interrupted, cancelling all jobs")
        for job in orchestrator.get_jobs():
            orchestrator.cancel(job.id)

    previous_handler = signal.signal(signal.SIGINT, _on_interrupt)
    wake_timer = QTimer()
    wake_timer.timeout.connect(lambda: None)
    wake_timer.start(200)

    try:
        orchestrator.submit_all()
        if orchestrator.is_busy():
            app.exec()
    finally:
        wake_timer.stop()
        signal.signal(signal.SIGINT, previous_handler)
        orchestrator.shutdown()

    failed = [job for job in orchestrator.get_jobs() if job.status != JobStatus.COMPLETED]
    logger.info(f"{len(orchestrator.get_jobs()) - len(failed)} converted, {len(failed)} failed")
    return 1 if failed or rejected else 0


if __name__ == "__main__":
    sys.exit(main())

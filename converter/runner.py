"""
converter.runner
~~~~~~~~~~~~~~~~
Runs one external command and reports progress while it runs.

Progress comes from one of two places:

  measured   the command declares a progress_format we can parse off stdout
             (ffmpeg ``-progress pipe:1`` with a known duration, or yt-dlp
             ``[download] 42.0%`` lines)
  estimated  everything else: a fixed step per poll tick, capped below 100%

Either way the value only ever goes up, and a successful run always ends with
exactly 1.0. The poll loop waits on the process handle itself, so there is
nothing left ticking once the process has exited.
"""

from __future__ import annotations

import errno
import logging
import re
import subprocess
import threading
import time
from typing import Callable

from converter.errors import ConversionCancelled, ConversionFailed, ToolNotFound
from converter.models import Command

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]

# Measured progress stays below this until the process has actually exited
MEASURED_CAP = 0.99

# Seconds between terminate() and kill() when cancelling
KILL_GRACE_SECONDS = 5.0


class ProcessRunner:
    """
    Owns the lifetime of the subprocess it is currently running, nothing more.
    Give every job its own runner: cancel() affects only this instance.
    """

    def __init__(
        self,
        poll_interval: float = 0.1,
        estimate_step: float = 0.05,
        estimate_cap: float = 0.9,
    ):
        self.poll_interval = poll_interval
        self.estimate_step = estimate_step
        self.estimate_cap = estimate_cap
        self._process: subprocess.Popen | None = None
        self._lock = threading.Lock()
        self._cancelled = threading.Event()

    @classmethod
    def from_config(cls, config) -> ProcessRunner:
        return cls(
            poll_interval=config.poll_interval,
            estimate_step=config.estimate_step,
            estimate_cap=config.estimate_cap,
        )

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    # ── Run ───────────────────────────────────────────────────────────────────

    def run(self, command: Command, on_progress: ProgressCallback | None = None) -> str:
        """
        Execute *command* and return its stdout.

        Raises:
            ToolNotFound         – the executable does not exist
            ConversionFailed     – non-zero exit; carries stderr
            ConversionCancelled  – cancel() was called
            OSError              – any other spawn failure (e.g. missing cwd)
        """
        report = on_progress or _ignore_progress

        if self._cancelled.is_set():
            raise ConversionCancelled()

        if command.cwd is not None and not command.cwd.is_dir():
            raise FileNotFoundError(errno.ENOENT, "Working directory does not exist", str(command.cwd))

        logger.debug(f"Running: {command.as_string()}")
        try:
            process = subprocess.Popen(
                command.argv,
                cwd=command.cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as exc:
            raise ToolNotFound(command.tool) from exc

        with self._lock:
            self._process = process
        logger.debug(f"{command.tool} started, PID = {process.pid}")

        # ── Drain both pipes in background threads to prevent pipe deadlock ──
        # If we only waited on the process, a chatty tool would fill the
        # ~64 KB pipe buffer, block on write, and never exit.
        stdout_lines: list[str] = []
        stderr_lines: list[str] = []
        measured = _MeasuredProgress()
        parser = PROGRESS_PARSERS.get(command.progress_format)

        def _drain_stdout():
            for line in process.stdout:
                stdout_lines.append(line)
                if parser is not None:
                    value = parser(line.strip(), command.duration_seconds)
                    if value is not None:
                        measured.value = value

        def _drain_stderr():
            for line in process.stderr:
                stderr_lines.append(line)

        readers = [
            threading.Thread(target=_drain_stdout, daemon=True),
            threading.Thread(target=_drain_stderr, daemon=True),
        ]
        for reader in readers:
            reader.start()

        try:
            self._poll(process, measured, report)
        finally:
            if process.poll() is None:
                process.kill()
                process.wait()
            for reader in readers:
                reader.join()
            with self._lock:
                self._process = None

        logger.debug(f"{command.tool} exited with code {process.returncode}")

        if self._cancelled.is_set():
            raise ConversionCancelled()

        if process.returncode != 0:
            stderr_text = "".join(stderr_lines).strip()
            raise ConversionFailed(
                stderr_text or f"{command.tool} exited with code {process.returncode}",
                tool=command.tool,
            )

        report(1.0)
        return "".join(stdout_lines)

    # ── Cancel ────────────────────────────────────────────────────────────────

    def cancel(self) -> None:
        """
        Terminate the running process, if any, and make every later run()
        raise ConversionCancelled. Safe to call from any thread.
        """
        self._cancelled.set()
        with self._lock:
            process = self._process
        if process is not None and process.poll() is None:
            logger.debug(f"Terminating PID {process.pid}")
            process.terminate()

    # ── Internal ──────────────────────────────────────────────────────────────

    def _poll(
        self,
        process: subprocess.Popen,
        measured: _MeasuredProgress,
        report: ProgressCallback,
    ) -> None:
        estimated = 0.0
        reported = 0.0
        kill_deadline: float | None = None

        while True:
            try:
                process.wait(timeout=self.poll_interval)
                return
            except subprocess.TimeoutExpired:
                pass

            if self._cancelled.is_set():
                # terminate() was sent by cancel(); escalate if it is ignored
                now = time.monotonic()
                if kill_deadline is None:
                    kill_deadline = now + KILL_GRACE_SECONDS
                elif now >= kill_deadline:
                    process.kill()
                continue

            if measured.value is not None:
                value = min(measured.value, MEASURED_CAP)
            else:
                estimated += self.estimate_step
                value = min(estimated, self.estimate_cap)

            if value > reported:
                reported = value
                report(value)


class _MeasuredProgress:
    """Latest parsed value, written by the stdout reader, read by the poll loop."""

    def __init__(self):
        self.value: float | None = None


def _ignore_progress(_value: float) -> None:
    pass


# ── Progress line parsers ─────────────────────────────────────────────────────

def _parse_ffmpeg_progress(line: str, duration: float) -> float | None:
    """``out_time=00:01:02.500000`` → fraction of *duration*."""
    if not line.startswith("out_time="):
        return None
    if duration <= 0:
        return None

    seconds = _hhmmss_to_seconds(line.split("=", 1)[1])
    if seconds is None:
        return None
    return min(seconds / duration, 1.0)


def _hhmmss_to_seconds(time_str: str) -> float | None:
    try:
        h, m, s = time_str.split(":")
        return float(h) * 3600 + float(m) * 60 + float(s)
    except ValueError:
        # ffmpeg prints "N/A" before the first frame is out
        return None


_YTDLP_PERCENT = re.compile(r"^\[download\]\s+(\d+(?:\.\d+)?)%")


def _parse_ytdlp_progress(line: str, _duration: float) -> float | None:
    """``[download]  42.3% of 10.00MiB at ...`` → 0.423"""
    match = _YTDLP_PERCENT.match(line)
    if match is None:
        return None
    return min(float(match.group(1)) / 100.0, 1.0)


PROGRESS_PARSERS: dict[str | None, Callable[[str, float], float | None]] = {
    "ffmpeg": _parse_ffmpeg_progress,
    "yt-dlp": _parse_ytdlp_progress,
}

"""
converter.worker
~~~~~~~~~~~~~~~~
ConversionWorker: QThread that takes one ConversionJob from PENDING to a
terminal state. MetadataWorker: QThread that looks up a remote video's info.

The worker only ever sees a snapshot of the job. Everything it learns is
reported through signals carrying the job id; the orchestrator applies them
to the real job on its own thread.

Signals
-------
progress_changed(str, float)     job id, overall fraction 0.0 – 1.0
source_restaged(str, object)     job id, Path of the downloaded file
completed(str, object)           job id, Path of the output file
failed(str, str)                 job id, failure reason
conversion_done(str)             job id; emitted last, after cleanup
"""

from __future__ import annotations

import dataclasses
import logging
import shutil
from pathlib import Path

from PySide6.QtCore import QThread, Signal

from converter.errors import ConversionCancelled, ConversionFailed, FileNotFound
from converter.models import Command, ConversionJob, source_format
from converter.output import OutputPathResolver
from converter.probe import get_duration
from converter.remote import RemoteFetcher
from converter.runner import ProcessRunner, ProgressCallback
from converter.strategies.base import FormatStrategy

logger = logging.getLogger(__name__)

# Share of the progress bar a download takes when one precedes the conversion
DOWNLOAD_SHARE = 0.5


class ConversionWorker(QThread):

    progress_changed = Signal(str, float)
    source_restaged  = Signal(str, object)
    completed        = Signal(str, object)
    failed           = Signal(str, str)
    conversion_done  = Signal(str)

    def __init__(
        self,
        job: ConversionJob,
        strategy: FormatStrategy,
        fetcher: RemoteFetcher,
        resolver: OutputPathResolver,
        runner: ProcessRunner,
        parent=None,
    ):
        super().__init__(parent)
        self._job      = dataclasses.replace(job)
        self._strategy = strategy
        self._fetcher  = fetcher
        self._resolver = resolver
        self._runner   = runner
        self._staged: list[Path] = []
        self._reported = 0.0

    @property
    def job_id(self) -> str:
        return self._job.id

    # ── QThread entry point ───────────────────────────────────────────────────

    def run(self):
        job = self._job
        logger.info(f"Converting '{job.name}' → {job.target_format}")
        try:
            output = self._convert()
        except ConversionCancelled:
            logger.info(f"Cancelled '{job.name}'")
            self.failed.emit(job.id, "cancelled")
        except Exception as exc:
            logger.warning(f"Failed '{job.name}': {exc}")
            self.failed.emit(job.id, str(exc))
        else:
            logger.info(f"Done: '{job.name}' → '{output}'")
            self._report(1.0)
            self.completed.emit(job.id, output)
        finally:
            self._cleanup()
            self.conversion_done.emit(job.id)

    # ── Cancel ────────────────────────────────────────────────────────────────

    def cancel(self):
        """Stop the running tool; the job then fails with 'cancelled'."""
        logger.debug(f"cancel() called for '{self._job.name}'")
        self._runner.cancel()

    # ── Conversion sequence ───────────────────────────────────────────────────

    def _convert(self) -> Path:
        job = self._job
        start = 0.0

        if job.is_remote:
            source = self._download(job.source)
            start = DOWNLOAD_SHARE
        else:
            source = Path(job.source)
            if not source.is_file():
                raise FileNotFound(job.source)

        if self._runner.cancelled:
            raise ConversionCancelled()

        if source_format(source) == job.target_format.lower():
            return self._passthrough(source, staged=job.is_remote)

        plan = self._strategy.build_plan(source, job.target_format, job.options)
        self._staged.extend(plan.staged)

        # a leftover file from an earlier run would satisfy the check below
        plan.output.unlink(missing_ok=True)

        span = (1.0 - start) / len(plan.commands)
        for index, command in enumerate(plan.commands):
            command = self._with_duration(command, source)
            low = start + index * span
            self._runner.run(command, self._scaled(low, low + span))

        if not plan.output.exists():
            raise ConversionFailed("Output file not created")
        return plan.output

    def _download(self, url: str) -> Path:
        video = self._fetcher.download(
            url,
            on_progress=self._scaled(0.0, DOWNLOAD_SHARE),
            runner=self._runner,
        )
        self._staged.append(video.parent)
        self.source_restaged.emit(self._job.id, video)
        return video

    def _passthrough(self, source: Path, staged: bool) -> Path:
        """Source already has the target format: copy it (or move a download) into place."""
        output = self._resolver.resolve(source, self._job.target_format)
        if staged:
            logger.debug(f"Moving '{source}' → '{output}'")
            shutil.move(str(source), str(output))
        else:
            logger.debug(f"Copying '{source}' → '{output}'")
            shutil.copy2(source, output)
        return output

    def _with_duration(self, command: Command, source: Path) -> Command:
        if command.progress_format != "ffmpeg" or command.duration_seconds > 0:
            return command
        duration = self._strategy.effective_duration(get_duration(source), self._job.options)
        logger.debug(f"Duration of '{source.name}' = {duration:.2f}s")
        return dataclasses.replace(command, duration_seconds=duration)

    # ── Progress ──────────────────────────────────────────────────────────────

    def _scaled(self, low: float, high: float) -> ProgressCallback:
        def _on_progress(fraction: float) -> None:
            self._report(low + (high - low) * fraction)
        return _on_progress

    def _report(self, value: float) -> None:
        value = min(max(value, 0.0), 1.0)
        if value > self._reported:
            self._reported = value
            self.progress_changed.emit(self._job.id, value)

    # ── Cleanup ───────────────────────────────────────────────────────────────

    def _cleanup(self) -> None:
        for path in self._staged:
            logger.debug(f"Removing staged '{path}'")
            if path.is_dir():
                shutil.rmtree(path, ignore_errors=True)
            else:
                path.unlink(missing_ok=True)
        self._staged.clear()


class MetadataWorker(QThread):
    """
    Looks up title, duration and uploader of a remote video off the
    orchestrator's thread.

    Signals
    -------
    info_ready(str, object)    job id, RemoteVideoInfo
    lookup_failed(str, str)    job id, reason
    lookup_done(str)           job id; emitted last
    """

    info_ready    = Signal(str, object)
    lookup_failed = Signal(str, str)
    lookup_done   = Signal(str)

    def __init__(self, job_id: str, url: str, fetcher: RemoteFetcher, runner: ProcessRunner, parent=None):
        super().__init__(parent)
        self._job_id  = job_id
        self._url     = url
        self._fetcher = fetcher
        self._runner  = runner

    @property
    def job_id(self) -> str:
        return self._job_id

    def run(self):
        try:
            info = self._fetcher.fetch_metadata(self._url, runner=self._runner)
        except Exception as exc:
            self.lookup_failed.emit(self._job_id, str(exc))
        else:
            self.info_ready.emit(self._job_id, info)
        finally:
            self.lookup_done.emit(self._job_id)

    def cancel(self):
        self._runner.cancel()

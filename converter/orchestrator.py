"""
converter.orchestrator
~~~~~~~~~~~~~~~~~~~~~~
JobOrchestrator owns every ConversionJob and the workers that run them.

    PENDING ──submit_all()/retry()──▶ RUNNING ──▶ COMPLETED
                                         │
                                         └──────▶ FAILED ──submit_all()/retry()──▶ RUNNING

All job state is written here, on the orchestrator's thread. Workers report
through queued signals and a job only becomes COMPLETED or FAILED once its
worker has finished cleaning up.
"""

from __future__ import annotations

import logging
from collections import deque
from pathlib import Path
from typing import Callable

from PySide6.QtCore import QObject, QThread, Signal, Slot

from converter.config import ConverterConfig
from converter.errors import FileNotFound, FileTooLarge, UnsupportedFormat, UnsupportedURL
from converter.models import Category, ConversionJob, JobStatus, ProcessingOptions, RemoteVideoInfo
from converter.output import OutputPathResolver
from converter.remote import RemoteFetcher
from converter.runner import ProcessRunner
from converter.strategies import FormatStrategy, build_strategies
from converter.worker import ConversionWorker, MetadataWorker

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"


class JobOrchestrator(QObject):

    job_added          = Signal(str)
    job_removed        = Signal(str)
    job_status_changed = Signal(str, object)    # (job_id, JobStatus)
    job_progress       = Signal(str, float)
    job_finished       = Signal(str, object)    # (job_id, ConversionJob)
    job_metadata_ready = Signal(str, bool)      # (job_id, found)
    all_finished       = Signal()

    def __init__(
        self,
        config: ConverterConfig | None = None,
        strategies: dict[Category, FormatStrategy] | None = None,
        fetcher: RemoteFetcher | None = None,
        runner_factory: Callable[[], ProcessRunner] | None = None,
        parent=None,
    ):
        super().__init__(parent)
        self._config   = config or ConverterConfig()
        self._resolver = OutputPathResolver(self._config.output_dir)
        self._strategies = strategies or build_strategies(self._resolver, self._config.staging_dir)
        self._fetcher  = fetcher or RemoteFetcher(self._config)
        self._runner_factory = runner_factory or (lambda: ProcessRunner.from_config(self._config))

        self._jobs: dict[str, ConversionJob]        = {}
        self._queue: deque[str]                     = deque()
        self._workers: dict[str, ConversionWorker]  = {}
        self._outcomes: dict[str, tuple[JobStatus, object]] = {}
        self._lookups: dict[str, MetadataWorker]    = {}

    @property
    def config(self) -> ConverterConfig:
        return self._config

    @property
    def resolver(self) -> OutputPathResolver:
        return self._resolver

    # ── Job creation ──────────────────────────────────────────────────────────

    def add_file(
        self,
        path: Path | str,
        target_format: str | None = None,
        options: ProcessingOptions | None = None,
    ) -> ConversionJob:
        """
        Create a PENDING job for a local file.

        Raises FileNotFound, UnsupportedFormat or FileTooLarge; no job is
        created in that case.
        """
        path = Path(path).expanduser()
        if not path.is_file():
            raise FileNotFound(str(path))

        category = Category.detect(path)
        if category is None:
            raise UnsupportedFormat(f"'{path.name}' is not a recognised input")

        size = path.stat().st_size
        if size > self._config.max_input_bytes:
            raise FileTooLarge(size, self._config.max_input_bytes)

        fmt = self._check_format(category, target_format or category.supported_formats[0])
        self._check_options(category, options)

        job = ConversionJob(
            source=str(path.absolute()),
            category=category,
            target_format=fmt,
            options=options,
        )
        return self._add(job)

    def add_url(
        self,
        url: str,
        target_format: str = "mp4",
        options: ProcessingOptions | None = None,
        fetch_info: bool = True,
    ) -> ConversionJob:
        """
        Create a PENDING job for a video on a supported site.

        The URL is checked against the allowlist before anything touches the
        network. With *fetch_info* the title and duration are looked up in the
        background and kept in ``job.metadata``; ``job_metadata_ready`` fires
        when the lookup ends. A failed lookup is only logged.
        """
        url = url.strip()
        if not self._fetcher.is_supported_url(url):
            raise UnsupportedURL(url)

        fmt = self._check_format(Category.VIDEO, target_format)
        self._check_options(Category.VIDEO, options)

        job = ConversionJob(
            source=url,
            category=Category.VIDEO,
            target_format=fmt,
            options=options,
            origin_url=url,
        )

        self._add(job)
        if fetch_info:
            self._start_lookup(job)
        return job

    def set_target_format(self, job_id: str, target_format: str) -> None:
        job = self._require_idle(job_id)
        job.target_format = self._check_format(job.category, target_format)

    def set_options(self, job_id: str, options: ProcessingOptions | None) -> None:
        job = self._require_idle(job_id)
        self._check_options(job.category, options)
        job.options = options

    # ── Submission ────────────────────────────────────────────────────────────

    def submit_all(self) -> list[str]:
        """Queue every PENDING or FAILED job that is not already queued. Returns their ids."""
        submitted = []
        for job in self._jobs.values():
            if job.id in self._queue or job.id in self._workers:
                continue
            if job.status in (JobStatus.PENDING, JobStatus.FAILED):
                self._reset(job)
                self._queue.append(job.id)
                submitted.append(job.id)

        logger.info(f"Submitted {len(submitted)} job(s)")
        self._pump()
        return submitted

    def retry(self, job_id: str) -> bool:
        """Re-run a FAILED job on its own. Returns False if it is not FAILED."""
        job = self._jobs.get(job_id)
        if job is None or job.status != JobStatus.FAILED or job_id in self._workers:
            return False

        logger.info(f"Retrying '{job.name}'")
        self._reset(job)
        self._queue.append(job_id)
        self._pump()
        return True

    # ── Cancel / remove ───────────────────────────────────────────────────────

    def cancel(self, job_id: str) -> bool:
        """
        Cancel a waiting or running job. Either way it ends up FAILED with
        reason 'cancelled'; a running job gets there once its tool has been
        stopped and its staged files removed.
        """
        worker = self._workers.get(job_id)
        if worker is not None:
            logger.info(f"Cancelling running job {job_id}")
            worker.cancel()
            return True

        job = self._jobs.get(job_id)
        if job is None or job.status != JobStatus.PENDING:
            return False

        if job_id in self._queue:
            self._queue.remove(job_id)
        job.error = CANCELLED
        self._set_status(job, JobStatus.FAILED)
        self.job_finished.emit(job.id, job)
        self._check_idle()
        return True

    def remove(self, job_id: str) -> bool:
        job = self._jobs.pop(job_id, None)
        if job is None:
            return False

        worker = self._workers.get(job_id)
        if worker is not None:
            worker.cancel()
        lookup = self._lookups.get(job_id)
        if lookup is not None:
            lookup.cancel()
        if job_id in self._queue:
            self._queue.remove(job_id)

        logger.debug(f"Removed job '{job.name}'")
        self.job_removed.emit(job_id)
        self._check_idle()
        return True

    def clear(self) -> None:
        for job_id in list(self._jobs):
            self.remove(job_id)

    def shutdown(self) -> None:
        """
        Cancel everything and block until every thread this orchestrator
        started has exited. A worker that has already reported back may still
        be unwinding, so every QThread child is waited on, not just the ones
        still in the tables.
        """
        self._queue.clear()
        for worker in [*self._workers.values(), *self._lookups.values()]:
            worker.cancel()
        for thread in self.findChildren(QThread):
            thread.wait()

    # ── Queries ───────────────────────────────────────────────────────────────

    def get_job(self, job_id: str) -> ConversionJob | None:
        return self._jobs.get(job_id)

    def get_jobs(self) -> list[ConversionJob]:
        return list(self._jobs.values())

    def is_busy(self) -> bool:
        return bool(self._workers or self._queue)

    # ── Dispatch ──────────────────────────────────────────────────────────────

    def _pump(self) -> None:
        limit = self._config.max_parallel
        while self._queue and (limit == 0 or len(self._workers) < limit):
            job = self._jobs.get(self._queue.popleft())
            if job is None or job.status != JobStatus.PENDING:
                continue
            self._start_worker(job)
        self._check_idle()

    def _start_worker(self, job: ConversionJob) -> None:
        worker = ConversionWorker(
            job,
            self._strategies[job.category],
            self._fetcher,
            self._resolver,
            self._runner_factory(),
            parent=self,
        )
        worker.progress_changed.connect(self._on_worker_progress)
        worker.source_restaged.connect(self._on_worker_restaged)
        worker.completed.connect(self._on_worker_completed)
        worker.failed.connect(self._on_worker_failed)
        worker.conversion_done.connect(self._on_worker_done)
        worker.finished.connect(worker.deleteLater)

        self._workers[job.id] = worker
        self._set_status(job, JobStatus.RUNNING)
        worker.start()

    def _start_lookup(self, job: ConversionJob) -> None:
        lookup = MetadataWorker(job.id, job.origin_url, self._fetcher, self._runner_factory(), parent=self)
        lookup.info_ready.connect(self._on_info_ready)
        lookup.lookup_failed.connect(self._on_lookup_failed)
        lookup.lookup_done.connect(self._on_lookup_done)
        lookup.finished.connect(lookup.deleteLater)

        self._lookups[job.id] = lookup
        lookup.start()

    # ── Worker slots ──────────────────────────────────────────────────────────

    @Slot(str, float)
    def _on_worker_progress(self, job_id: str, value: float) -> None:
        job = self._jobs.get(job_id)
        if job is None or job.status != JobStatus.RUNNING or value <= job.progress:
            return
        job.progress = value
        self.job_progress.emit(job_id, value)

    @Slot(str, object)
    def _on_worker_restaged(self, job_id: str, path: Path) -> None:
        job = self._jobs.get(job_id)
        if job is not None:
            job.source = str(path)

    @Slot(str, object)
    def _on_worker_completed(self, job_id: str, output: Path) -> None:
        self._outcomes[job_id] = (JobStatus.COMPLETED, output)

    @Slot(str, str)
    def _on_worker_failed(self, job_id: str, reason: str) -> None:
        self._outcomes[job_id] = (JobStatus.FAILED, reason)

    @Slot(str)
    def _on_worker_done(self, job_id: str) -> None:
        worker = self._workers.pop(job_id, None)
        if worker is not None:
            # emitted from inside run(); the thread may still be unwinding
            worker.wait()
        status, value = self._outcomes.pop(job_id, (JobStatus.FAILED, "worker exited without a result"))

        job = self._jobs.get(job_id)
        if job is not None:
            if status == JobStatus.COMPLETED:
                job.output = value
                if job.progress < 1.0:
                    job.progress = 1.0
                    self.job_progress.emit(job_id, 1.0)
            else:
                job.error = value
            self._set_status(job, status)
            self.job_finished.emit(job_id, job)

        self._pump()

    @Slot(str, object)
    def _on_info_ready(self, job_id: str, info: RemoteVideoInfo) -> None:
        job = self._jobs.get(job_id)
        if job is None:
            return
        job.metadata.update(
            title=info.title,
            duration_seconds=info.duration_seconds,
            uploader=info.uploader,
            thumbnail_url=info.thumbnail_url,
        )
        logger.info(f"Found '{info.title}' by {info.uploader} ({info.duration_formatted})")

    @Slot(str, str)
    def _on_lookup_failed(self, job_id: str, reason: str) -> None:
        job = self._jobs.get(job_id)
        url = job.origin_url if job is not None else job_id
        logger.warning(f"Could not fetch video info for '{url}': {reason}")

    @Slot(str)
    def _on_lookup_done(self, job_id: str) -> None:
        lookup = self._lookups.pop(job_id, None)
        if lookup is not None:
            lookup.wait()
        if job_id in self._jobs:
            self.job_metadata_ready.emit(job_id, bool(self._jobs[job_id].metadata))

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _add(self, job: ConversionJob) -> ConversionJob:
        self._jobs[job.id] = job
        logger.info(f"Added {job.category.value} job '{job.name}' → {job.target_format}")
        self.job_added.emit(job.id)
        return job

    def _reset(self, job: ConversionJob) -> None:
        if job.origin_url:
            job.source = job.origin_url
        job.error = ""
        job.output = None
        job.progress = 0.0
        if job.status != JobStatus.PENDING:
            self._set_status(job, JobStatus.PENDING)

    def _set_status(self, job: ConversionJob, status: JobStatus) -> None:
        logger.debug(f"Status '{job.name}': {job.status.name} → {status.name}")
        job.status = status
        self.job_status_changed.emit(job.id, status)

    def _check_idle(self) -> None:
        if not self.is_busy():
            self.all_finished.emit()

    def _require_idle(self, job_id: str) -> ConversionJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise KeyError(f"No job with id '{job_id}'")
        if job.status == JobStatus.RUNNING or job_id in self._queue:
            raise ValueError(f"Job '{job.name}' is already submitted")
        return job

    def _check_format(self, category: Category, target_format: str) -> str:
        if not category.supports(target_format):
            raise UnsupportedFormat(
                f"{category.value} files cannot be converted to '{target_format}'"
            )
        return target_format.lower()

    def _check_options(self, category: Category, options: ProcessingOptions | None) -> None:
        if not self._strategies[category].accepts_options(options):
            raise ValueError(
                f"{type(options).__name__} does not apply to {category.value} files"
            )

import threading
from dataclasses import dataclass

from flipbook.config.settings import Settings
from flipbook.database.repositories.access_log_repository import AccessLogRepository
from flipbook.database.repositories.document_repository import DocumentRepository
from flipbook.database.repositories.job_repository import JobRepository
from flipbook.errors.exceptions import ProcessingTimeoutError
from flipbook.errors.handler import failure_message
from flipbook.logging.logger import Log


@dataclass(frozen=True)
class CleanupReport:
    pruned_jobs: int
    stale_jobs: int
    deleted_access_logs: int


class CleanupService:
    """Housekeeping for finished jobs, orphaned jobs and old access logs."""

    def __init__(
        self,
        job_repo: JobRepository,
        doc_repo: DocumentRepository,
        access_repo: AccessLogRepository,
        settings: Settings,
    ) -> None:
        self._job_repo = job_repo
        self._doc_repo = doc_repo
        self._access_repo = access_repo
        self._settings = settings

    def run_once(self) -> CleanupReport:
        pruned = self._job_repo.prune_finished(
            self._settings.max_completed_jobs, self._settings.max_failed_jobs
        )

        message = failure_message(
            ProcessingTimeoutError("Processing did not finish before the time limit")
        )
        stale = self._job_repo.fail_stale_jobs(self._settings.processing_timeout, message)
        for job in stale:
            self._doc_repo.mark_failed(job.document_id)
            Log.warning(f"Failed stale job {job.id} for document {job.document_id}")

        deleted = self._access_repo.delete_older_than(self._settings.access_log_retention_days)

        report = CleanupReport(
            pruned_jobs=pruned, stale_jobs=len(stale), deleted_access_logs=deleted
        )
        Log.info(
            f"Cleanup finished: {report.pruned_jobs} jobs pruned, "
            f"{report.stale_jobs} stale jobs failed, "
            f"{report.deleted_access_logs} access logs deleted"
        )
        return report


class CleanupScheduler:
    """Runs a CleanupService on a fixed interval in a daemon thread."""

    def __init__(self, service: CleanupService, interval_seconds: float) -> None:
        self._service = service
        self._interval = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._loop, name="cleanup", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _loop(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self._service.run_once()
            except Exception as exc:
                Log.warning(f"Cleanup run failed, will retry next interval: {exc}")

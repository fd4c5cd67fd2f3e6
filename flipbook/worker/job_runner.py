from flipbook.config.settings import Settings
from flipbook.database.models import JobRecord
from flipbook.database.repositories.document_repository import DocumentRepository
from flipbook.database.repositories.job_repository import JobRepository
from flipbook.errors.handler import classify_error, failure_message, is_retryable
from flipbook.logging.logger import Log
from flipbook.processor.deadline import Deadline
from flipbook.processor.exceptions import ProcessorError
from flipbook.processor.processor import Processor


class JobRunner:
    """Run one job, catch exceptions, and apply retry logic."""

    def __init__(
        self,
        processor: Processor,
        job_repo: JobRepository,
        doc_repo: DocumentRepository,
        settings: Settings,
    ) -> None:
        self._processor = processor
        self._job_repo = job_repo
        self._doc_repo = doc_repo
        self._settings = settings

    def run(self, job: JobRecord) -> None:
        """Execute a single job with error handling."""
        Log.info(
            f"Running job {job.id} for document {job.document_id} (attempt {job.attempts + 1})"
        )
        deadline = Deadline(self._settings.processing_timeout)
        try:
            self._processor.process(job, deadline)
            self._job_repo.mark_completed(job.id)
            Log.info(f"Job {job.id} completed successfully")
        except ProcessorError as exc:
            # Missing or already-finished documents: nothing to retry.
            Log.error(f"Job {job.id} cannot run: {exc}")
            self._job_repo.mark_failed(job.id, str(exc))
        except Exception as exc:
            self._handle_failure(job, exc)

    def _handle_failure(self, job: JobRecord, exc: Exception) -> None:
        """Re-queue transient failures with backoff; fail the job and document otherwise."""
        error = classify_error(exc, document_id=job.document_id)
        Log.error(f"Job {job.id} failed: {error!r}")

        if is_retryable(error) and job.attempts + 1 < self._settings.queue_max_retries:
            delay = self._settings.queue_retry_delay * 2**job.attempts
            self._job_repo.requeue(job.id, delay, error.message)
            Log.warning(
                f"Job {job.id} will be retried in {delay:.1f}s (attempt {job.attempts + 2})"
            )
            return

        self._job_repo.mark_failed(job.id, failure_message(error))
        self._doc_repo.mark_failed(job.document_id)
        Log.error(f"Job {job.id} permanently failed after {job.attempts + 1} attempts")

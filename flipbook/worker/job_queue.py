import threading
from dataclasses import dataclass

from flipbook.cache.page_cache import PageCache
from flipbook.database.models import DocumentStatus, JobStatus
from flipbook.database.repositories.document_repository import DocumentRepository
from flipbook.database.repositories.job_repository import JobRepository
from flipbook.logging.logger import Log
from flipbook.processor.exceptions import JobNotFoundError, ProcessorError
from flipbook.processor.models import ProcessingOptions
from flipbook.storage.base import BlobStore

CANCELLED_MESSAGE = "Cancelled before processing started"


@dataclass(frozen=True)
class JobStatusView:
    status: JobStatus
    progress: int
    error_message: str | None = None


@dataclass(frozen=True)
class QueueStats:
    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.waiting + self.active + self.completed + self.failed


class JobQueue:
    """Enqueues processing jobs, keeping at most one live job per document."""

    def __init__(
        self,
        doc_repo: DocumentRepository,
        job_repo: JobRepository,
        blob_store: BlobStore,
        cache: PageCache | None = None,
    ) -> None:
        self._doc_repo = doc_repo
        self._job_repo = job_repo
        self._blob_store = blob_store
        self._cache = cache
        self._lock = threading.Lock()

    def submit(
        self,
        document_id: int,
        pdf_bytes: bytes | None = None,
        options: ProcessingOptions | None = None,
    ) -> int:
        """Queue a document for processing and return the job id.

        While a queued or processing job exists for the document its id is
        returned and nothing else happens. A completed or failed document is
        moved back to pending, loses its previous pages, and gets a fresh
        job. Cached pages of the document are dropped whenever it is reset or
        its bytes are replaced.

        Raises:
            DocumentNotFoundError: if the document does not exist.
            StorageError: if ``pdf_bytes`` cannot be stored.
        """
        options = options or ProcessingOptions()
        with self._lock:
            live = self._job_repo.find_live_job(document_id)
            if live is not None:
                Log.info(f"Document {document_id} already has live job {live.id}")
                return live.id

            document = self._doc_repo.find_by_id(document_id)
            reset = False
            if document.processing_status in (DocumentStatus.COMPLETED, DocumentStatus.FAILED):
                reset = self._doc_repo.reset_for_reprocessing(document_id)
                if reset:
                    Log.info(f"Document {document_id} reset to pending for reprocessing")

            if pdf_bytes is not None:
                storage_key = document.storage_key or f"{document_id}.pdf"
                self._blob_store.put(storage_key, pdf_bytes)
                if document.storage_key is None:
                    self._doc_repo.update_storage_key(document_id, storage_key)

            if self._cache is not None and (reset or pdf_bytes is not None):
                self._cache.invalidate_document(document_id)

            job = self._job_repo.create_job(
                document_id, options.to_dict(), priority=options.priority
            )
            if job is None:
                # Another process won the race on the live-job index.
                live = self._job_repo.find_live_job(document_id)
                if live is None:
                    raise ProcessorError(f"Could not enqueue document {document_id}")
                return live.id

        Log.info(f"Queued job {job.id} for document {document_id} (priority {job.priority})")
        return job.id

    def cancel_job(self, job_id: int) -> bool:
        """Cancel a job that no worker has claimed yet.

        The job is failed and its document, still pending, is failed with it.
        Returns False when the job is already processing or finished.

        Raises:
            JobNotFoundError: if the job does not exist.
        """
        with self._lock:
            job = self._job_repo.cancel_job(job_id, CANCELLED_MESSAGE)
            if job is None:
                if self._job_repo.find_by_id(job_id) is None:
                    raise JobNotFoundError(f"Job {job_id} not found")
                Log.info(f"Job {job_id} is no longer queued and cannot be cancelled")
                return False
            self._doc_repo.mark_failed(job.document_id)

        Log.info(f"Cancelled job {job_id} for document {job.document_id}")
        return True

    def get_job_status(self, job_id: int) -> JobStatusView:
        job = self._job_repo.find_by_id(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return JobStatusView(
            status=job.status, progress=job.progress, error_message=job.error_message
        )

    def queue_stats(self) -> QueueStats:
        counts = self._job_repo.count_by_status()
        return QueueStats(
            waiting=counts.get(JobStatus.QUEUED, 0),
            active=counts.get(JobStatus.PROCESSING, 0),
            completed=counts.get(JobStatus.COMPLETED, 0),
            failed=counts.get(JobStatus.FAILED, 0),
        )

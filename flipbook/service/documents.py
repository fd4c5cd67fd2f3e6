from dataclasses import dataclass

from flipbook.cache.page_cache import PageCache
from flipbook.database.models import DocumentStatus
from flipbook.database.repositories.document_repository import DocumentRepository
from flipbook.database.repositories.job_repository import JobRepository
from flipbook.logging.logger import Log
from flipbook.processor.exceptions import AccessDeniedError


@dataclass(frozen=True)
class ProcessingStatusView:
    document_id: int
    status: DocumentStatus
    progress: int
    total_pages: int | None
    error_message: str | None = None


class DocumentService:
    """Owner-level document operations outside the processing pipeline."""

    def __init__(
        self,
        doc_repo: DocumentRepository,
        job_repo: JobRepository,
        cache: PageCache,
    ) -> None:
        self._doc_repo = doc_repo
        self._job_repo = job_repo
        self._cache = cache

    def delete_document(self, document_id: int, user_id: str) -> None:
        """Delete a document with its pages, text, jobs and access logs.

        Raises:
            DocumentNotFoundError: if the document does not exist.
            AccessDeniedError: if ``user_id`` does not own the document.
        """
        document = self._doc_repo.find_by_id(document_id)
        if document.owner_id != user_id:
            raise AccessDeniedError(f"User {user_id} may not delete document {document_id}")
        self._doc_repo.delete_document(document_id)
        dropped = self._cache.invalidate_document(document_id)
        Log.info(f"Deleted document {document_id} ({dropped} cached pages dropped)")

    def get_processing_status(self, document_id: int) -> ProcessingStatusView:
        document = self._doc_repo.find_by_id(document_id)
        job = self._job_repo.find_latest_for_document(document_id)
        if job is None:
            progress = 100 if document.processing_status is DocumentStatus.COMPLETED else 0
            return ProcessingStatusView(
                document_id=document_id,
                status=document.processing_status,
                progress=progress,
                total_pages=document.total_pages,
            )
        return ProcessingStatusView(
            document_id=document_id,
            status=document.processing_status,
            progress=job.progress,
            total_pages=document.total_pages,
            error_message=job.error_message,
        )

import uuid
from dataclasses import dataclass, field
from pathlib import PurePath

from flipbook.database.repositories.document_repository import DocumentRepository
from flipbook.logging.logger import Log
from flipbook.processor.models import ProcessingOptions
from flipbook.validation.validator import PdfValidator
from flipbook.worker.job_queue import JobQueue


@dataclass(frozen=True)
class UploadReceipt:
    document_id: int
    job_id: int
    warnings: list[str] = field(default_factory=list)


def storage_key_for(owner_id: str) -> str:
    return f"documents/{owner_id}/{uuid.uuid4()}.pdf"


class UploadService:
    """Accepts an uploaded PDF: validate, create a pending document, enqueue."""

    def __init__(
        self,
        validator: PdfValidator,
        doc_repo: DocumentRepository,
        job_queue: JobQueue,
    ) -> None:
        self._validator = validator
        self._doc_repo = doc_repo
        self._job_queue = job_queue

    def upload(
        self,
        data: bytes,
        filename: str,
        owner_id: str,
        title: str | None = None,
        mime_type: str | None = None,
        options: ProcessingOptions | None = None,
    ) -> UploadReceipt:
        """Raises the typed validation error or the storage error.

        No document is left behind when validation, storing or queueing fails.
        """
        validation = self._validator.validate(data, filename=filename, mime_type=mime_type)
        validation.raise_if_invalid()

        document = self._doc_repo.create_document(
            title=title or PurePath(filename).stem or filename,
            owner_id=owner_id,
            storage_key=storage_key_for(owner_id),
            file_size=len(data),
            mime_type=mime_type or "application/pdf",
            original_filename=filename,
        )
        try:
            job_id = self._job_queue.submit(document.id, pdf_bytes=data, options=options)
        except Exception as exc:
            Log.error(f"Could not queue uploaded document {document.id}: {exc}")
            self._discard(document.id)
            raise
        Log.info(
            f"Uploaded document {document.id} for owner {owner_id} "
            f"({len(data)} bytes, job {job_id})"
        )
        return UploadReceipt(document_id=document.id, job_id=job_id, warnings=validation.warnings)

    def _discard(self, document_id: int) -> None:
        try:
            self._doc_repo.delete_document(document_id)
        except Exception as exc:
            Log.warning(f"Could not remove unqueued document {document_id}: {exc}")

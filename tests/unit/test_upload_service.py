from unittest.mock import MagicMock

import pytest

from flipbook.errors.exceptions import InvalidPdfError, StorageError, TooLargeError
from flipbook.processor.models import ProcessingOptions
from flipbook.service.upload import UploadService, storage_key_for
from flipbook.validation.validator import PdfValidator
from flipbook.worker.job_queue import JobQueue
from tests.fakes import FakeDocumentRepository, FakeJobRepository, MemoryBlobStore


class FailingBlobStore(MemoryBlobStore):
    def put(self, key: str, data: bytes) -> None:
        raise StorageError(f"Bucket unavailable for {key}")


def _make_service(
    validator: PdfValidator | None = None,
    blob_store: MemoryBlobStore | None = None,
) -> tuple[UploadService, FakeDocumentRepository, FakeJobRepository, MemoryBlobStore]:
    doc_repo = FakeDocumentRepository()
    job_repo = FakeJobRepository()
    blob_store = blob_store or MemoryBlobStore()
    service = UploadService(
        validator or PdfValidator(min_file_size=0),
        doc_repo,
        JobQueue(doc_repo, job_repo, blob_store),
    )
    return service, doc_repo, job_repo, blob_store


class TestUpload:
    def test_creates_document_stores_bytes_and_queues_job(self, sample_pdf_bytes: bytes) -> None:
        service, doc_repo, job_repo, blob_store = _make_service()

        receipt = service.upload(sample_pdf_bytes, "Quarterly Report.pdf", owner_id="owner-7")

        document = doc_repo.documents[receipt.document_id]
        assert document.title == "Quarterly Report"
        assert document.owner_id == "owner-7"
        assert document.original_filename == "Quarterly Report.pdf"
        assert document.file_size == len(sample_pdf_bytes)
        assert document.storage_key is not None
        assert document.storage_key.startswith("documents/owner-7/")
        assert blob_store.blobs[document.storage_key] == sample_pdf_bytes
        assert job_repo.jobs[receipt.job_id].document_id == document.id

    def test_explicit_title_and_options(self, sample_pdf_bytes: bytes) -> None:
        service, doc_repo, job_repo, _blobs = _make_service()

        receipt = service.upload(
            sample_pdf_bytes,
            "scan.pdf",
            owner_id="owner-7",
            title="Signed contract",
            options=ProcessingOptions(quality="high"),
        )

        assert doc_repo.documents[receipt.document_id].title == "Signed contract"
        assert job_repo.jobs[receipt.job_id].options["quality"] == "high"

    def test_wrong_extension_creates_nothing(self, sample_pdf_bytes: bytes) -> None:
        service, doc_repo, job_repo, blob_store = _make_service()

        with pytest.raises(InvalidPdfError):
            service.upload(sample_pdf_bytes, "notes.txt", owner_id="owner-7")

        assert doc_repo.documents == {}
        assert job_repo.jobs == {}
        assert blob_store.blobs == {}

    def test_oversized_file_creates_nothing(self, sample_pdf_bytes: bytes) -> None:
        service, doc_repo, _jobs, _blobs = _make_service(
            PdfValidator(max_file_size=100, min_file_size=0)
        )

        with pytest.raises(TooLargeError):
            service.upload(sample_pdf_bytes, "big.pdf", owner_id="owner-7")
        assert doc_repo.documents == {}

    def test_returns_security_warnings(self) -> None:
        validator = MagicMock()
        validator.validate.return_value.warnings = ["PDF contains external links"]
        service, _docs, _jobs, _blobs = _make_service(validator)

        receipt = service.upload(b"%PDF-1.4", "linked.pdf", owner_id="owner-7")

        assert receipt.warnings == ["PDF contains external links"]

    def test_storage_failure_leaves_no_document(self, sample_pdf_bytes: bytes) -> None:
        service, doc_repo, job_repo, _blobs = _make_service(blob_store=FailingBlobStore())

        with pytest.raises(StorageError):
            service.upload(sample_pdf_bytes, "report.pdf", owner_id="owner-7")

        assert doc_repo.documents == {}
        assert job_repo.jobs == {}


def test_storage_keys_are_unique_per_upload() -> None:
    assert storage_key_for("o") != storage_key_for("o")

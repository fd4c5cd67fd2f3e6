from enum import Enum


class ErrorKind(str, Enum):
    """Typed failure categories shared by validation, rendering and processing."""

    INVALID_PDF = "INVALID_PDF"
    CORRUPTED_FILE = "CORRUPTED_FILE"
    PASSWORD_PROTECTED = "PASSWORD_PROTECTED"
    TOO_LARGE = "TOO_LARGE"
    PROCESSING_TIMEOUT = "PROCESSING_TIMEOUT"
    STORAGE_ERROR = "STORAGE_ERROR"
    TEXT_EXTRACTION_FAILED = "TEXT_EXTRACTION_FAILED"
    RENDERING_FAILED = "RENDERING_FAILED"
    CACHE_ERROR = "CACHE_ERROR"


TRANSIENT_KINDS = frozenset(
    {ErrorKind.STORAGE_ERROR, ErrorKind.CACHE_ERROR, ErrorKind.PROCESSING_TIMEOUT}
)


class PdfProcessingError(Exception):
    """Base exception for every typed PDF pipeline failure.

    Carries the error kind plus optional document id and page number so a
    failure can be correlated with the row it affected.
    """

    kind: ErrorKind = ErrorKind.PROCESSING_TIMEOUT

    def __init__(
        self,
        message: str,
        document_id: int | None = None,
        page_number: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.document_id = document_id
        self.page_number = page_number

    @property
    def is_transient(self) -> bool:
        return self.kind in TRANSIENT_KINDS

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value}, message={self.message!r}, "
            f"document_id={self.document_id}, page_number={self.page_number})"
        )


class InvalidPdfError(PdfProcessingError):
    kind = ErrorKind.INVALID_PDF


class CorruptedFileError(PdfProcessingError):
    kind = ErrorKind.CORRUPTED_FILE


class PasswordProtectedError(PdfProcessingError):
    kind = ErrorKind.PASSWORD_PROTECTED


class TooLargeError(PdfProcessingError):
    kind = ErrorKind.TOO_LARGE


class ProcessingTimeoutError(PdfProcessingError):
    kind = ErrorKind.PROCESSING_TIMEOUT


class StorageError(PdfProcessingError):
    kind = ErrorKind.STORAGE_ERROR


class TextExtractionFailedError(PdfProcessingError):
    kind = ErrorKind.TEXT_EXTRACTION_FAILED


class RenderingFailedError(PdfProcessingError):
    kind = ErrorKind.RENDERING_FAILED


class CacheError(PdfProcessingError):
    kind = ErrorKind.CACHE_ERROR


ERROR_TYPES: dict[ErrorKind, type[PdfProcessingError]] = {
    ErrorKind.INVALID_PDF: InvalidPdfError,
    ErrorKind.CORRUPTED_FILE: CorruptedFileError,
    ErrorKind.PASSWORD_PROTECTED: PasswordProtectedError,
    ErrorKind.TOO_LARGE: TooLargeError,
    ErrorKind.PROCESSING_TIMEOUT: ProcessingTimeoutError,
    ErrorKind.STORAGE_ERROR: StorageError,
    ErrorKind.TEXT_EXTRACTION_FAILED: TextExtractionFailedError,
    ErrorKind.RENDERING_FAILED: RenderingFailedError,
    ErrorKind.CACHE_ERROR: CacheError,
}


def error_for_kind(
    kind: ErrorKind,
    message: str,
    document_id: int | None = None,
    page_number: int | None = None,
) -> PdfProcessingError:
    """Instantiate the typed error class registered for ``kind``."""
    return ERROR_TYPES[kind](message, document_id=document_id, page_number=page_number)

from dataclasses import dataclass, field

from flipbook.errors.exceptions import (
    ErrorKind,
    PdfProcessingError,
    error_for_kind,
)

GENERIC_FAILURE_MESSAGE = "An unexpected error occurred while processing the PDF"


@dataclass(frozen=True)
class RetryStrategy:
    should_retry: bool
    delay_seconds: float
    max_attempts: int


@dataclass(frozen=True)
class UserFacingError:
    """Short title, message and actionable suggestions shown instead of a raw exception."""

    title: str
    message: str
    suggestions: list[str] = field(default_factory=list)
    can_retry: bool = False


# (substrings, kind, message) checked in order against the raw error text.
# Matching is case-sensitive on purpose: it mirrors the messages emitted by
# the converters this table was written against.
_LEGACY_MESSAGE_RULES: tuple[tuple[tuple[str, ...], ErrorKind, str], ...] = (
    (
        ("password",),
        ErrorKind.PASSWORD_PROTECTED,
        "This PDF is password protected. Please provide a version without password protection.",
    ),
    (
        ("corrupted", "invalid"),
        ErrorKind.CORRUPTED_FILE,
        "The PDF file appears to be corrupted or in an unsupported format.",
    ),
    (
        ("timeout",),
        ErrorKind.PROCESSING_TIMEOUT,
        "PDF processing timed out. This usually happens with very large or complex files.",
    ),
    (
        ("memory", "size"),
        ErrorKind.TOO_LARGE,
        "The PDF file is too large to process. Please try with a smaller file.",
    ),
    (
        ("network", "connection"),
        ErrorKind.STORAGE_ERROR,
        "Network error occurred during processing. Please try again.",
    ),
)


def classify_legacy_error(
    error: BaseException,
    document_id: int | None = None,
    page_number: int | None = None,
) -> PdfProcessingError:
    """Map an untyped error onto an error kind from its message text.

    Best-effort only: a message that mentions "timeout" for an unrelated
    reason is still classified as a processing timeout. Unrecognized
    messages default to PROCESSING_TIMEOUT, which keeps them retryable.
    """
    text = str(error)
    for needles, kind, message in _LEGACY_MESSAGE_RULES:
        if any(needle in text for needle in needles):
            return error_for_kind(kind, message, document_id, page_number)
    return error_for_kind(
        ErrorKind.PROCESSING_TIMEOUT, GENERIC_FAILURE_MESSAGE, document_id, page_number
    )


def classify_error(
    error: BaseException,
    document_id: int | None = None,
    page_number: int | None = None,
) -> PdfProcessingError:
    """Return a typed pipeline error for any exception.

    Already-typed errors pass through (document id filled in when missing),
    well-known builtin exception types map directly, and everything else
    falls back to the message heuristics.
    """
    if isinstance(error, PdfProcessingError):
        if error.document_id is None:
            error.document_id = document_id
        if error.page_number is None:
            error.page_number = page_number
        return error
    if isinstance(error, TimeoutError):
        return error_for_kind(
            ErrorKind.PROCESSING_TIMEOUT,
            f"PDF processing timed out: {error}",
            document_id,
            page_number,
        )
    if isinstance(error, MemoryError):
        return error_for_kind(
            ErrorKind.TOO_LARGE,
            "The PDF file is too large to process. Please try with a smaller file.",
            document_id,
            page_number,
        )
    if isinstance(error, (ConnectionError, OSError)):
        return error_for_kind(
            ErrorKind.STORAGE_ERROR, f"Storage error: {error}", document_id, page_number
        )
    return classify_legacy_error(error, document_id, page_number)


def is_retryable(error: PdfProcessingError) -> bool:
    return retry_strategy(error).should_retry


def retry_strategy(error: PdfProcessingError) -> RetryStrategy:
    """Retry policy per kind: transient kinds retry, input-caused kinds never do."""
    if error.kind in (
        ErrorKind.PROCESSING_TIMEOUT,
        ErrorKind.STORAGE_ERROR,
        ErrorKind.CACHE_ERROR,
    ):
        return RetryStrategy(should_retry=True, delay_seconds=2.0, max_attempts=3)
    return RetryStrategy(should_retry=False, delay_seconds=0.0, max_attempts=0)


def format_error_for_user(error: PdfProcessingError) -> UserFacingError:
    """Translate a typed error into a title, message and suggestions."""
    can_retry = retry_strategy(error).should_retry
    kind = error.kind

    if kind is ErrorKind.PASSWORD_PROTECTED:
        return UserFacingError(
            title="Password Protected PDF",
            message="This PDF is password protected and cannot be processed.",
            suggestions=[
                "Remove the password protection from the PDF",
                "Use a PDF editor to save a copy without password protection",
                "Contact the document owner for an unprotected version",
            ],
        )
    if kind is ErrorKind.TOO_LARGE:
        return UserFacingError(
            title="File Too Large",
            message=error.message or "The PDF file is too large to process.",
            suggestions=[
                "Compress the PDF using a PDF optimizer",
                "Split the document into smaller parts",
                "Reduce image quality in the PDF",
                "Remove unnecessary pages or content",
            ],
        )
    if kind is ErrorKind.CORRUPTED_FILE:
        return UserFacingError(
            title="Corrupted PDF File",
            message="The PDF file appears to be corrupted or damaged.",
            suggestions=[
                "Try opening the PDF in a PDF reader to verify it works",
                "Re-download or re-create the PDF file",
                "Use a PDF repair tool to fix corruption",
                "Contact the document creator for a new copy",
            ],
        )
    if kind is ErrorKind.PROCESSING_TIMEOUT:
        return UserFacingError(
            title="Processing Timeout",
            message="PDF processing took too long and was cancelled.",
            suggestions=[
                "Try again - this might be a temporary issue",
                "Reduce the PDF file size or complexity",
                "Process during off-peak hours for better performance",
            ],
            can_retry=can_retry,
        )
    if kind is ErrorKind.INVALID_PDF:
        return UserFacingError(
            title="Invalid PDF File",
            message="The uploaded file is not a valid PDF document.",
            suggestions=[
                "Make sure the file has a .pdf extension",
                "Verify the file is actually a PDF document",
                "Try converting the file to PDF format",
                "Upload a different PDF file",
            ],
        )
    return UserFacingError(
        title="Processing Error",
        message=error.message or GENERIC_FAILURE_MESSAGE,
        suggestions=[
            "Try uploading the file again",
            "Check your internet connection",
            "Contact support if the problem persists",
        ],
        can_retry=can_retry,
    )


def failure_message(error: PdfProcessingError) -> str:
    """Single-line message persisted on FAILED jobs."""
    formatted = format_error_for_user(error)
    if error.message and error.message != formatted.message:
        return f"{formatted.title}: {error.message}"
    return f"{formatted.title}: {formatted.message}"

import re
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any

from flipbook.errors.exceptions import (
    CorruptedFileError,
    InvalidPdfError,
    PdfProcessingError,
    TooLargeError,
)

DEFAULT_MAX_FILE_SIZE = 100 * 1024 * 1024
DEFAULT_MIN_FILE_SIZE = 1024
DEFAULT_MAX_PAGES = 1000

ALLOWED_MIME_TYPES = (
    "application/pdf",
    "application/x-pdf",
    "application/acrobat",
    "applications/vnd.pdf",
    "text/pdf",
    "text/x-pdf",
)

_VERSION_RE = re.compile(rb"%PDF-(\d+\.\d+)")
_PAGE_OBJECT_RE = re.compile(rb"/Type\s*/Page[^s]")
_PAGE_REF_RE = re.compile(rb"/Page\s")
_BYTES_PER_PAGE_ESTIMATE = 50 * 1024

_SECURITY_MARKERS: tuple[tuple[tuple[bytes, ...], str], ...] = (
    ((b"/Encrypt",), "PDF contains encryption - may require password for processing"),
    ((b"/JavaScript", b"/JS"), "PDF contains JavaScript - potential security risk"),
    ((b"/AcroForm", b"/XFA"), "PDF contains interactive forms"),
    ((b"/EmbeddedFile",), "PDF contains embedded files"),
    ((b"/URI", b"http://", b"https://"), "PDF contains external links"),
)


@dataclass
class ValidationResult:
    is_valid: bool
    error: PdfProcessingError | None = None
    warnings: list[str] = field(default_factory=list)
    file_size: int = 0
    estimated_pages: int | None = None
    mime_type: str | None = None

    def raise_if_invalid(self) -> None:
        """Raise the typed validation error, if any."""
        if not self.is_valid and self.error is not None:
            raise self.error

    @classmethod
    def failure(cls, error: PdfProcessingError, file_size: int) -> "ValidationResult":
        return cls(is_valid=False, error=error, file_size=file_size)


class PdfValidator:
    """Inspects raw bytes before processing and rejects unusable input early.

    Checks run in order and stop at the first failure: size bounds,
    declared MIME type and extension, ``%PDF-`` header and version,
    structural markers, and the page-count estimate. Security findings
    (encryption, JavaScript, embedded files, links) are reported as
    warnings and never block processing.
    """

    def __init__(
        self,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        min_file_size: int = DEFAULT_MIN_FILE_SIZE,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> None:
        self._max_file_size = max_file_size
        self._min_file_size = min_file_size
        self._max_pages = max_pages

    def validate(
        self,
        data: bytes,
        filename: str | None = None,
        mime_type: str | None = None,
    ) -> ValidationResult:
        file_size = len(data)

        for check in (
            lambda: self._check_size(file_size),
            lambda: self._check_mime_type(mime_type),
            lambda: self._check_extension(filename),
            lambda: self._check_header(data),
            lambda: self._check_structure(data),
        ):
            error = check()
            if error is not None:
                return ValidationResult.failure(error, file_size)

        estimated_pages = self.estimate_page_count(data)
        if estimated_pages > self._max_pages:
            return ValidationResult.failure(
                TooLargeError(
                    f"PDF has too many pages (estimated: {estimated_pages}, "
                    f"max: {self._max_pages})"
                ),
                file_size,
            )

        return ValidationResult(
            is_valid=True,
            warnings=self.security_warnings(data),
            file_size=file_size,
            estimated_pages=estimated_pages,
            mime_type=mime_type,
        )

    def validation_rules(self) -> dict[str, Any]:
        return {
            "max_file_size": self._max_file_size,
            "min_file_size": self._min_file_size,
            "max_pages": self._max_pages,
            "allowed_mime_types": list(ALLOWED_MIME_TYPES),
            "allowed_extensions": ["pdf"],
            "supported_versions": "1.0-2.0",
        }

    def _check_size(self, file_size: int) -> PdfProcessingError | None:
        if file_size < self._min_file_size:
            return InvalidPdfError(
                f"File too small: {file_size} bytes (minimum: {self._min_file_size} bytes)"
            )
        if file_size > self._max_file_size:
            return TooLargeError(
                f"File too large: {round(file_size / 1024 / 1024)}MB "
                f"(maximum: {round(self._max_file_size / 1024 / 1024)}MB)"
            )
        return None

    @staticmethod
    def _check_mime_type(mime_type: str | None) -> PdfProcessingError | None:
        if mime_type and mime_type.lower() not in ALLOWED_MIME_TYPES:
            return InvalidPdfError(f"Invalid MIME type: {mime_type}. Expected: application/pdf")
        return None

    @staticmethod
    def _check_extension(filename: str | None) -> PdfProcessingError | None:
        if not filename:
            return None
        extension = PurePath(filename).suffix.lower().lstrip(".")
        if extension != "pdf":
            return InvalidPdfError(f"Invalid file extension: .{extension}. Expected: .pdf")
        return None

    @staticmethod
    def _check_header(data: bytes) -> PdfProcessingError | None:
        header = data[:8]
        if not header.startswith(b"%PDF-"):
            return InvalidPdfError("Invalid PDF header. File may be corrupted or not a PDF.")

        match = _VERSION_RE.match(header)
        if match is None:
            return InvalidPdfError("Cannot determine PDF version from header.")

        version = float(match.group(1))
        if version < 1.0 or version > 2.0:
            return InvalidPdfError(
                f"Unsupported PDF version: {version}. Supported versions: 1.0-2.0"
            )
        return None

    @staticmethod
    def _check_structure(data: bytes) -> PdfProcessingError | None:
        if b"%%EOF" not in data:
            return CorruptedFileError("PDF file appears to be corrupted (missing EOF marker).")
        for marker in (b"obj", b"endobj"):
            if marker not in data:
                return CorruptedFileError(
                    f"PDF file appears to be corrupted (missing {marker.decode()} markers)."
                )
        if b"xref" not in data and b"/XRef" not in data:
            return CorruptedFileError(
                "PDF file appears to be corrupted (missing cross-reference table)."
            )
        return None

    def estimate_page_count(self, data: bytes) -> int:
        """Rough page count from page objects; not authoritative."""
        page_objects = len(_PAGE_OBJECT_RE.findall(data))
        if page_objects:
            return page_objects

        page_refs = len(_PAGE_REF_RE.findall(data))
        if page_refs:
            return max(1, page_refs // 2)

        return min(max(1, len(data) // _BYTES_PER_PAGE_ESTIMATE), self._max_pages)

    @staticmethod
    def security_warnings(data: bytes) -> list[str]:
        return [
            warning
            for markers, warning in _SECURITY_MARKERS
            if any(marker in data for marker in markers)
        ]

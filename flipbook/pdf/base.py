from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class PdfInfo:
    """Facts read from the parsed document rather than estimated from bytes."""

    page_count: int
    encrypted: bool = False
    metadata: dict[str, str] = field(default_factory=dict)


class BasePdfExtractor(ABC):
    """Contract for all PDF text extraction adapters."""

    @abstractmethod
    def extract(self, pdf_bytes: bytes) -> str:
        """Extract plain text from PDF bytes.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            Extracted text as a single normalized string.

        Raises:
            PasswordProtectedError: if the document cannot be opened without a password.
            PdfExtractionError: if extraction fails for any other reason.
        """

    @abstractmethod
    def inspect(self, pdf_bytes: bytes) -> PdfInfo:
        """Open the document and report its exact page count, encryption and metadata.

        Raises:
            PasswordProtectedError: if the document cannot be opened without a password.
            CorruptedFileError: if the engine cannot parse the document.
        """


def clean_metadata(raw: dict[str, object] | None) -> dict[str, str]:
    """Keep non-empty scalar metadata values as strings."""
    if not raw:
        return {}
    return {
        str(key): str(value)
        for key, value in raw.items()
        if isinstance(value, (str, int, float)) and str(value).strip()
    }

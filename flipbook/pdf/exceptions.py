from flipbook.errors.exceptions import TextExtractionFailedError


class PdfExtractionError(TextExtractionFailedError):
    """Raised when a PDF engine cannot read text out of a document."""

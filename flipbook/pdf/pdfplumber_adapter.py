import io

import pdfplumber

from flipbook.errors.exceptions import CorruptedFileError, PasswordProtectedError
from flipbook.pdf.base import BasePdfExtractor, PdfInfo, clean_metadata
from flipbook.pdf.exceptions import PdfExtractionError


def _is_password_error(exc: Exception) -> bool:
    # pdfminer raises PDFPasswordIncorrect, which pdfplumber may wrap.
    return "password" in repr(exc).lower()


class PdfPlumberAdapter(BasePdfExtractor):
    """Extracts text from PDF using pdfplumber."""

    def extract(self, pdf_bytes: bytes) -> str:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
            return "\n".join(pages).strip()
        except PdfExtractionError:
            raise
        except Exception as exc:
            if _is_password_error(exc):
                raise PasswordProtectedError(
                    "This PDF is password protected and cannot be read"
                ) from exc
            raise PdfExtractionError(f"pdfplumber extraction failed: {exc}") from exc

    def inspect(self, pdf_bytes: bytes) -> PdfInfo:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                return PdfInfo(
                    page_count=len(pdf.pages),
                    encrypted=getattr(pdf.doc, "encryption", None) is not None,
                    metadata=clean_metadata(pdf.metadata),
                )
        except Exception as exc:
            if _is_password_error(exc):
                raise PasswordProtectedError(
                    "This PDF is password protected and cannot be read"
                ) from exc
            raise CorruptedFileError(f"pdfplumber could not open the PDF: {exc}") from exc

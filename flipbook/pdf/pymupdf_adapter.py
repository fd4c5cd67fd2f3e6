import pymupdf

from flipbook.errors.exceptions import CorruptedFileError, PasswordProtectedError
from flipbook.pdf.base import BasePdfExtractor, PdfInfo, clean_metadata
from flipbook.pdf.exceptions import PdfExtractionError


class PyMuPdfAdapter(BasePdfExtractor):
    """Extracts text from PDF using PyMuPDF."""

    def extract(self, pdf_bytes: bytes) -> str:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                if doc.needs_pass:
                    raise PasswordProtectedError(
                        "This PDF is password protected and cannot be read"
                    )
                pages = [page.get_text() for page in doc]
            return "\n".join(pages).strip()
        except (PdfExtractionError, PasswordProtectedError):
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf extraction failed: {exc}") from exc

    def inspect(self, pdf_bytes: bytes) -> PdfInfo:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                if doc.needs_pass:
                    raise PasswordProtectedError(
                        "This PDF is password protected and cannot be read"
                    )
                return PdfInfo(
                    page_count=doc.page_count,
                    encrypted=bool(doc.is_encrypted),
                    metadata=clean_metadata(doc.metadata),
                )
        except PasswordProtectedError:
            raise
        except Exception as exc:
            raise CorruptedFileError(f"pymupdf could not open the PDF: {exc}") from exc

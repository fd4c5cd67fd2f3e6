import pymupdf
from PIL import Image

from flipbook.errors.exceptions import PasswordProtectedError
from flipbook.render.base import ConversionRequest, PageConverter
from flipbook.render.imaging import encode_image, fit_to_canvas


class PyMuPdfConverter(PageConverter):
    """Rasterizes pages with PyMuPDF."""

    name = "pymupdf"

    def convert(self, request: ConversionRequest) -> bytes:
        options = request.options
        request.check_deadline()

        with pymupdf.open(stream=request.pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
            if doc.needs_pass:
                raise PasswordProtectedError(
                    "This PDF is password protected and cannot be rendered",
                    document_id=request.document_id,
                    page_number=request.page_number,
                )
            page = doc[request.page_index(doc.page_count)]
            zoom = min(options.width / page.rect.width, options.height / page.rect.height)
            pixmap = page.get_pixmap(matrix=pymupdf.Matrix(zoom, zoom), alpha=False)
            image = Image.frombytes("RGB", (pixmap.width, pixmap.height), pixmap.samples)

        request.check_deadline()
        return encode_image(
            fit_to_canvas(image, options.width, options.height),
            options.format,
            options.quality,
        )

import pypdfium2 as pdfium

from flipbook.errors.exceptions import PasswordProtectedError
from flipbook.render.base import ConversionRequest, PageConverter
from flipbook.render.imaging import encode_image, fit_to_canvas


class PdfiumConverter(PageConverter):
    """Rasterizes pages with PDFium through pypdfium2."""

    name = "pdfium"

    def convert(self, request: ConversionRequest) -> bytes:
        options = request.options
        request.check_deadline()

        try:
            doc = pdfium.PdfDocument(request.pdf_bytes)
        except pdfium.PdfiumError as exc:
            if "password" in str(exc).lower():
                raise PasswordProtectedError(
                    "This PDF is password protected and cannot be rendered",
                    document_id=request.document_id,
                    page_number=request.page_number,
                ) from exc
            raise

        try:
            page = doc[request.page_index(len(doc))]
            page_width, page_height = page.get_size()
            scale = min(options.width / page_width, options.height / page_height)
            bitmap = page.render(scale=scale)
            image = bitmap.to_pil().copy()
            page.close()
        finally:
            doc.close()

        request.check_deadline()
        return encode_image(
            fit_to_canvas(image, options.width, options.height),
            options.format,
            options.quality,
        )

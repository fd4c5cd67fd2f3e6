import io

import pdfplumber
from PIL import Image, ImageDraw, ImageFont

from flipbook.errors.exceptions import PasswordProtectedError
from flipbook.render.base import ConversionRequest, PageConverter
from flipbook.render.imaging import encode_image
from flipbook.render.placeholder import no_text_image

_MIN_FONT_SIZE = 6


class PdfPlumberTextConverter(PageConverter):
    """Last-resort strategy: redraws the page's word layout from pdfplumber.

    Loses images and vector art but still yields a readable preview. Pages
    with no extractable text get an informative placeholder instead.
    """

    name = "pdfplumber"

    def convert(self, request: ConversionRequest) -> bytes:
        options = request.options
        request.check_deadline()

        try:
            with pdfplumber.open(io.BytesIO(request.pdf_bytes)) as pdf:
                page = pdf.pages[request.page_index(len(pdf.pages))]
                page_width, page_height = float(page.width), float(page.height)
                words = page.extract_words()
        except Exception as exc:
            if "password" in repr(exc).lower():
                raise PasswordProtectedError(
                    "This PDF is password protected and cannot be rendered",
                    document_id=request.document_id,
                    page_number=request.page_number,
                ) from exc
            raise

        if not words:
            return no_text_image(
                options, request.title, request.page_number, len(request.pdf_bytes)
            )

        scale = min(options.width / page_width, options.height / page_height)
        offset_x = (options.width - page_width * scale) / 2
        offset_y = (options.height - page_height * scale) / 2

        image = Image.new("RGB", (options.width, options.height), (255, 255, 255))
        draw = ImageDraw.Draw(image)
        fonts: dict[int, ImageFont.FreeTypeFont | ImageFont.ImageFont] = {}
        for word in words:
            size = max(_MIN_FONT_SIZE, round((word["bottom"] - word["top"]) * scale))
            if size not in fonts:
                fonts[size] = ImageFont.load_default(size=size)
            draw.text(
                (offset_x + word["x0"] * scale, offset_y + word["top"] * scale),
                word["text"],
                font=fonts[size],
                fill=(0, 0, 0),
            )

        request.check_deadline()
        return encode_image(image, options.format, options.quality)

from flipbook.config.settings import Settings
from flipbook.render.base import PageConverter
from flipbook.render.pdfium_converter import PdfiumConverter
from flipbook.render.pdfplumber_converter import PdfPlumberTextConverter
from flipbook.render.pymupdf_converter import PyMuPdfConverter


class ConverterFactory:
    """Builds the ordered converter fallback chain from settings."""

    ADAPTERS: dict[str, type[PageConverter]] = {
        "pymupdf": PyMuPdfConverter,
        "pdfium": PdfiumConverter,
        "pdfplumber": PdfPlumberTextConverter,
    }

    @classmethod
    def create(cls, name: str) -> PageConverter:
        engine = name.strip().lower()
        converter_cls = cls.ADAPTERS.get(engine)
        if converter_cls is None:
            raise ValueError(
                f"Unknown page converter '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return converter_cls()

    @classmethod
    def create_chain(cls, settings: Settings) -> list[PageConverter]:
        names = [name for name in settings.converter_chain.split(",") if name.strip()]
        if not names:
            raise ValueError("converter_chain must name at least one page converter")
        return [cls.create(name) for name in names]

from flipbook.config.settings import Settings
from flipbook.pdf.base import BasePdfExtractor
from flipbook.pdf.pdfplumber_adapter import PdfPlumberAdapter
from flipbook.pdf.pymupdf_adapter import PyMuPdfAdapter


class PdfExtractorFactory:
    """Picks the engine that counts pages and pulls text for the search index.

    Page images never go through these adapters; they come from the
    converter chain built by ``ConverterFactory``.
    """

    ADAPTERS: dict[str, type[BasePdfExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, engine: str) -> BasePdfExtractor:
        name = engine.strip().lower()
        adapter_cls = cls.ADAPTERS.get(name)
        if adapter_cls is None:
            raise ValueError(f"Unknown PDF engine '{name}'. Choose from: {list(cls.ADAPTERS)}")
        return adapter_cls()

    @classmethod
    def from_settings(cls, settings: Settings) -> BasePdfExtractor:
        return cls.create(settings.pdf_engine)

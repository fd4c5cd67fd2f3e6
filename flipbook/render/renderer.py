from flipbook.database.models import DocumentRecord
from flipbook.errors.exceptions import (
    PasswordProtectedError,
    PdfProcessingError,
    ProcessingTimeoutError,
    RenderingFailedError,
)
from flipbook.logging.logger import Log
from flipbook.processor.deadline import Deadline
from flipbook.render.base import ConversionRequest, PageConverter
from flipbook.render.models import THUMBNAIL_OPTIONS, RenderOptions
from flipbook.render.placeholder import error_image
from flipbook.storage.resolver import BlobResolver


class Renderer:
    """Renders single pages through an ordered chain of converters.

    Converters are tried in order and the first success wins; a failing
    strategy is logged and the next one is tried. Nothing is retried within
    a call.
    """

    def __init__(self, converters: list[PageConverter], resolver: BlobResolver) -> None:
        if not converters:
            raise ValueError("Renderer needs at least one page converter")
        self._converters = list(converters)
        self._resolver = resolver

    @property
    def converters(self) -> list[PageConverter]:
        return list(self._converters)

    def render_page(
        self,
        document: DocumentRecord,
        page_number: int,
        options: RenderOptions,
        deadline: Deadline | None = None,
    ) -> bytes:
        """Render a page for display; never raises.

        When every strategy fails (or the blob cannot be loaded, or the
        deadline passes) an error placeholder image is returned instead.
        """
        try:
            return self.render_page_strict(document, page_number, options, deadline=deadline)
        except PdfProcessingError as exc:
            Log.error(
                f"Rendering document {document.id} page {page_number} failed, "
                f"serving placeholder: {exc!r}"
            )
            return error_image(options)

    def render_page_strict(
        self,
        document: DocumentRecord,
        page_number: int,
        options: RenderOptions,
        pdf_bytes: bytes | None = None,
        deadline: Deadline | None = None,
    ) -> bytes:
        """Render a page or raise a typed error.

        Raises:
            ProcessingTimeoutError: as soon as the deadline expires.
            StorageError: if the PDF bytes cannot be resolved.
            PasswordProtectedError: if all strategies failed and one reported a password.
            RenderingFailedError: if all strategies failed otherwise.
        """
        deadline = deadline or Deadline.never()
        deadline.check(document.id, page_number)
        if pdf_bytes is None:
            pdf_bytes = self._resolver.resolve(document)

        request = ConversionRequest(
            pdf_bytes=pdf_bytes,
            page_number=page_number,
            options=options,
            document_id=document.id,
            title=document.title,
            deadline=deadline,
        )

        password_error: PasswordProtectedError | None = None
        for converter in self._converters:
            deadline.check(document.id, page_number)
            try:
                return converter.convert(request)
            except ProcessingTimeoutError:
                raise
            except PasswordProtectedError as exc:
                password_error = exc
                Log.warning(
                    f"Converter {converter.name} needs a password for document "
                    f"{document.id} page {page_number}"
                )
            except Exception as exc:
                Log.warning(
                    f"Converter {converter.name} failed for document {document.id} "
                    f"page {page_number}: {exc}"
                )

        if password_error is not None:
            raise PasswordProtectedError(
                password_error.message, document_id=document.id, page_number=page_number
            ) from password_error
        raise RenderingFailedError(
            f"All {len(self._converters)} conversion strategies failed for page {page_number}",
            document_id=document.id,
            page_number=page_number,
        )

    def render_thumbnail(
        self,
        document: DocumentRecord,
        page_number: int,
        pdf_bytes: bytes | None = None,
        deadline: Deadline | None = None,
    ) -> bytes:
        """200x280 JPEG preview of a page; raises like ``render_page_strict``."""
        return self.render_page_strict(
            document, page_number, THUMBNAIL_OPTIONS, pdf_bytes=pdf_bytes, deadline=deadline
        )

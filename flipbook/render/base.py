from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from flipbook.errors.exceptions import RenderingFailedError
from flipbook.processor.deadline import Deadline
from flipbook.render.models import RenderOptions


@dataclass
class ConversionRequest:
    """Everything a converter needs to rasterize one page."""

    pdf_bytes: bytes
    page_number: int
    options: RenderOptions
    document_id: int | None = None
    title: str = ""
    deadline: Deadline = field(default_factory=Deadline.never)

    def check_deadline(self) -> None:
        self.deadline.check(self.document_id, self.page_number)

    def page_index(self, page_count: int) -> int:
        """Zero-based index of the requested page.

        Raises:
            RenderingFailedError: if the page does not exist in the document.
        """
        if not 1 <= self.page_number <= page_count:
            raise RenderingFailedError(
                f"Page {self.page_number} is out of range (document has {page_count} pages)",
                document_id=self.document_id,
                page_number=self.page_number,
            )
        return self.page_number - 1


class PageConverter(ABC):
    """One page rasterization strategy in the renderer's fallback chain."""

    name: str = "converter"

    @abstractmethod
    def convert(self, request: ConversionRequest) -> bytes:
        """Render the requested page to encoded image bytes.

        The output is exactly ``options.width`` x ``options.height`` pixels in
        ``options.format``.

        Raises:
            PasswordProtectedError: if the document needs a password.
            ProcessingTimeoutError: if the request deadline expired.
            Exception: any other failure; the renderer moves to the next strategy.
        """

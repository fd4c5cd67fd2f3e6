import io

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from tests.fakes import (
    FILLER_LINE,
    SEARCH_TOKEN,
    FakeDocumentRepository,
    FakeJobRepository,
    FakeTextSearchRepository,
    MemoryBlobStore,
)


def _pdf(pages: list[list[str]]) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter, pageCompression=0)
    for lines in pages:
        y = 720
        for line in lines:
            c.drawString(72, y, line)
            y -= 18
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    return _pdf([["Hello PDF World"]])


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    return _pdf([["Page one content"], ["Page two content"]])


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    return _pdf([[]])


@pytest.fixture()
def three_page_pdf_bytes() -> bytes:
    return _pdf([[f"Chapter {n} {FILLER_LINE}"] for n in ("one", "two", "six")])


@pytest.fixture()
def five_page_pdf_bytes() -> bytes:
    """Five pages with equal-length text; only page 4 contains the search token."""
    token_line = FILLER_LINE.replace("ipsum", SEARCH_TOKEN)
    assert len(token_line) == len(FILLER_LINE)
    return _pdf([[token_line] if n == 4 else [FILLER_LINE] for n in range(1, 6)])


@pytest.fixture()
def large_text_pdf_bytes() -> bytes:
    """Single page with enough text to clear the minimum file size."""
    return _pdf([[f"{n:02d} {FILLER_LINE}" for n in range(40)]])


@pytest.fixture()
def blob_store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture()
def doc_repo() -> FakeDocumentRepository:
    return FakeDocumentRepository()


@pytest.fixture()
def job_repo() -> FakeJobRepository:
    return FakeJobRepository()


@pytest.fixture()
def text_repo() -> FakeTextSearchRepository:
    return FakeTextSearchRepository()

import math
import re
from dataclasses import dataclass, field
from typing import Any

from flipbook.database.models import TextSearchRecord
from flipbook.database.repositories.text_search_repository import TextSearchRepository
from flipbook.logging.logger import Log
from flipbook.pdf.base import BasePdfExtractor

CONTEXT_LENGTH = 200

_WORD_RE = re.compile(r"\S+")


@dataclass
class PageText:
    page_number: int
    text: str
    words: list[dict[str, Any]] = field(default_factory=list)

    @property
    def searchable_text(self) -> str:
        return self.text


@dataclass(frozen=True)
class SearchOptions:
    case_sensitive: bool = False
    limit: int = 10
    offset: int = 0


@dataclass(frozen=True)
class TextMatch:
    text: str
    context: str


@dataclass
class SearchResult:
    page_number: int
    matches: list[TextMatch]
    total_matches: int


def split_proportionally(text: str, page_count: int) -> list[str]:
    """Split ``text`` into ``page_count`` chunks of equal character length.

    This is an approximation: it assumes text is spread evenly over pages,
    so a match may be attributed to a neighbouring page for uneven documents.
    """
    if page_count <= 0:
        return []
    chunk = math.ceil(len(text) / page_count) if text else 0
    if chunk == 0:
        return [""] * page_count
    return [text[i * chunk : (i + 1) * chunk] for i in range(page_count)]


def word_positions(text: str) -> list[dict[str, Any]]:
    """Words of a page with their character offsets in the page text."""
    return [{"word": m.group(), "offset": m.start()} for m in _WORD_RE.finditer(text)]


def context_snippet(text: str, start: int, length: int, size: int = CONTEXT_LENGTH) -> str:
    """At most ``size`` characters of ``text`` centred on ``text[start:start+length]``."""
    if len(text) <= size:
        return text
    left = max(0, start + length // 2 - size // 2)
    left = min(left, len(text) - size)
    return text[left : left + size]


class TextIndexer:
    """Extracts page text for search and answers substring queries."""

    def __init__(
        self,
        extractor: BasePdfExtractor,
        text_repo: TextSearchRepository,
        max_text_length: int = 1024 * 1024,
    ) -> None:
        self._extractor = extractor
        self._text_repo = text_repo
        self._max_text_length = max_text_length

    def extract_text(self, pdf_bytes: bytes, page_count: int | None = None) -> list[PageText]:
        """Extract the document's text and assign it to pages.

        Raises:
            PasswordProtectedError, PdfExtractionError: from the extractor.
        """
        if page_count is None:
            page_count = self._extractor.inspect(pdf_bytes).page_count

        text = self._extractor.extract(pdf_bytes)
        if len(text) > self._max_text_length:
            Log.warning(
                f"Extracted text truncated from {len(text)} to {self._max_text_length} characters"
            )
            text = text[: self._max_text_length]

        return [
            PageText(page_number=number, text=chunk, words=word_positions(chunk))
            for number, chunk in enumerate(split_proportionally(text, page_count), start=1)
        ]

    def index_document(self, document_id: int, pdf_bytes: bytes, page_count: int) -> list[PageText]:
        """Extract and store searchable text; pages without text get no entry."""
        pages = self.extract_text(pdf_bytes, page_count)
        entries = [
            TextSearchRecord(
                document_id=document_id,
                page_number=page.page_number,
                searchable_text=page.searchable_text,
                word_positions=page.words,
            )
            for page in pages
            if page.text.strip()
        ]
        self._text_repo.replace_document_text(document_id, entries)
        Log.info(f"Indexed text of document {document_id}: {len(entries)}/{page_count} pages")
        return pages

    def search(
        self,
        document_id: int,
        query: str,
        options: SearchOptions | None = None,
    ) -> list[SearchResult]:
        options = options or SearchOptions()
        if not query or not query.strip():
            return []

        entries = self._text_repo.search(
            document_id,
            query,
            case_sensitive=options.case_sensitive,
            limit=options.limit,
            offset=options.offset,
        )

        return [self._match_entry(entry, query, options.case_sensitive) for entry in entries]

    @staticmethod
    def _match_entry(entry: TextSearchRecord, query: str, case_sensitive: bool) -> SearchResult:
        """Locate the query in a page the repository already matched.

        Offsets come from the original text so the snippet lines up even
        when case folding changes string length.
        """
        text = entry.searchable_text
        pattern = re.compile(re.escape(query), 0 if case_sensitive else re.IGNORECASE)
        found = list(pattern.finditer(text))
        if not found:
            # Matched under the database's case folding only.
            context = context_snippet(text, 0, 0)
            return SearchResult(
                page_number=entry.page_number,
                matches=[TextMatch(text=query, context=context)],
                total_matches=1,
            )
        first = found[0]
        match = TextMatch(
            text=first.group(),
            context=context_snippet(text, first.start(), len(first.group())),
        )
        return SearchResult(
            page_number=entry.page_number, matches=[match], total_matches=len(found)
        )

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from flipbook.analytics.access_logger import AccessLogger
from flipbook.cache.page_cache import PageCache, PageCacheKey
from flipbook.database.models import AccessAction, DocumentRecord
from flipbook.database.repositories.document_repository import DocumentRepository
from flipbook.errors.exceptions import PdfProcessingError
from flipbook.logging.logger import Log
from flipbook.processor.deadline import Deadline
from flipbook.processor.exceptions import AccessDeniedError, PageOutOfRangeError
from flipbook.render.models import RenderOptions
from flipbook.render.placeholder import error_image
from flipbook.render.renderer import Renderer
from flipbook.render.watermark import apply_watermark
from flipbook.text.indexer import SearchOptions, SearchResult, TextIndexer

# (document, user_id) -> may this user read the document?
AccessPolicy = Callable[[DocumentRecord, str | None], bool]

EVENT_ACTIONS = (AccessAction.NAVIGATE, AccessAction.DOWNLOAD, AccessAction.SHARE)


def owner_only(document: DocumentRecord, user_id: str | None) -> bool:
    return user_id is not None and user_id == document.owner_id


class ViewerService:
    """Serves single pages and search results to viewers.

    Page requests go: access check -> page range check -> cache -> render in
    the render pool (bounded wait) -> cache -> watermark -> access log.
    """

    def __init__(
        self,
        doc_repo: DocumentRepository,
        renderer: Renderer,
        cache: PageCache,
        access_logger: AccessLogger,
        indexer: TextIndexer,
        render_timeout: float = 30.0,
        render_pool_size: int = 4,
        access_policy: AccessPolicy | None = None,
    ) -> None:
        self._doc_repo = doc_repo
        self._renderer = renderer
        self._cache = cache
        self._access_logger = access_logger
        self._indexer = indexer
        self._render_timeout = render_timeout
        self._access_policy = access_policy or owner_only
        self._pool = ThreadPoolExecutor(max_workers=render_pool_size, thread_name_prefix="render")

    def get_page(
        self,
        document_id: int,
        page_number: int,
        options: RenderOptions,
        user_id: str | None = None,
        session_id: str | None = None,
    ) -> bytes:
        """Return the encoded image for one page.

        Raises:
            DocumentNotFoundError: if the document does not exist.
            AccessDeniedError: if the user may not view the document.
            PageOutOfRangeError: if the page is outside the document.
        """
        document = self._authorize(document_id, user_id)
        self._check_page_range(document, page_number)

        key = PageCacheKey.for_options(document_id, page_number, options)
        data, hit = self._cache.get(key)
        if not hit:
            data, complete = self._render(document, page_number, options.without_watermark())
            if complete:
                self._cache.put(key, data)

        if options.watermark is not None:
            data = apply_watermark(data, options.watermark, options.format, options.quality)

        self._access_logger.log_access(
            document_id, AccessAction.VIEW, user_id=user_id,
            page_number=page_number, session_id=session_id,
        )
        return data

    def search(
        self,
        document_id: int,
        query: str,
        options: SearchOptions | None = None,
        user_id: str | None = None,
        session_id: str | None = None,
    ) -> list[SearchResult]:
        self._authorize(document_id, user_id)
        results = self._indexer.search(document_id, query, options)
        self._access_logger.log_access(
            document_id, AccessAction.SEARCH, user_id=user_id, session_id=session_id
        )
        return results

    def record_event(
        self,
        document_id: int,
        action: AccessAction,
        user_id: str | None = None,
        page_number: int | None = None,
        session_id: str | None = None,
        time_spent: float | None = None,
    ) -> None:
        """Log a client-side navigate, download or share event."""
        action = AccessAction(action)
        if action not in EVENT_ACTIONS:
            raise ValueError(f"record_event does not accept action '{action.value}'")
        self._access_logger.log_access(
            document_id, action, user_id=user_id, page_number=page_number,
            session_id=session_id, time_spent=time_spent,
        )

    def close(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)

    def _authorize(self, document_id: int, user_id: str | None) -> DocumentRecord:
        document = self._doc_repo.find_by_id(document_id)
        if not self._access_policy(document, user_id):
            raise AccessDeniedError(f"User {user_id} may not view document {document_id}")
        return document

    @staticmethod
    def _check_page_range(document: DocumentRecord, page_number: int) -> None:
        if page_number < 1 or (
            document.total_pages is not None and page_number > document.total_pages
        ):
            raise PageOutOfRangeError(
                f"Page {page_number} is outside document {document.id} "
                f"({document.total_pages} pages)"
            )

    def _render(
        self, document: DocumentRecord, page_number: int, options: RenderOptions
    ) -> tuple[bytes, bool]:
        """Render in the pool; returns (placeholder, False) on failure or timeout.

        Placeholders are never cached so the next request renders again.
        """
        deadline = Deadline(self._render_timeout)
        future = self._pool.submit(
            self._renderer.render_page_strict, document, page_number, options, None, deadline
        )
        try:
            return future.result(timeout=self._render_timeout), True
        except FutureTimeoutError:
            deadline.cancel()
            Log.warning(
                f"Rendering document {document.id} page {page_number} timed out "
                f"after {self._render_timeout}s"
            )
            return error_image(options), False
        except PdfProcessingError as exc:
            Log.error(
                f"Rendering document {document.id} page {page_number} failed, "
                f"serving placeholder: {exc!r}"
            )
            return error_image(options), False

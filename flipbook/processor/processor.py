import math

from flipbook.cache.page_cache import PageCache
from flipbook.config.settings import Settings
from flipbook.database.models import DocumentRecord, JobRecord, PageRecord
from flipbook.database.repositories.document_repository import DocumentRepository
from flipbook.database.repositories.job_repository import JobRepository
from flipbook.database.repositories.text_search_repository import TextSearchRepository
from flipbook.errors.exceptions import (
    CorruptedFileError,
    ProcessingTimeoutError,
    RenderingFailedError,
    TooLargeError,
)
from flipbook.logging.logger import Log
from flipbook.pdf.base import BasePdfExtractor
from flipbook.pdf.factory import PdfExtractorFactory
from flipbook.processor.deadline import Deadline
from flipbook.processor.exceptions import ProcessorError
from flipbook.processor.models import (
    ProcessingOptions,
    ProcessingResult,
    page_image_key,
    page_thumbnail_key,
)
from flipbook.render.factory import ConverterFactory
from flipbook.render.renderer import Renderer
from flipbook.storage.base import BlobStore
from flipbook.storage.local import LocalBlobStore
from flipbook.storage.resolver import BlobResolver
from flipbook.text.indexer import TextIndexer
from flipbook.validation.validator import PdfValidator


class Processor:
    """Converts one document into stored page images and searchable text.

    Pipeline: load -> validate -> inspect -> index text -> render pages -> complete.
    Page rows are written in increasing page order, each only after its image
    is stored, and job progress is reported after every page.
    """

    def __init__(
        self,
        doc_repo: DocumentRepository,
        job_repo: JobRepository,
        resolver: BlobResolver,
        blob_store: BlobStore,
        validator: PdfValidator,
        extractor: BasePdfExtractor,
        renderer: Renderer,
        text_indexer: TextIndexer,
        max_pages: int = 1000,
        cache: PageCache | None = None,
    ) -> None:
        self._doc_repo = doc_repo
        self._job_repo = job_repo
        self._resolver = resolver
        self._blob_store = blob_store
        self._validator = validator
        self._extractor = extractor
        self._renderer = renderer
        self._text_indexer = text_indexer
        self._max_pages = max_pages
        self._cache = cache

    def process(self, job: JobRecord, deadline: Deadline | None = None) -> ProcessingResult:
        """Run the full processing pipeline for the job's document."""
        deadline = deadline or Deadline.never()
        options = ProcessingOptions.from_dict(job.options)
        document_id = job.document_id
        Log.info(f"Processing document {document_id} for job {job.id}")

        # Step 1: Load document and claim it
        document = self._doc_repo.find_by_id(document_id)
        if not self._doc_repo.mark_processing(document_id):
            raise ProcessorError(
                f"Document {document_id} is {document.processing_status.value} "
                "and cannot be processed"
            )
        pdf_bytes = self._resolver.resolve(document)
        Log.info(f"Loaded {len(pdf_bytes)} bytes for document {document_id}")

        # Step 2: Re-validate stored bytes
        validation = self._validator.validate(pdf_bytes)
        validation.raise_if_invalid()
        for warning in validation.warnings:
            Log.warning(f"Document {document_id}: {warning}")

        # Step 3: Exact page count
        info = self._extractor.inspect(pdf_bytes)
        if info.page_count == 0:
            raise CorruptedFileError("PDF has no pages", document_id=document_id)
        if info.page_count > self._max_pages:
            raise TooLargeError(
                f"PDF has too many pages ({info.page_count}, max: {self._max_pages})",
                document_id=document_id,
            )
        total_pages = info.page_count
        if options.max_pages is not None and options.max_pages < total_pages:
            Log.info(
                f"Document {document_id}: limiting {total_pages} pages to {options.max_pages}"
            )
            total_pages = options.max_pages

        # Step 4: Text indexing (best effort)
        page_texts: dict[int, str] = {}
        text_extracted = False
        if options.extract_text:
            try:
                pages = self._text_indexer.index_document(document_id, pdf_bytes, total_pages)
                page_texts = {
                    page.page_number: page.text for page in pages if page.text.strip()
                }
                text_extracted = bool(page_texts)
            except Exception as exc:
                Log.warning(f"Text extraction failed for document {document_id}: {exc}")

        # Step 5: Render, store and record every page
        render_options = options.render_options()
        for page_number in range(1, total_pages + 1):
            deadline.check(document_id, page_number)
            image = self._renderer.render_page_strict(
                document, page_number, render_options, pdf_bytes=pdf_bytes, deadline=deadline
            )
            image_key = page_image_key(document_id, page_number, render_options.format)
            self._blob_store.put(image_key, image)

            thumbnail_key = None
            if options.generate_thumbnails:
                thumbnail_key = self._store_thumbnail(
                    document, page_number, pdf_bytes, deadline
                )

            self._doc_repo.save_page(
                PageRecord(
                    document_id=document_id,
                    page_number=page_number,
                    image_key=image_key,
                    width=render_options.width,
                    height=render_options.height,
                    thumbnail_key=thumbnail_key,
                    text_content=page_texts.get(page_number),
                )
            )
            self._job_repo.update_progress(
                job.id, math.floor(page_number / total_pages * 100)
            )
            Log.debug(f"Document {document_id}: page {page_number}/{total_pages} stored")

        # Step 6: Complete
        if not self._doc_repo.mark_completed(
            document_id, total_pages, text_extracted, file_size=len(pdf_bytes)
        ):
            Log.warning(f"Document {document_id} changed status while processing")
        if self._cache is not None:
            self._cache.invalidate_document(document_id)
        Log.info(
            f"Processed document {document_id}: {total_pages} pages, "
            f"text extracted: {text_extracted}"
        )
        return ProcessingResult(
            document_id=document_id,
            total_pages=total_pages,
            text_extracted=text_extracted,
            warnings=validation.warnings,
        )

    def _store_thumbnail(
        self,
        document: DocumentRecord,
        page_number: int,
        pdf_bytes: bytes,
        deadline: Deadline,
    ) -> str | None:
        try:
            thumbnail = self._renderer.render_thumbnail(
                document, page_number, pdf_bytes=pdf_bytes, deadline=deadline
            )
        except ProcessingTimeoutError:
            raise
        except RenderingFailedError as exc:
            Log.warning(f"Thumbnail for document {document.id} page {page_number} failed: {exc}")
            return None
        key = page_thumbnail_key(document.id, page_number)
        self._blob_store.put(key, thumbnail)
        return key


def build_processor(
    settings: Settings,
    blob_store: BlobStore | None = None,
    renderer: Renderer | None = None,
    cache: PageCache | None = None,
) -> Processor:
    """Build a Processor with all required adapters."""
    blob_store = blob_store or LocalBlobStore(settings.files_root)
    resolver = BlobResolver(blob_store, settings.uploads_root, settings.temp_uploads_root)
    if renderer is None:
        renderer = Renderer(ConverterFactory.create_chain(settings), resolver)
    extractor = PdfExtractorFactory.from_settings(settings)
    return Processor(
        doc_repo=DocumentRepository(),
        job_repo=JobRepository(settings.queue_max_retries),
        resolver=resolver,
        blob_store=blob_store,
        validator=PdfValidator(
            settings.max_file_size, settings.min_file_size, settings.max_pages
        ),
        extractor=extractor,
        renderer=renderer,
        text_indexer=TextIndexer(extractor, TextSearchRepository(), settings.max_text_length),
        max_pages=settings.max_pages,
        cache=cache,
    )

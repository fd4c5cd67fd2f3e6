from dataclasses import dataclass

from flipbook.analytics.access_logger import AccessLogger
from flipbook.analytics.service import AnalyticsService
from flipbook.cache.page_cache import PageCache
from flipbook.config.settings import Settings
from flipbook.database.repositories.access_log_repository import AccessLogRepository
from flipbook.database.repositories.document_repository import DocumentRepository
from flipbook.database.repositories.job_repository import JobRepository
from flipbook.database.repositories.text_search_repository import TextSearchRepository
from flipbook.pdf.factory import PdfExtractorFactory
from flipbook.processor.processor import Processor, build_processor
from flipbook.render.factory import ConverterFactory
from flipbook.render.renderer import Renderer
from flipbook.service.documents import DocumentService
from flipbook.service.upload import UploadService
from flipbook.service.viewer import AccessPolicy, ViewerService
from flipbook.storage.local import LocalBlobStore
from flipbook.storage.resolver import BlobResolver
from flipbook.text.indexer import TextIndexer
from flipbook.validation.validator import PdfValidator
from flipbook.worker.cleanup import CleanupService
from flipbook.worker.job_queue import JobQueue
from flipbook.worker.job_runner import JobRunner
from flipbook.worker.worker import Worker


@dataclass
class Services:
    """Every long-lived component, wired once per process."""

    cache: PageCache
    access_logger: AccessLogger
    processor: Processor
    job_queue: JobQueue
    worker: Worker
    cleanup: CleanupService
    upload: UploadService
    viewer: ViewerService
    documents: DocumentService
    analytics: AnalyticsService

    def close(self) -> None:
        self.viewer.close()
        self.access_logger.close()


def build_services(settings: Settings, access_policy: AccessPolicy | None = None) -> Services:
    blob_store = LocalBlobStore(settings.files_root)
    resolver = BlobResolver(blob_store, settings.uploads_root, settings.temp_uploads_root)
    renderer = Renderer(ConverterFactory.create_chain(settings), resolver)
    cache = PageCache(ttl=settings.cache_ttl, max_size=settings.cache_max_size)

    doc_repo = DocumentRepository()
    job_repo = JobRepository(settings.queue_max_retries)
    access_repo = AccessLogRepository()
    access_logger = AccessLogger(access_repo)

    validator = PdfValidator(settings.max_file_size, settings.min_file_size, settings.max_pages)
    indexer = TextIndexer(
        PdfExtractorFactory.from_settings(settings), TextSearchRepository(), settings.max_text_length
    )

    processor = build_processor(
        settings, blob_store=blob_store, renderer=renderer, cache=cache
    )
    job_queue = JobQueue(doc_repo, job_repo, blob_store, cache=cache)
    job_runner = JobRunner(processor, job_repo, doc_repo, settings)

    return Services(
        cache=cache,
        access_logger=access_logger,
        processor=processor,
        job_queue=job_queue,
        worker=Worker(job_repo, job_runner, settings),
        cleanup=CleanupService(job_repo, doc_repo, access_repo, settings),
        upload=UploadService(validator, doc_repo, job_queue),
        viewer=ViewerService(
            doc_repo,
            renderer,
            cache,
            access_logger,
            indexer,
            render_timeout=settings.render_timeout_seconds,
            render_pool_size=settings.render_pool_size,
            access_policy=access_policy,
        ),
        documents=DocumentService(doc_repo, job_repo, cache),
        analytics=AnalyticsService(doc_repo, job_repo, access_repo),
    )

from dataclasses import dataclass, field
from datetime import datetime

from flipbook.database.models import DocumentStatus
from flipbook.database.repositories.access_log_repository import AccessLogRepository
from flipbook.database.repositories.document_repository import DocumentRepository
from flipbook.database.repositories.job_repository import JobRepository

TOP_PAGES_LIMIT = 10


@dataclass
class DocumentStats:
    document_id: int
    title: str
    processing_status: DocumentStatus
    total_pages: int | None
    text_extracted: bool
    processed_at: datetime | None
    processing_duration_seconds: float | None
    total_accesses: int
    unique_viewers: int
    page_views: int
    search_queries: int
    avg_time_spent_seconds: float | None
    first_accessed_at: datetime | None
    last_accessed_at: datetime | None


@dataclass
class PageViews:
    page_number: int
    views: int


@dataclass
class DateViews:
    date: str
    views: int


@dataclass
class AccessStats:
    total_views: int
    unique_users: int
    avg_time_spent: float
    top_pages: list[PageViews] = field(default_factory=list)
    views_by_date: list[DateViews] = field(default_factory=list)


class AnalyticsService:
    """Read-only processing and access statistics for a document."""

    def __init__(
        self,
        doc_repo: DocumentRepository,
        job_repo: JobRepository,
        access_repo: AccessLogRepository,
    ) -> None:
        self._doc_repo = doc_repo
        self._job_repo = job_repo
        self._access_repo = access_repo

    def document_stats(self, document_id: int) -> DocumentStats:
        """Raises DocumentNotFoundError for unknown documents."""
        document = self._doc_repo.find_by_id(document_id)
        job = self._job_repo.find_latest_for_document(document_id)
        summary = self._access_repo.summarize(document_id)

        duration = None
        if job is not None and job.started_at and job.completed_at:
            duration = (job.completed_at - job.started_at).total_seconds()

        return DocumentStats(
            document_id=document.id,
            title=document.title,
            processing_status=document.processing_status,
            total_pages=document.total_pages,
            text_extracted=document.text_extracted,
            processed_at=document.processed_at,
            processing_duration_seconds=duration,
            total_accesses=summary.total_accesses,
            unique_viewers=summary.unique_viewers,
            page_views=summary.page_views,
            search_queries=summary.search_queries,
            avg_time_spent_seconds=summary.avg_time_spent or None,
            first_accessed_at=summary.first_accessed_at,
            last_accessed_at=summary.last_accessed_at,
        )

    def access_stats(self, document_id: int) -> AccessStats | None:
        """None when the document has never been accessed."""
        summary = self._access_repo.summarize(document_id)
        if summary.total_accesses == 0:
            return None
        return AccessStats(
            total_views=summary.page_views,
            unique_users=summary.unique_viewers,
            avg_time_spent=summary.avg_time_spent,
            top_pages=[
                PageViews(page_number=page, views=views)
                for page, views in self._access_repo.top_pages(document_id, TOP_PAGES_LIMIT)
            ],
            views_by_date=[
                DateViews(date=day, views=views)
                for day, views in self._access_repo.views_by_date(document_id)
            ],
        )

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class DocumentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_live(self) -> bool:
        return self in (JobStatus.QUEUED, JobStatus.PROCESSING)


class AccessAction(str, Enum):
    VIEW = "view"
    SEARCH = "search"
    NAVIGATE = "navigate"
    DOWNLOAD = "download"
    SHARE = "share"


# Statuses a document may be in before moving to the key status.
DOCUMENT_STATUS_SOURCES: dict[DocumentStatus, tuple[DocumentStatus, ...]] = {
    DocumentStatus.PROCESSING: (DocumentStatus.PENDING, DocumentStatus.PROCESSING),
    DocumentStatus.COMPLETED: (DocumentStatus.PROCESSING,),
    DocumentStatus.FAILED: (DocumentStatus.PENDING, DocumentStatus.PROCESSING),
    DocumentStatus.PENDING: (DocumentStatus.COMPLETED, DocumentStatus.FAILED),
}


@dataclass
class DocumentRecord:
    """Represents a row from the documents table."""

    id: int
    title: str
    owner_id: str
    storage_key: str | None
    processing_status: DocumentStatus = DocumentStatus.PENDING
    total_pages: int | None = None
    text_extracted: bool = False
    file_size: int | None = None
    mime_type: str | None = "application/pdf"
    original_filename: str | None = None
    processed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class PageRecord:
    """Represents a row from the pdf_pages table."""

    document_id: int
    page_number: int
    image_key: str
    width: int
    height: int
    thumbnail_key: str | None = None
    text_content: str | None = None
    text_bounds: list[dict[str, Any]] | None = None
    id: int | None = None
    created_at: datetime | None = None


@dataclass
class JobRecord:
    """Represents a row from the processing_jobs table."""

    id: int
    document_id: int
    status: JobStatus
    progress: int = 0
    attempts: int = 0
    priority: int = 5
    options: dict[str, Any] = field(default_factory=dict)
    error_message: str | None = None
    available_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class TextSearchRecord:
    """Represents a row from the document_text_search table."""

    document_id: int
    page_number: int
    searchable_text: str
    word_positions: list[dict[str, Any]] | None = None
    id: int | None = None
    created_at: datetime | None = None


@dataclass
class AccessLogRecord:
    """Represents a row from the document_access_logs table."""

    document_id: int
    action: AccessAction
    user_id: str | None = None
    page_number: int | None = None
    session_id: str | None = None
    time_spent: float | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    id: int | None = None
    created_at: datetime | None = None


@dataclass
class AccessSummary:
    """Aggregate counters over a document's access log."""

    total_accesses: int = 0
    unique_viewers: int = 0
    page_views: int = 0
    search_queries: int = 0
    avg_time_spent: float = 0.0
    first_accessed_at: datetime | None = None
    last_accessed_at: datetime | None = None

from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from flipbook.database.connection import get_connection
from flipbook.database.models import (
    DOCUMENT_STATUS_SOURCES,
    DocumentRecord,
    DocumentStatus,
    PageRecord,
)
from flipbook.processor.exceptions import DocumentNotFoundError

_DOCUMENT_COLUMNS = """
    id, title, owner_id, storage_key, processing_status, total_pages,
    text_extracted, file_size, mime_type, original_filename,
    processed_at, created_at, updated_at
"""

_PAGE_COLUMNS = """
    id, document_id, page_number, image_key, width, height,
    thumbnail_key, text_content, text_bounds, created_at
"""


def _document_from_row(row: dict[str, Any]) -> DocumentRecord:
    return DocumentRecord(
        id=row["id"],
        title=row["title"],
        owner_id=row["owner_id"],
        storage_key=row["storage_key"],
        processing_status=DocumentStatus(row["processing_status"]),
        total_pages=row["total_pages"],
        text_extracted=row["text_extracted"],
        file_size=row["file_size"],
        mime_type=row["mime_type"],
        original_filename=row["original_filename"],
        processed_at=row["processed_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _page_from_row(row: dict[str, Any]) -> PageRecord:
    return PageRecord(
        id=row["id"],
        document_id=row["document_id"],
        page_number=row["page_number"],
        image_key=row["image_key"],
        width=row["width"],
        height=row["height"],
        thumbnail_key=row["thumbnail_key"],
        text_content=row["text_content"],
        text_bounds=row["text_bounds"],
        created_at=row["created_at"],
    )


class DocumentRepository:
    """Database operations for the documents and pdf_pages tables."""

    def create_document(
        self,
        title: str,
        owner_id: str,
        storage_key: str | None,
        file_size: int | None = None,
        mime_type: str | None = "application/pdf",
        original_filename: str | None = None,
    ) -> DocumentRecord:
        """Insert a new document in the pending state."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO documents
                        (title, owner_id, storage_key, processing_status,
                         file_size, mime_type, original_filename)
                    VALUES (%s, %s, %s, 'pending', %s, %s, %s)
                    RETURNING {_DOCUMENT_COLUMNS}
                    """,
                    (title, owner_id, storage_key, file_size, mime_type, original_filename),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError("INSERT INTO documents returned no row")
        return _document_from_row(row)

    def find_by_id(self, document_id: int) -> DocumentRecord:
        """Find a document by ID.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return _document_from_row(row)

    def update_storage_key(self, document_id: int, storage_key: str) -> None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET storage_key = %s, updated_at = NOW()
                    WHERE id = %s
                    """,
                    (storage_key, document_id),
                )
                if cur.rowcount == 0:
                    raise DocumentNotFoundError(f"Document {document_id} not found")
            conn.commit()

    def mark_processing(self, document_id: int) -> bool:
        return self._transition(document_id, DocumentStatus.PROCESSING)

    def mark_failed(self, document_id: int) -> bool:
        return self._transition(document_id, DocumentStatus.FAILED)

    def reset_for_reprocessing(self, document_id: int) -> bool:
        """Move a terminal document back to pending for an explicit re-enqueue.

        The previous run's pages and search text are deleted in the same
        transaction, so the next run starts from an empty page range.
        Returns False (and deletes nothing) unless the document was
        completed or failed.
        """
        sources = [s.value for s in DOCUMENT_STATUS_SOURCES[DocumentStatus.PENDING]]
        with get_connection() as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        UPDATE documents
                        SET processing_status = 'pending', total_pages = NULL,
                            text_extracted = FALSE, processed_at = NULL,
                            updated_at = NOW()
                        WHERE id = %s AND processing_status = ANY(%s)
                        """,
                        (document_id, sources),
                    )
                    if cur.rowcount == 0:
                        return False
                    for table in ("pdf_pages", "document_text_search"):
                        cur.execute(
                            f"DELETE FROM {table} WHERE document_id = %s",  # noqa: S608
                            (document_id,),
                        )
        return True

    def mark_completed(
        self,
        document_id: int,
        total_pages: int,
        text_extracted: bool,
        file_size: int | None = None,
    ) -> bool:
        """Record the final page count and flag the document completed."""
        sources = [s.value for s in DOCUMENT_STATUS_SOURCES[DocumentStatus.COMPLETED]]
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET processing_status = 'completed',
                        total_pages = %s,
                        text_extracted = %s,
                        file_size = COALESCE(%s, file_size),
                        processed_at = NOW(),
                        updated_at = NOW()
                    WHERE id = %s AND processing_status = ANY(%s)
                    """,
                    (total_pages, text_extracted, file_size, document_id, sources),
                )
                updated = cur.rowcount > 0
            conn.commit()
        return updated

    def _transition(self, document_id: int, target: DocumentStatus) -> bool:
        """Apply a forward-only status change.

        Returns False when the document is not in one of the allowed source
        statuses (the row is left untouched).
        """
        sources = [s.value for s in DOCUMENT_STATUS_SOURCES[target]]
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET processing_status = %s, updated_at = NOW()
                    WHERE id = %s AND processing_status = ANY(%s)
                    """,
                    (target.value, document_id, sources),
                )
                updated = cur.rowcount > 0
            conn.commit()
        return updated

    def save_page(self, page: PageRecord) -> None:
        """Insert or replace the row for one rendered page."""
        bounds = Jsonb(page.text_bounds) if page.text_bounds is not None else None
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO pdf_pages
                    (document_id, page_number, image_key, width, height,
                     thumbnail_key, text_content, text_bounds)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (document_id, page_number) DO UPDATE
                SET image_key = EXCLUDED.image_key,
                    width = EXCLUDED.width,
                    height = EXCLUDED.height,
                    thumbnail_key = EXCLUDED.thumbnail_key,
                    text_content = EXCLUDED.text_content,
                    text_bounds = EXCLUDED.text_bounds
                """,
                (
                    page.document_id,
                    page.page_number,
                    page.image_key,
                    page.width,
                    page.height,
                    page.thumbnail_key,
                    page.text_content,
                    bounds,
                ),
            )
            conn.commit()

    def find_page(self, document_id: int, page_number: int) -> PageRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_PAGE_COLUMNS} FROM pdf_pages
                    WHERE document_id = %s AND page_number = %s
                    """,
                    (document_id, page_number),
                )
                row = cur.fetchone()
        return _page_from_row(row) if row is not None else None

    def list_pages(
        self,
        document_id: int,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[PageRecord]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_PAGE_COLUMNS} FROM pdf_pages
                    WHERE document_id = %s
                    ORDER BY page_number
                    LIMIT %s OFFSET %s
                    """,
                    (document_id, limit, offset),
                )
                rows = cur.fetchall()
        return [_page_from_row(row) for row in rows]

    def attach_page_text(self, document_id: int, page_number: int, text: str) -> bool:
        """Attach text extracted after the page row was written."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE pdf_pages SET text_content = %s
                    WHERE document_id = %s AND page_number = %s
                    """,
                    (text, document_id, page_number),
                )
                updated = cur.rowcount > 0
            conn.commit()
        return updated

    def delete_document(self, document_id: int) -> None:
        """Delete a document and everything hanging off it in one transaction.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with get_connection() as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    for table in (
                        "document_access_logs",
                        "document_text_search",
                        "pdf_pages",
                        "processing_jobs",
                    ):
                        cur.execute(
                            f"DELETE FROM {table} WHERE document_id = %s",  # noqa: S608
                            (document_id,),
                        )
                    cur.execute("DELETE FROM documents WHERE id = %s", (document_id,))
                    if cur.rowcount == 0:
                        raise DocumentNotFoundError(f"Document {document_id} not found")

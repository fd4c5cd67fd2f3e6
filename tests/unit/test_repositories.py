from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from flipbook.database.models import (
    AccessAction,
    AccessLogRecord,
    DocumentRecord,
    DocumentStatus,
    JobRecord,
    JobStatus,
    PageRecord,
    TextSearchRecord,
)
from flipbook.database.repositories.access_log_repository import AccessLogRepository
from flipbook.database.repositories.document_repository import DocumentRepository
from flipbook.database.repositories.job_repository import JobRepository
from flipbook.database.repositories.text_search_repository import (
    TextSearchRepository,
    escape_like,
)
from flipbook.processor.exceptions import DocumentNotFoundError

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _mock_connection(mock_get_conn: MagicMock) -> tuple[MagicMock, MagicMock]:
    """Wire up a mock connection + cursor and return (mock_conn, mock_cursor)."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    mock_get_conn.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_get_conn.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn, mock_cursor


def _document_row(**overrides: object) -> dict:
    row = {
        "id": 1,
        "title": "Handbook",
        "owner_id": "owner-1",
        "storage_key": "documents/owner-1/abc.pdf",
        "processing_status": "completed",
        "total_pages": 12,
        "text_extracted": True,
        "file_size": 2048,
        "mime_type": "application/pdf",
        "original_filename": "handbook.pdf",
        "processed_at": NOW,
        "created_at": NOW,
        "updated_at": NOW,
    }
    row.update(overrides)
    return row


def _job_row(**overrides: object) -> dict:
    row = {
        "id": 9,
        "document_id": 1,
        "status": "processing",
        "progress": 0,
        "attempts": 0,
        "priority": 5,
        "options": {"width": 800},
        "error_message": None,
        "available_at": NOW,
        "started_at": NOW,
        "completed_at": None,
        "created_at": NOW,
        "updated_at": NOW,
    }
    row.update(overrides)
    return row


class TestDocumentRepository:
    @patch("flipbook.database.repositories.document_repository.get_connection")
    def test_find_by_id_maps_row(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _document_row()

        result = DocumentRepository().find_by_id(1)

        assert isinstance(result, DocumentRecord)
        assert result.processing_status is DocumentStatus.COMPLETED
        assert result.total_pages == 12
        assert result.storage_key == "documents/owner-1/abc.pdf"

    @patch("flipbook.database.repositories.document_repository.get_connection")
    def test_find_by_id_raises_when_missing(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        with pytest.raises(DocumentNotFoundError, match="Document 999 not found"):
            DocumentRepository().find_by_id(999)

    @patch("flipbook.database.repositories.document_repository.get_connection")
    def test_create_document_inserts_pending(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _document_row(processing_status="pending")

        result = DocumentRepository().create_document("Handbook", "owner-1", "k.pdf", 2048)

        sql, params = mock_cursor.execute.call_args.args
        assert "'pending'" in sql
        assert params == ("Handbook", "owner-1", "k.pdf", 2048, "application/pdf", None)
        assert result.processing_status is DocumentStatus.PENDING
        mock_conn.commit.assert_called_once()

    @patch("flipbook.database.repositories.document_repository.get_connection")
    def test_transition_reports_guard_result(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 0

        assert DocumentRepository().mark_processing(1) is False

        _sql, params = mock_cursor.execute.call_args.args
        assert params == ("processing", 1, ["pending", "processing"])

    @patch("flipbook.database.repositories.document_repository.get_connection")
    def test_mark_completed_only_from_processing(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 1

        assert DocumentRepository().mark_completed(1, 12, True, file_size=2048) is True

        _sql, params = mock_cursor.execute.call_args.args
        assert params == (12, True, 2048, 1, ["processing"])

    @patch("flipbook.database.repositories.document_repository.get_connection")
    def test_reset_for_reprocessing_drops_previous_run(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 1

        assert DocumentRepository().reset_for_reprocessing(1) is True

        mock_conn.transaction.assert_called_once()
        calls = mock_cursor.execute.call_args_list
        update_sql, update_params = calls[0].args
        assert "total_pages = NULL" in update_sql
        assert update_params == (1, ["completed", "failed"])
        assert [c.args for c in calls[1:]] == [
            ("DELETE FROM pdf_pages WHERE document_id = %s", (1,)),
            ("DELETE FROM document_text_search WHERE document_id = %s", (1,)),
        ]

    @patch("flipbook.database.repositories.document_repository.get_connection")
    def test_reset_for_reprocessing_keeps_live_document(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 0

        assert DocumentRepository().reset_for_reprocessing(1) is False
        assert mock_cursor.execute.call_count == 1

    @patch("flipbook.database.repositories.document_repository.get_connection")
    def test_save_page_upserts(self, mock_get_conn: MagicMock) -> None:
        mock_conn, _cursor = _mock_connection(mock_get_conn)

        DocumentRepository().save_page(PageRecord(1, 2, "pages/1/2.webp", 800, 1200))

        sql, params = mock_conn.execute.call_args.args
        assert "ON CONFLICT (document_id, page_number) DO UPDATE" in sql
        assert params[:5] == (1, 2, "pages/1/2.webp", 800, 1200)
        mock_conn.commit.assert_called_once()

    @patch("flipbook.database.repositories.document_repository.get_connection")
    def test_attach_page_text_updates_existing_row(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 0

        assert DocumentRepository().attach_page_text(1, 7, "late text") is False

        _sql, params = mock_cursor.execute.call_args.args
        assert params == ("late text", 1, 7)

    @patch("flipbook.database.repositories.document_repository.get_connection")
    def test_delete_removes_dependents_first(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 1

        DocumentRepository().delete_document(1)

        statements = [c.args[0] for c in mock_cursor.execute.call_args_list]
        assert statements[-1] == "DELETE FROM documents WHERE id = %s"
        assert len(statements) == 5

    @patch("flipbook.database.repositories.document_repository.get_connection")
    def test_delete_missing_document_raises(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 0

        with pytest.raises(DocumentNotFoundError):
            DocumentRepository().delete_document(404)


class TestJobRepository:
    @patch("flipbook.database.repositories.job_repository.get_connection")
    def test_create_job_returns_none_on_conflict(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert JobRepository(3).create_job(1, {}) is None

    @patch("flipbook.database.repositories.job_repository.get_connection")
    def test_create_job_maps_row(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _job_row(status="queued")

        job = JobRepository(3).create_job(1, {"width": 800})

        assert isinstance(job, JobRecord)
        assert job.status is JobStatus.QUEUED
        assert job.options == {"width": 800}

    def test_claim_next_job_returns_none_when_empty(self) -> None:
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
        mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
        mock_cursor.fetchone.return_value = None

        assert JobRepository(3).claim_next_job(mock_conn) is None
        mock_conn.commit.assert_called_once()

    def test_claim_next_job_marks_processing(self) -> None:
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
        mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
        mock_cursor.fetchone.side_effect = [{"id": 9}, _job_row()]

        job = JobRepository(3).claim_next_job(mock_conn)

        assert job is not None
        assert job.id == 9
        select_sql, select_params = mock_cursor.execute.call_args_list[0].args
        assert "FOR UPDATE SKIP LOCKED" in select_sql
        assert select_params == (3,)

    @patch("flipbook.database.repositories.job_repository.get_connection")
    def test_create_job_stores_priority(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _job_row(status="queued", priority=10)

        job = JobRepository(3).create_job(1, {"quality": "high"}, priority=10)

        assert job is not None
        assert job.priority == 10
        _sql, params = mock_cursor.execute.call_args.args
        assert params[:2] == (1, 10)

    def test_claim_prefers_higher_priority(self) -> None:
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
        mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
        mock_cursor.fetchone.return_value = None

        JobRepository(3).claim_next_job(mock_conn)

        select_sql, _params = mock_cursor.execute.call_args.args
        assert "ORDER BY priority DESC, available_at, created_at" in select_sql

    @patch("flipbook.database.repositories.job_repository.get_connection")
    def test_cancel_job_only_touches_queued(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _job_row(status="failed", error_message="Cancelled")

        job = JobRepository(3).cancel_job(9, "Cancelled")

        assert job is not None
        assert job.status is JobStatus.FAILED
        sql, params = mock_cursor.execute.call_args.args
        assert "status = 'queued'" in sql
        assert params == ("Cancelled", 9)

    @patch("flipbook.database.repositories.job_repository.get_connection")
    def test_cancel_job_returns_none_when_not_queued(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert JobRepository(3).cancel_job(9, "Cancelled") is None

    @patch("flipbook.database.repositories.job_repository.get_connection")
    def test_count_by_status(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchall.return_value = [
            {"status": "queued", "count": 3},
            {"status": "failed", "count": 1},
        ]

        counts = JobRepository(3).count_by_status()

        assert counts == {JobStatus.QUEUED: 3, JobStatus.FAILED: 1}
        sql = mock_cursor.execute.call_args.args[0]
        assert "GROUP BY status" in sql

    @patch("flipbook.database.repositories.job_repository.get_connection")
    def test_update_progress_clamps(self, mock_get_conn: MagicMock) -> None:
        mock_conn, _cursor = _mock_connection(mock_get_conn)

        JobRepository(3).update_progress(9, 140)

        sql, params = mock_conn.execute.call_args.args
        assert "GREATEST" in sql
        assert params == (100, 9)

    @patch("flipbook.database.repositories.job_repository.get_connection")
    def test_requeue_passes_delay(self, mock_get_conn: MagicMock) -> None:
        mock_conn, _cursor = _mock_connection(mock_get_conn)

        JobRepository(3).requeue(9, 4.0, "bucket unavailable")

        _sql, params = mock_conn.execute.call_args.args
        assert params == ("bucket unavailable", 4.0, 9)

    @patch("flipbook.database.repositories.job_repository.get_connection")
    def test_fail_stale_jobs_returns_failed(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchall.return_value = [_job_row(status="failed")]

        jobs = JobRepository(3).fail_stale_jobs(1800, "Processing Timeout")

        assert [j.status for j in jobs] == [JobStatus.FAILED]


class TestTextSearchRepository:
    def test_escape_like(self) -> None:
        assert escape_like("50%_off\\") == "50\\%\\_off\\\\"

    @patch("flipbook.database.repositories.text_search_repository.get_connection")
    def test_search_uses_ilike_by_default(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchall.return_value = [
            {
                "id": 1,
                "document_id": 1,
                "page_number": 4,
                "searchable_text": "zebra",
                "word_positions": [],
                "created_at": NOW,
            }
        ]

        results = TextSearchRepository().search(1, "zeb", limit=5, offset=2)

        sql, params = mock_cursor.execute.call_args.args
        assert "ILIKE" in sql
        assert params == (1, "%zeb%", 5, 2)
        assert [r.page_number for r in results] == [4]

    @patch("flipbook.database.repositories.text_search_repository.get_connection")
    def test_search_case_sensitive_uses_like(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchall.return_value = []

        TextSearchRepository().search(1, "Zebra", case_sensitive=True)

        sql, _params = mock_cursor.execute.call_args.args
        assert "ILIKE" not in sql
        assert "LIKE" in sql

    @patch("flipbook.database.repositories.text_search_repository.get_connection")
    def test_replace_document_text_deletes_then_inserts(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)

        TextSearchRepository().replace_document_text(
            1, [TextSearchRecord(document_id=1, page_number=1, searchable_text="hello")]
        )

        mock_cursor.execute.assert_called_once()
        rows = mock_cursor.executemany.call_args.args[1]
        assert rows == [(1, 1, "hello", None)]


class TestAccessLogRepository:
    @patch("flipbook.database.repositories.access_log_repository.get_connection")
    def test_insert(self, mock_get_conn: MagicMock) -> None:
        mock_conn, _cursor = _mock_connection(mock_get_conn)

        AccessLogRepository().insert(
            AccessLogRecord(document_id=1, action=AccessAction.VIEW, user_id="u", page_number=2)
        )

        _sql, params = mock_conn.execute.call_args.args
        assert params[:4] == (1, "u", 2, "view")
        mock_conn.commit.assert_called_once()

    @patch("flipbook.database.repositories.access_log_repository.get_connection")
    def test_summarize_maps_row(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {
            "total_accesses": 7,
            "unique_viewers": 2,
            "page_views": 5,
            "search_queries": 2,
            "avg_time_spent": 3.5,
            "first_accessed_at": NOW,
            "last_accessed_at": NOW,
        }

        summary = AccessLogRepository().summarize(1)

        assert summary.total_accesses == 7
        assert summary.avg_time_spent == 3.5

    @patch("flipbook.database.repositories.access_log_repository.get_connection")
    def test_top_pages(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchall.return_value = [(3, 4), (1, 1)]

        assert AccessLogRepository().top_pages(1, 10) == [(3, 4), (1, 1)]

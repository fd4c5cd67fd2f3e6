from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from flipbook.database.connection import get_connection
from flipbook.database.models import JobRecord, JobStatus

_JOB_COLUMNS = """
    id, document_id, status, progress, attempts, priority, options, error_message,
    available_at, started_at, completed_at, created_at, updated_at
"""


def _job_from_row(row: dict[str, Any]) -> JobRecord:
    return JobRecord(
        id=row["id"],
        document_id=row["document_id"],
        status=JobStatus(row["status"]),
        progress=row["progress"],
        attempts=row["attempts"],
        priority=row["priority"],
        options=row["options"] or {},
        error_message=row["error_message"],
        available_at=row["available_at"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class JobRepository:
    """Database operations for the processing_jobs table."""

    def __init__(self, max_attempts: int) -> None:
        self._max_attempts = max_attempts

    def create_job(
        self, document_id: int, options: dict[str, Any], priority: int = 5
    ) -> JobRecord | None:
        """Insert a queued job unless the document already has a live one.

        Returns None when the partial unique index rejected the insert.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO processing_jobs (document_id, status, progress, priority, options)
                    VALUES (%s, 'queued', 0, %s, %s)
                    ON CONFLICT (document_id) WHERE status IN ('queued', 'processing')
                    DO NOTHING
                    RETURNING {_JOB_COLUMNS}
                    """,
                    (document_id, priority, Jsonb(options)),
                )
                row = cur.fetchone()
            conn.commit()
        return _job_from_row(row) if row is not None else None

    def find_live_job(self, document_id: int) -> JobRecord | None:
        """Return the queued or processing job for a document, if any."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_JOB_COLUMNS} FROM processing_jobs
                    WHERE document_id = %s AND status IN ('queued', 'processing')
                    ORDER BY created_at DESC
                    LIMIT 1
                    """,
                    (document_id,),
                )
                row = cur.fetchone()
        return _job_from_row(row) if row is not None else None

    def claim_next_job(self, conn: psycopg.Connection[Any]) -> JobRecord | None:
        """Claim the next due queued job using SELECT FOR UPDATE SKIP LOCKED."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT id
                FROM processing_jobs
                WHERE status = 'queued'
                  AND attempts < %s
                  AND available_at <= NOW()
                ORDER BY priority DESC, available_at, created_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (self._max_attempts,),
            )
            row = cur.fetchone()

            if row is None:
                conn.commit()
                return None

            cur.execute(
                f"""
                UPDATE processing_jobs
                SET status = 'processing', progress = 0, locked_at = NOW(),
                    started_at = NOW(), updated_at = NOW()
                WHERE id = %s
                RETURNING {_JOB_COLUMNS}
                """,
                (row["id"],),
            )
            claimed = cur.fetchone()
        conn.commit()

        return _job_from_row(claimed) if claimed is not None else None

    def update_progress(self, job_id: int, progress: int) -> None:
        """Raise the progress of a processing job; never lowers it."""
        progress = max(0, min(100, progress))
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE processing_jobs
                SET progress = GREATEST(progress, %s), updated_at = NOW()
                WHERE id = %s AND status = 'processing'
                """,
                (progress, job_id),
            )
            conn.commit()

    def mark_completed(self, job_id: int) -> None:
        """Mark a job as completed."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE processing_jobs
                SET status = 'completed', progress = 100, error_message = NULL,
                    locked_at = NULL, completed_at = NOW(), updated_at = NOW()
                WHERE id = %s
                """,
                (job_id,),
            )
            conn.commit()

    def mark_failed(self, job_id: int, error: str) -> None:
        """Mark a job as permanently failed."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE processing_jobs
                SET status = 'failed', error_message = %s, locked_at = NULL,
                    completed_at = NOW(), updated_at = NOW()
                WHERE id = %s
                """,
                (error, job_id),
            )
            conn.commit()

    def requeue(self, job_id: int, delay_seconds: float, error: str | None = None) -> None:
        """Increment attempt count and return job to the queue after a delay."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE processing_jobs
                SET attempts = attempts + 1, status = 'queued', progress = 0,
                    error_message = %s, locked_at = NULL,
                    available_at = NOW() + make_interval(secs => %s::float8),
                    updated_at = NOW()
                WHERE id = %s
                """,
                (error, delay_seconds, job_id),
            )
            conn.commit()

    def cancel_job(self, job_id: int, error: str) -> JobRecord | None:
        """Fail a job that has not been claimed yet.

        Returns None when the job does not exist or is no longer queued.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE processing_jobs
                    SET status = 'failed', error_message = %s, locked_at = NULL,
                        completed_at = NOW(), updated_at = NOW()
                    WHERE id = %s AND status = 'queued'
                    RETURNING {_JOB_COLUMNS}
                    """,
                    (error, job_id),
                )
                row = cur.fetchone()
            conn.commit()
        return _job_from_row(row) if row is not None else None

    def count_by_status(self) -> dict[JobStatus, int]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT status, COUNT(*) AS count
                    FROM processing_jobs
                    GROUP BY status
                    """
                )
                rows = cur.fetchall()
        return {JobStatus(row["status"]): row["count"] for row in rows}

    def find_by_id(self, job_id: int) -> JobRecord | None:
        """Find a job by ID."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_JOB_COLUMNS} FROM processing_jobs WHERE id = %s",
                    (job_id,),
                )
                row = cur.fetchone()
        return _job_from_row(row) if row is not None else None

    def find_latest_for_document(self, document_id: int) -> JobRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_JOB_COLUMNS} FROM processing_jobs
                    WHERE document_id = %s
                    ORDER BY created_at DESC, id DESC
                    LIMIT 1
                    """,
                    (document_id,),
                )
                row = cur.fetchone()
        return _job_from_row(row) if row is not None else None

    def fail_stale_jobs(self, timeout_seconds: float, error: str) -> list[JobRecord]:
        """Fail processing jobs that started longer than ``timeout_seconds`` ago.

        Picks up jobs orphaned by a crashed worker; returns the failed jobs.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE processing_jobs
                    SET status = 'failed', error_message = %s, locked_at = NULL,
                        completed_at = NOW(), updated_at = NOW()
                    WHERE status = 'processing'
                      AND started_at < NOW() - make_interval(secs => %s::float8)
                    RETURNING {_JOB_COLUMNS}
                    """,
                    (error, timeout_seconds),
                )
                rows = cur.fetchall()
            conn.commit()
        return [_job_from_row(row) for row in rows]

    def prune_finished(self, keep_completed: int, keep_failed: int) -> int:
        """Delete terminal jobs beyond the newest ``keep_*`` per status."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    DELETE FROM processing_jobs
                    WHERE id IN (
                        SELECT id FROM (
                            SELECT id, status,
                                   ROW_NUMBER() OVER (
                                       PARTITION BY status
                                       ORDER BY completed_at DESC NULLS LAST, id DESC
                                   ) AS rank
                            FROM processing_jobs
                            WHERE status IN ('completed', 'failed')
                        ) ranked
                        WHERE (status = 'completed' AND rank > %s)
                           OR (status = 'failed' AND rank > %s)
                    )
                    """,
                    (keep_completed, keep_failed),
                )
                deleted = cur.rowcount
            conn.commit()
        return deleted

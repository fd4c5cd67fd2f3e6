from typing import Any

from psycopg.rows import dict_row

from flipbook.database.connection import get_connection
from flipbook.database.models import AccessAction, AccessLogRecord, AccessSummary

_LOG_COLUMNS = """
    id, document_id, user_id, page_number, action, session_id,
    time_spent, ip_address, user_agent, created_at
"""


def _log_from_row(row: dict[str, Any]) -> AccessLogRecord:
    return AccessLogRecord(
        id=row["id"],
        document_id=row["document_id"],
        user_id=row["user_id"],
        page_number=row["page_number"],
        action=AccessAction(row["action"]),
        session_id=row["session_id"],
        time_spent=row["time_spent"],
        ip_address=row["ip_address"],
        user_agent=row["user_agent"],
        created_at=row["created_at"],
    )


class AccessLogRepository:
    """Append-only operations and aggregates for the document_access_logs table."""

    def insert(self, entry: AccessLogRecord) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO document_access_logs
                    (document_id, user_id, page_number, action, session_id,
                     time_spent, ip_address, user_agent)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    entry.document_id,
                    entry.user_id,
                    entry.page_number,
                    entry.action.value,
                    entry.session_id,
                    entry.time_spent,
                    entry.ip_address,
                    entry.user_agent,
                ),
            )
            conn.commit()

    def find_by_document(
        self, document_id: int, limit: int = 100, offset: int = 0
    ) -> list[AccessLogRecord]:
        """Newest entries first."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_LOG_COLUMNS} FROM document_access_logs
                    WHERE document_id = %s
                    ORDER BY created_at DESC, id DESC
                    LIMIT %s OFFSET %s
                    """,
                    (document_id, limit, offset),
                )
                rows = cur.fetchall()
        return [_log_from_row(row) for row in rows]

    def summarize(self, document_id: int) -> AccessSummary:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT COUNT(*) AS total_accesses,
                           COUNT(DISTINCT user_id) AS unique_viewers,
                           COUNT(*) FILTER (WHERE action = 'view') AS page_views,
                           COUNT(*) FILTER (WHERE action = 'search') AS search_queries,
                           COALESCE(AVG(COALESCE(time_spent, 0)), 0) AS avg_time_spent,
                           MIN(created_at) AS first_accessed_at,
                           MAX(created_at) AS last_accessed_at
                    FROM document_access_logs
                    WHERE document_id = %s
                    """,
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            return AccessSummary()
        return AccessSummary(
            total_accesses=row["total_accesses"],
            unique_viewers=row["unique_viewers"],
            page_views=row["page_views"],
            search_queries=row["search_queries"],
            avg_time_spent=float(row["avg_time_spent"]),
            first_accessed_at=row["first_accessed_at"],
            last_accessed_at=row["last_accessed_at"],
        )

    def top_pages(self, document_id: int, limit: int = 10) -> list[tuple[int, int]]:
        """(page_number, views) for the most viewed pages."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT page_number, COUNT(*) AS views
                    FROM document_access_logs
                    WHERE document_id = %s AND action = 'view'
                      AND page_number IS NOT NULL
                    GROUP BY page_number
                    ORDER BY views DESC, page_number ASC
                    LIMIT %s
                    """,
                    (document_id, limit),
                )
                rows = cur.fetchall()
        return [(int(page), int(views)) for page, views in rows]

    def views_by_date(self, document_id: int) -> list[tuple[str, int]]:
        """(ISO date, views) in ascending date order."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT to_char(created_at AT TIME ZONE 'UTC', 'YYYY-MM-DD') AS day,
                           COUNT(*) AS views
                    FROM document_access_logs
                    WHERE document_id = %s AND action = 'view'
                    GROUP BY day
                    ORDER BY day ASC
                    """,
                    (document_id,),
                )
                rows = cur.fetchall()
        return [(str(day), int(views)) for day, views in rows]

    def delete_older_than(self, days: int) -> int:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    DELETE FROM document_access_logs
                    WHERE created_at < NOW() - make_interval(days => %s::int)
                    """,
                    (days,),
                )
                deleted = cur.rowcount
            conn.commit()
        return deleted

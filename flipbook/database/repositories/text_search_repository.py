from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from flipbook.database.connection import get_connection
from flipbook.database.models import TextSearchRecord


def escape_like(query: str) -> str:
    """Escape LIKE wildcards so the query matches literally."""
    return query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _entry_from_row(row: dict[str, Any]) -> TextSearchRecord:
    return TextSearchRecord(
        id=row["id"],
        document_id=row["document_id"],
        page_number=row["page_number"],
        searchable_text=row["searchable_text"],
        word_positions=row["word_positions"],
        created_at=row["created_at"],
    )


class TextSearchRepository:
    """Database operations for the document_text_search table."""

    def replace_document_text(
        self, document_id: int, entries: list[TextSearchRecord]
    ) -> None:
        """Swap a document's text entries for ``entries`` atomically."""
        with get_connection() as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    cur.execute(
                        "DELETE FROM document_text_search WHERE document_id = %s",
                        (document_id,),
                    )
                    if entries:
                        cur.executemany(
                            """
                            INSERT INTO document_text_search
                                (document_id, page_number, searchable_text, word_positions)
                            VALUES (%s, %s, %s, %s)
                            """,
                            [
                                (
                                    document_id,
                                    entry.page_number,
                                    entry.searchable_text,
                                    Jsonb(entry.word_positions)
                                    if entry.word_positions is not None
                                    else None,
                                )
                                for entry in entries
                            ],
                        )

    def search(
        self,
        document_id: int,
        query: str,
        case_sensitive: bool = False,
        limit: int = 10,
        offset: int = 0,
    ) -> list[TextSearchRecord]:
        """Return entries whose text contains ``query``, by page ascending."""
        operator = "LIKE" if case_sensitive else "ILIKE"
        pattern = f"%{escape_like(query)}%"
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT id, document_id, page_number, searchable_text,
                           word_positions, created_at
                    FROM document_text_search
                    WHERE document_id = %s AND searchable_text {operator} %s
                    ORDER BY page_number ASC
                    LIMIT %s OFFSET %s
                    """,
                    (document_id, pattern, limit, offset),
                )
                rows = cur.fetchall()
        return [_entry_from_row(row) for row in rows]

    def get_text(
        self, document_id: int, page_number: int | None = None
    ) -> list[TextSearchRecord]:
        sql = """
            SELECT id, document_id, page_number, searchable_text,
                   word_positions, created_at
            FROM document_text_search
            WHERE document_id = %s
        """
        params: list[Any] = [document_id]
        if page_number is not None:
            sql += " AND page_number = %s"
            params.append(page_number)
        sql += " ORDER BY page_number ASC"

        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(sql, params)
                rows = cur.fetchall()
        return [_entry_from_row(row) for row in rows]

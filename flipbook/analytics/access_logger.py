import queue
import threading

from flipbook.database.models import AccessAction, AccessLogRecord
from flipbook.database.repositories.access_log_repository import AccessLogRepository
from flipbook.logging.logger import Log

_STOP = object()


class AccessLogger:
    """Writes access log entries from a background thread.

    ``log_access`` only enqueues, so a slow or failing database never delays
    or breaks page delivery. Write failures are logged as warnings and the
    entry is dropped.
    """

    def __init__(self, repo: AccessLogRepository, max_pending: int = 10_000) -> None:
        self._repo = repo
        self._queue: queue.Queue[object] = queue.Queue(maxsize=max_pending)
        self._thread = threading.Thread(target=self._drain, name="access-logger", daemon=True)
        self._closed = False
        self._thread.start()

    def log_access(
        self,
        document_id: int,
        action: AccessAction,
        user_id: str | None = None,
        page_number: int | None = None,
        session_id: str | None = None,
        time_spent: float | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """Record an access event; never raises."""
        if self._closed:
            Log.warning(f"Access logger closed, dropping {action} for document {document_id}")
            return
        entry = AccessLogRecord(
            document_id=document_id,
            action=AccessAction(action),
            user_id=user_id,
            page_number=page_number,
            session_id=session_id,
            time_spent=time_spent,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        try:
            self._queue.put_nowait(entry)
        except queue.Full:
            Log.warning(f"Access log queue full, dropping {entry.action.value} for document {document_id}")

    def flush(self) -> None:
        """Block until every queued entry has been written or dropped."""
        self._queue.join()

    def close(self, timeout: float | None = 5.0) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put(_STOP)
        self._thread.join(timeout)

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._write(item)
            finally:
                self._queue.task_done()

    def _write(self, entry: AccessLogRecord) -> None:
        try:
            self._repo.insert(entry)
        except Exception as exc:
            Log.warning(
                f"Failed to write access log for document {entry.document_id} "
                f"({entry.action.value}): {exc}"
            )

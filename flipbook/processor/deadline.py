import time
from collections.abc import Callable

from flipbook.errors.exceptions import ProcessingTimeoutError


class Deadline:
    """A point in time after which long-running work must stop.

    Shared between the caller that waits on a result and the code doing the
    work; the worker side calls ``check()`` at safe points.
    """

    def __init__(
        self,
        seconds: float | None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._seconds = seconds
        self._expires_at = None if seconds is None else clock() + seconds
        self._cancelled = False

    @classmethod
    def never(cls) -> "Deadline":
        return cls(None)

    @property
    def seconds(self) -> float | None:
        return self._seconds

    def remaining(self) -> float | None:
        """Seconds left, or None for an unbounded deadline."""
        if self._cancelled:
            return 0.0
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def cancel(self) -> None:
        """Expire the deadline now, e.g. when the waiting side gave up."""
        self._cancelled = True

    def check(self, document_id: int | None = None, page_number: int | None = None) -> None:
        if self.expired:
            reason = (
                "Processing was cancelled"
                if self._cancelled
                else f"Processing exceeded the time limit of {self._seconds}s"
            )
            raise ProcessingTimeoutError(
                reason,
                document_id=document_id,
                page_number=page_number,
            )

import threading
import time
from collections import deque
from collections.abc import Callable


class RateLimiter:
    """Sliding-window limit on how many jobs may start per window."""

    def __init__(
        self,
        max_events: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._max_events = max_events
        self._window = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._events: deque[float] = deque()
        self._lock = threading.Lock()

    def _purge(self, now: float) -> None:
        while self._events and now - self._events[0] >= self._window:
            self._events.popleft()

    def delay(self) -> float:
        """Seconds until another event is allowed; 0 when allowed now."""
        with self._lock:
            now = self._clock()
            self._purge(now)
            if len(self._events) < self._max_events:
                return 0.0
            return max(0.0, self._events[0] + self._window - now)

    def wait(self) -> None:
        """Block until another event fits in the window (does not record one)."""
        delay = self.delay()
        while delay > 0:
            self._sleep(delay)
            delay = self.delay()

    def record(self) -> None:
        with self._lock:
            now = self._clock()
            self._purge(now)
            self._events.append(now)

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from flipbook.render.models import ImageFormat, Quality, RenderOptions


@dataclass(frozen=True)
class PageCacheKey:
    document_id: int
    page_number: int
    width: int
    height: int
    quality: Quality
    format: ImageFormat

    @classmethod
    def for_options(
        cls, document_id: int, page_number: int, options: RenderOptions
    ) -> "PageCacheKey":
        return cls(
            document_id=document_id,
            page_number=page_number,
            width=options.width,
            height=options.height,
            quality=options.quality,
            format=options.format,
        )


@dataclass
class CachedPage:
    data: bytes
    inserted_at: float
    access_count: int = 0


@dataclass(frozen=True)
class CacheStats:
    size: int
    max_size: int
    hits: int
    misses: int
    evictions: int


class PageCache:
    """In-memory cache of rendered pages with TTL and FIFO eviction.

    Entries expire ``ttl`` seconds after insertion; expiry is checked on
    read. When full, the oldest-inserted entry is evicted regardless of how
    often it was read. A single lock guards every operation.
    """

    def __init__(
        self,
        ttl: float = 300.0,
        max_size: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self._ttl = ttl
        self._max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[PageCacheKey, CachedPage] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: PageCacheKey) -> tuple[bytes | None, bool]:
        """Return ``(data, True)`` on a hit and ``(None, False)`` on a miss."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None, False
            if self._clock() - entry.inserted_at > self._ttl:
                del self._entries[key]
                self._misses += 1
                return None, False
            entry.access_count += 1
            self._hits += 1
            return entry.data, True

    def put(self, key: PageCacheKey, data: bytes) -> None:
        with self._lock:
            # Re-putting a key moves it to the back of the eviction order.
            self._entries.pop(key, None)
            self._entries[key] = CachedPage(data=data, inserted_at=self._clock())
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)
                self._evictions += 1

    def invalidate_document(self, document_id: int) -> int:
        """Drop every cached page of a document; returns the number dropped."""
        with self._lock:
            stale = [key for key in self._entries if key.document_id == document_id]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                max_size=self._max_size,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

import threading
import time
from typing import Callable, Generic, Optional, TypeVar

from .logging_config import get_logger

log = get_logger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SEC = 300.0  # 5 minutes


def cache_key(gender: Optional[str] = None, limit: Optional[int] = None) -> str:
    """Key for one query shape, e.g. rankings_female_10 or rankings_all_all."""
    return f"rankings_{gender or 'all'}_{limit or 'all'}"


class RankingCache(Generic[T]):
    """In-memory TTL cache for computed rankings.

    Each entry stores its absolute expiry next to the value. Reads of a
    missing or expired entry return None and evict the stale entry.
    There is no per-key invalidation; any change that can affect rankings
    clears everything.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SEC, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, T]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            cached = self._entries.get(key)
            if cached is None:
                return None
            expiry, value = cached
            if self._clock() >= expiry:
                del self._entries[key]
                log.debug("Cache entry expired key=%s", key)
                return None
            return value

    def set(self, key: str, value: T) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

"""
In-process resource cache with TTL entries and in-flight request tracking.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TYPE_CHECKING

from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_TTL = 300.0
DEFAULT_CLEANUP_INTERVAL = 600.0


@dataclass(frozen=True)
class CacheEntry:
    """A cached value. Replaced wholesale, never mutated."""
    key: str
    value: Any
    written_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.written_at > self.ttl


class ResourceCache:
    """Keyed TTL store plus a table of pending requests.

    Values are opaque to the cache. Everything runs on one event loop, so no
    locking is done; callers must register a pending request before the
    first ``await`` on it.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        *,
        cleanup_interval: float = DEFAULT_CLEANUP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.default_ttl = default_ttl
        self.cleanup_interval = cleanup_interval
        self.clock = clock
        self.metrics = metrics
        self.logger = get_logger("dashboard.cache")

        self._entries: Dict[str, CacheEntry] = {}
        self._pending: Dict[str, asyncio.Future] = {}
        self._hits = 0
        self._misses = 0

        self.cleanup_task: Optional[asyncio.Task] = None
        self.running = False

    def get(self, key: str) -> Optional[Any]:
        """Return the value if present and fresh; evict it if expired."""
        entry = self._entries.get(key)
        if entry is None:
            self._record_lookup("miss")
            return None

        if entry.is_expired(self.clock()):
            del self._entries[key]
            self._record_lookup("expired")
            self._record_size()
            return None

        self._record_lookup("hit")
        return entry.value

    def get_stale(self, key: str) -> Optional[Any]:
        """Return the value regardless of expiry."""
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def has(self, key: str) -> bool:
        """Whether an entry exists, fresh or stale."""
        return key in self._entries

    def is_stale(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return True
        return entry.is_expired(self.clock())

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store ``value`` under ``key``, replacing any existing entry."""
        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            written_at=self.clock(),
            ttl=self.default_ttl if ttl is None else ttl,
        )
        self._record_size()

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)
        self._record_size()

    def clear(self) -> None:
        """Drop every entry and every pending request registration."""
        self._entries.clear()
        self._pending.clear()
        self._record_size()
        self.logger.info("Cache cleared")

    def get_pending_request(self, key: str) -> Optional[asyncio.Future]:
        return self._pending.get(key)

    def set_pending_request(self, key: str, request: Awaitable[Any]) -> asyncio.Future:
        """Track an in-flight request for ``key`` and return it.

        The registration is removed when the future settles, whether it
        succeeds, fails or is cancelled.
        """
        future = asyncio.ensure_future(request)
        self._pending[key] = future

        def _release(done: asyncio.Future) -> None:
            # clear() or a newer registration may have replaced this one
            if self._pending.get(key) is done:
                del self._pending[key]

        future.add_done_callback(_release)
        return future

    def cleanup(self) -> int:
        """Evict expired entries. Returns the number evicted."""
        now = self.clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]

        if expired:
            self.logger.debug("Evicted expired cache entries", count=len(expired))
            if self.metrics:
                for _ in expired:
                    self.metrics.increment_counter("cache_evictions_total", reason="cleanup")
            self._record_size()
        return len(expired)

    async def start(self):
        """Start the recurring cleanup sweep."""
        if self.running:
            return
        self.running = True
        self.cleanup_task = asyncio.create_task(self._cleanup_loop())
        self.logger.info("Cache cleanup started", interval=self.cleanup_interval)

    async def stop(self):
        """Stop the recurring cleanup sweep."""
        self.running = False
        if self.cleanup_task:
            self.cleanup_task.cancel()
            try:
                await self.cleanup_task
            except asyncio.CancelledError:
                pass
            self.cleanup_task = None

        self.logger.info("Cache cleanup stopped")

    async def _cleanup_loop(self):
        while self.running:
            try:
                await asyncio.sleep(self.cleanup_interval)
                self.cleanup()
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.logger.error("Error in cache cleanup loop", error=str(e))

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        now = self.clock()
        total = self._hits + self._misses
        return {
            "entries": len(self._entries),
            "expired_entries": sum(1 for e in self._entries.values() if e.is_expired(now)),
            "pending_requests": len(self._pending),
            "hits": self._hits,
            "misses": self._misses,
            "hit_ratio": self._hits / total if total else 0.0,
        }

    def _record_lookup(self, result: str) -> None:
        if result == "hit":
            self._hits += 1
        else:
            self._misses += 1
        if self.metrics:
            self.metrics.increment_counter("cache_lookups_total", result=result)

    def _record_size(self) -> None:
        if self.metrics:
            self.metrics.set_gauge("cache_entries", len(self._entries))

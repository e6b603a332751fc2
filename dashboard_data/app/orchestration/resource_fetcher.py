"""
Cache-aware fetch-with-retry for a single logical resource.
"""

import asyncio
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, TYPE_CHECKING

from shared.errors import DataAccessException, LogicalFailureError
from shared.logging import get_logger
from shared.retry import RetryAborted, RetryConfig, RetryError, call_with_retry
from ..caching.resource_cache import ResourceCache
from ..domain.models import ApiResponse
from .results import FetchResult, Failed, Ok, PENDING
from .triggers import AutoRefresh, FocusEventSource

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class ResourceStatus(str, Enum):
    """Lifecycle of one resource."""
    EMPTY = "empty"
    LOADING = "loading"
    FRESH = "fresh"
    STALE_SERVING = "stale_serving"
    ERROR = "error"


@dataclass(frozen=True)
class ResourceState:
    """What the display layer sees for one resource."""
    data: Any = None
    loading: bool = True
    error: Optional[str] = None
    is_refreshing: bool = False
    status: ResourceStatus = ResourceStatus.EMPTY


StateListener = Callable[[ResourceState], None]


def error_message(exc: BaseException, fallback: str) -> str:
    if isinstance(exc, DataAccessException):
        return exc.message or fallback
    return str(exc) or fallback


class ResourceFetcher:
    """Fetches one resource through the cache.

    Order of preference: join an in-flight request for the key, serve a
    fresh cache entry, serve a stale entry while revalidating, or load from
    the network. Failed network calls are retried after a fixed delay; once
    the budget is spent the error is reported next to whatever data was
    already visible.

    After :meth:`dispose` nothing is committed: no state change, no cache
    write, no listener call.
    """

    def __init__(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        cache: ResourceCache,
        *,
        name: Optional[str] = None,
        ttl: Optional[float] = None,
        retry: Optional[RetryConfig] = None,
        default: Optional[Callable[[], Any]] = None,
        normalize: Optional[Callable[[Any], Any]] = None,
        focus_source: Optional[FocusEventSource] = None,
        refetch_interval: Optional[float] = None,
        refetch_on_focus: bool = False,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.key = key
        self.name = name or key
        self.cache = cache
        self.ttl = ttl
        self.retry = retry or RetryConfig()
        self.metrics = metrics
        self.logger = get_logger("dashboard.fetcher")

        self._fetch = fetch
        self._normalize = normalize
        self._default = default or (lambda: None)
        self._state = ResourceState(data=self._default())
        self._has_value = False
        self._aborted = False
        self._listeners: List[StateListener] = []

        self.auto_refresh = AutoRefresh(
            self,
            name=self.name,
            focus_source=focus_source,
            refetch_interval=refetch_interval,
            refetch_on_focus=refetch_on_focus,
        )

    @property
    def state(self) -> ResourceState:
        return self._state

    @property
    def data(self) -> Any:
        return self._state.data

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> Optional[str]:
        return self._state.error

    @property
    def is_refreshing(self) -> bool:
        return self._state.is_refreshing

    @property
    def aborted(self) -> bool:
        return self._aborted

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def is_stale(self) -> bool:
        return self.cache.is_stale(self.key)

    async def start(self) -> FetchResult:
        """Begin background triggers and run the first fetch."""
        await self.auto_refresh.start()
        return await self.fetch()

    async def dispose(self) -> None:
        """Tear down: late responses become no-ops and triggers stop."""
        self._aborted = True
        self._listeners.clear()
        await self.auto_refresh.stop()
        self.logger.debug("Fetcher disposed", resource=self.name)

    async def refetch(self, hard: bool = False) -> FetchResult:
        """Fetch again; ``hard`` drops the cache entry first."""
        if hard:
            self.cache.delete(self.key)
        return await self.fetch()

    async def refresh(self) -> FetchResult:
        """Manual refresh, always bypassing the cache."""
        return await self.refetch(hard=True)

    async def fetch(self) -> FetchResult:
        if self._aborted:
            return PENDING

        if self.metrics is None:
            return await self._run()

        with self.metrics.time_operation("fetch_duration_seconds", resource=self.name):
            result = await self._run()

        if not self._aborted:
            outcome = "ok" if isinstance(result, Ok) else "failed" if isinstance(result, Failed) else "pending"
            self.metrics.increment_counter("fetch_results_total", resource=self.name, result=outcome)
        return result

    async def _run(self) -> FetchResult:
        pending = self.cache.get_pending_request(self.key)
        if pending is not None:
            joined = await self._join(pending)
            if self._aborted:
                return PENDING
            if joined is not None:
                return joined

        # get() evicts expired entries, so only use it once the entry is known fresh
        if not self.cache.is_stale(self.key):
            return self._commit_value(self.cache.get(self.key))

        if self.cache.has(self.key):
            self._has_value = True
            self._commit(data=self.cache.get_stale(self.key), loading=False, is_refreshing=True,
                         status=ResourceStatus.STALE_SERVING)
        else:
            self._commit(loading=True, status=ResourceStatus.LOADING)

        try:
            value = await call_with_retry(
                self._attempt,
                self.retry,
                name=self.name,
                should_abort=lambda: self._aborted,
            )
        except RetryAborted:
            return PENDING
        except RetryError as e:
            if self._aborted:
                return PENDING
            message = error_message(e.last_exception, f"Failed to load {self.name}")
            self.logger.error("Fetch failed", resource=self.name, attempts=e.attempts, error=message,
                              serving_stale=self._has_value)
            self._commit(error=message, loading=False, is_refreshing=False, status=ResourceStatus.ERROR)
            return Failed(message, stale_value=self._state.data if self._has_value else None)

        if self._aborted:
            return PENDING
        self.cache.set(self.key, value, self.ttl)
        return self._commit_value(value)

    async def _join(self, pending: asyncio.Future) -> Optional[FetchResult]:
        """Adopt the outcome of an in-flight request for the same key."""
        if self.metrics:
            self.metrics.increment_counter("deduplicated_requests_total", resource=self.name)
        self.logger.debug("Joining in-flight request", resource=self.name)

        try:
            response = await asyncio.shield(pending)
            value = self._accept(response)
        except asyncio.CancelledError:
            if not pending.cancelled():
                raise
            return None
        except Exception as e:
            self.logger.debug("In-flight request failed, fetching directly", resource=self.name, error=str(e))
            return None

        if self._aborted:
            return None
        self.cache.set(self.key, value, self.ttl)
        return self._commit_value(value)

    async def _attempt(self) -> Any:
        # Register before the first await so concurrent callers share the call
        pending = self.cache.get_pending_request(self.key)
        if pending is None:
            pending = self.cache.set_pending_request(self.key, self._call_remote())

        try:
            response = await asyncio.shield(pending)
            value = self._accept(response)
        except Exception:
            if self.metrics:
                self.metrics.increment_counter("fetch_attempts_total", resource=self.name, outcome="failure")
            raise

        if self.metrics:
            self.metrics.increment_counter("fetch_attempts_total", resource=self.name, outcome="success")
        return value

    async def _call_remote(self) -> ApiResponse:
        response = await self._fetch()
        if isinstance(response, ApiResponse):
            return response
        return ApiResponse.model_validate(response)

    def _accept(self, response: ApiResponse) -> Any:
        if not response.success:
            raise LogicalFailureError(response.error or f"Failed to fetch {self.name}")
        data = response.data
        return self._normalize(data) if self._normalize else data

    def _commit_value(self, value: Any) -> Ok:
        self._has_value = True
        self._commit(data=value, loading=False, error=None, is_refreshing=False,
                     status=ResourceStatus.FRESH)
        return Ok(value)

    def _commit(self, **changes) -> None:
        if self._aborted:
            return
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as e:
                self.logger.error("State listener failed", resource=self.name, error=str(e))

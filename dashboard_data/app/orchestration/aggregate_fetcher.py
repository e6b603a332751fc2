"""
Fan-out of several resources into one partial-failure tolerant view model.
"""

import asyncio
from dataclasses import dataclass, replace
from functools import partial
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TYPE_CHECKING

from shared.config import FetchPolicy
from shared.errors import ConfigurationError
from shared.logging import get_logger, set_subject_context
from ..caching.resource_cache import ResourceCache
from .resource_fetcher import ResourceFetcher, ResourceState, ResourceStatus
from .results import AggregateViewModel, Failed, FetchResult, FieldRule, Ok, reduce_results
from .triggers import AutoRefresh, FocusEventSource

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


def _none() -> Any:
    return None


@dataclass(frozen=True)
class ResourceSpec:
    """One constituent resource of an aggregate.

    ``key_suffix`` defaults to ``name``; pass ``""`` to key the resource by
    the aggregate identity alone.
    """
    name: str
    fetch: Callable[[], Awaitable[Any]]
    critical: bool = False
    default: Callable[[], Any] = _none
    normalize: Optional[Callable[[Any], Any]] = None
    key_suffix: Optional[str] = None


def build_cache_key(namespace: str, subject_id: Optional[str] = None, suffix: Optional[str] = None) -> str:
    """``namespace[:subject_id][:suffix]``"""
    parts = [namespace]
    if subject_id:
        parts.append(str(subject_id))
    if suffix:
        parts.append(suffix)
    return ":".join(parts)


ViewListener = Callable[[AggregateViewModel], None]


class AggregateFetcher:
    """Loads one critical and several non-critical resources together.

    All resources are fetched concurrently and awaited to completion. Only
    the critical resource can set ``error``; a non-critical failure resets
    its field to the default and is logged.
    """

    def __init__(
        self,
        namespace: str,
        specs: Sequence[ResourceSpec],
        cache: ResourceCache,
        *,
        subject_id: Optional[str] = None,
        subject_required: bool = False,
        policy: Optional[FetchPolicy] = None,
        focus_source: Optional[FocusEventSource] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        critical = [spec.name for spec in specs if spec.critical]
        if len(critical) != 1:
            raise ConfigurationError(
                "An aggregate needs exactly one critical resource",
                details={"namespace": namespace, "critical": critical},
            )
        names = [spec.name for spec in specs]
        if len(set(names)) != len(names):
            raise ConfigurationError("Resource names must be unique", details={"names": names})

        self.namespace = namespace
        self.subject_id = subject_id
        self.subject_required = subject_required
        self.cache = cache
        self.policy = policy or FetchPolicy()
        self.critical = critical[0]
        self.logger = get_logger("dashboard.aggregate")

        self.keys: Dict[str, str] = {}
        self.fetchers: Dict[str, ResourceFetcher] = {}
        self._rules: List[FieldRule] = []
        for spec in specs:
            suffix = spec.name if spec.key_suffix is None else spec.key_suffix
            key = build_cache_key(namespace, subject_id, suffix)
            fetcher = ResourceFetcher(
                key,
                spec.fetch,
                cache,
                name=f"{namespace}.{spec.name}",
                ttl=self.policy.ttl,
                retry=self.policy.retry,
                default=spec.default,
                normalize=spec.normalize,
                metrics=metrics,
            )
            fetcher.subscribe(partial(self._on_resource_change, spec.name))
            self.keys[spec.name] = key
            self.fetchers[spec.name] = fetcher
            self._rules.append(FieldRule(spec.name, spec.critical, spec.default))

        self._view = AggregateViewModel(
            fields={spec.name: spec.default() for spec in specs},
            critical=self.critical,
        )
        self._critical_loaded = False
        self._aborted = False
        self._listeners: List[ViewListener] = []
        self.last_results: Dict[str, FetchResult] = {}

        self.auto_refresh = AutoRefresh(
            self,
            name=build_cache_key(namespace, subject_id),
            focus_source=focus_source,
            refetch_interval=self.policy.refetch_interval,
            refetch_on_focus=self.policy.refetch_on_focus,
        )

    @property
    def view(self) -> AggregateViewModel:
        return self._view

    @property
    def loading(self) -> bool:
        return self._view.loading

    @property
    def error(self) -> Optional[str]:
        return self._view.error

    @property
    def is_refreshing(self) -> bool:
        return self._view.is_refreshing

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def is_stale(self) -> bool:
        """True if any constituent resource is missing or expired."""
        return any(self.cache.is_stale(key) for key in self.keys.values())

    async def start(self) -> AggregateViewModel:
        await self.auto_refresh.start()
        return await self.refetch()

    async def dispose(self) -> None:
        self._aborted = True
        self._listeners.clear()
        await self.auto_refresh.stop()
        for fetcher in self.fetchers.values():
            await fetcher.dispose()
        self.logger.debug("Aggregate disposed", namespace=self.namespace, subject_id=self.subject_id)

    async def refresh(self) -> AggregateViewModel:
        return await self.refetch(hard=True)

    async def refetch(self, hard: bool = False) -> AggregateViewModel:
        """Load every resource; ``hard`` evicts all constituent keys first."""
        if self._aborted:
            return self._view

        if self.subject_required and not self.subject_id:
            self._publish(replace(self._view, loading=False, error="User ID not found"))
            return self._view

        set_subject_context(self.subject_id)

        if hard:
            for key in self.keys.values():
                self.cache.delete(key)

        self._publish(replace(self._view, loading=hard or not self._critical_loaded, error=None))

        names = list(self.fetchers)
        outcomes = await asyncio.gather(
            *(self.fetchers[name].fetch() for name in names),
            return_exceptions=True,
        )
        if self._aborted:
            return self._view

        results: Dict[str, FetchResult] = {}
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException):
                self.logger.error("Resource fetch raised", resource=name, error=str(outcome))
                results[name] = Failed(str(outcome) or type(outcome).__name__)
            else:
                results[name] = outcome
        self.last_results = results

        if isinstance(results.get(self.critical), Ok):
            self._critical_loaded = True

        view = reduce_results(self._view, self._rules, results)
        self._publish(replace(view, loading=False, is_refreshing=self._any_refreshing()))

        self.logger.info(
            "Aggregate loaded",
            namespace=self.namespace,
            subject_id=self.subject_id,
            hard=hard,
            error=self._view.error,
            failed=sorted(self._view.failures),
        )
        return self._view

    def _on_resource_change(self, name: str, state: ResourceState) -> None:
        if self._aborted:
            return

        fields = self._view.fields
        if state.status in (ResourceStatus.FRESH, ResourceStatus.STALE_SERVING):
            fields = {**fields, name: state.data}
        self._publish(replace(self._view, fields=fields, is_refreshing=self._any_refreshing()))

    def _any_refreshing(self) -> bool:
        return any(fetcher.is_refreshing for fetcher in self.fetchers.values())

    def _publish(self, view: AggregateViewModel) -> None:
        if self._aborted:
            return
        self._view = view
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception as e:
                self.logger.error("View listener failed", namespace=self.namespace, error=str(e))

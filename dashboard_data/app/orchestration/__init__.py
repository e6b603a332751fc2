"""
Orchestration package.

- resource_fetcher: one resource, cache-aware fetch with fixed-delay retry.
- aggregate_fetcher: one critical plus several non-critical resources.
- results: Ok / Failed / Pending outcomes and the merging reducer.
- triggers: interval and focus refresh subscriptions.
"""

from .aggregate_fetcher import AggregateFetcher, ResourceSpec, build_cache_key
from .resource_fetcher import ResourceFetcher, ResourceState, ResourceStatus
from .results import AggregateViewModel, Failed, Ok, Pending, PENDING, reduce_results
from .triggers import AutoRefresh, FocusEventSource, IntervalTrigger, Subscription

__all__ = [
    "AggregateFetcher",
    "ResourceSpec",
    "build_cache_key",
    "ResourceFetcher",
    "ResourceState",
    "ResourceStatus",
    "AggregateViewModel",
    "Failed",
    "Ok",
    "Pending",
    "PENDING",
    "reduce_results",
    "AutoRefresh",
    "FocusEventSource",
    "IntervalTrigger",
    "Subscription",
]

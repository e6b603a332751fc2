"""
Admin dashboard view: headline stats plus the recent users table.
"""

from functools import partial
from typing import Any, List, Optional, TYPE_CHECKING

from shared.config import FetchPolicy
from ..adapters.dashboard_api import DashboardApiClient
from ..caching.resource_cache import ResourceCache
from ..domain.models import DashboardStats, Growth, UserSummary
from ..orchestration.aggregate_fetcher import AggregateFetcher, ResourceSpec
from ..orchestration.triggers import FocusEventSource

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


def to_user_summaries(data: Any) -> List[UserSummary]:
    if not isinstance(data, list):
        return []
    return [UserSummary.model_validate(row) for row in data]


class DashboardData(AggregateFetcher):
    """Stats are critical; the recent users table degrades to empty."""

    def __init__(
        self,
        api: DashboardApiClient,
        cache: ResourceCache,
        *,
        recent_users_limit: int = 5,
        policy: Optional[FetchPolicy] = None,
        focus_source: Optional[FocusEventSource] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        specs = [
            ResourceSpec(
                "stats",
                api.get_stats,
                critical=True,
                default=DashboardStats,
                normalize=DashboardStats.model_validate,
            ),
            ResourceSpec(
                "recent_users",
                partial(api.get_recent_users, recent_users_limit),
                default=list,
                normalize=to_user_summaries,
                key_suffix=f"recentUsers:{recent_users_limit}",
            ),
        ]
        super().__init__(
            "dashboard",
            specs,
            cache,
            policy=policy,
            focus_source=focus_source,
            metrics=metrics,
        )

    @property
    def stats(self) -> DashboardStats:
        return self.view["stats"]

    @property
    def growth(self) -> Growth:
        return self.stats.growth

    @property
    def recent_users(self) -> List[UserSummary]:
        return self.view["recent_users"]
